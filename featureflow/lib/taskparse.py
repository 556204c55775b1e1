"""
Markdown parsers for requirements and task documents.

Extracts numbered functional requirements from a PRD body and checklist
entries ("- [ ] 1.1 Do the thing") from a task document.
"""

import re
from dataclasses import dataclass

SECTION_RE = re.compile(r'^##\s+(.+?)\s*$')
NUMBERED_RE = re.compile(r'^\s*(\d+)[.)]\s+(.+?)\s*$')
CHECKBOX_RE = re.compile(r'^\s*[-*]\s+\[([ xX])\]\s+(\d+(?:\.\d+)*)\s+(.+?)\s*$')

REQUIREMENTS_SECTION = "functional requirements"


@dataclass
class ChecklistEntry:
    id: str
    description: str
    done: bool
    line_number: int


def extract_requirements(body: str) -> list[str]:
    """Return the numbered items of the PRD's Functional Requirements section."""
    requirements = []
    in_section = False
    in_comment = False

    for line in body.splitlines():
        if '<!--' in line:
            in_comment = True
        if '-->' in line:
            in_comment = False
            continue
        if in_comment:
            continue

        section = SECTION_RE.match(line)
        if section:
            in_section = section.group(1).strip().lower() == REQUIREMENTS_SECTION
            continue

        if in_section:
            numbered = NUMBERED_RE.match(line)
            if numbered:
                requirements.append(numbered.group(2))

    return requirements


def parse_checklist(text: str) -> list[ChecklistEntry]:
    """Parse checklist entries with hierarchical ids from a task document."""
    entries = []
    for lineno, line in enumerate(text.splitlines(), 1):
        match = CHECKBOX_RE.match(line)
        if match:
            entries.append(ChecklistEntry(
                id=match.group(2),
                description=match.group(3),
                done=match.group(1).lower() == 'x',
                line_number=lineno,
            ))
    return entries


def derive_task_items(prd) -> list[tuple[str, str]]:
    """Default planner: break a PRD into (id, description) pairs.

    Each functional requirement N becomes parent task "N.0" with an
    implementation sub-task "N.1" and a test sub-task "N.2". A PRD without
    numbered requirements yields a single task for the whole feature.
    """
    requirements = extract_requirements(prd.body)
    if not requirements:
        return [("1.0", f"Implement {prd.feature_name}")]

    items = []
    for n, requirement in enumerate(requirements, 1):
        items.append((f"{n}.0", requirement))
        items.append((f"{n}.1", f"Implement: {requirement}"))
        items.append((f"{n}.2", f"Add tests covering: {requirement}"))
    return items
