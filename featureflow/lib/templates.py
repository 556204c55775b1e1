"""
Document rendering policy.

Markdown templates for the artifacts the workflow produces. The content here
is policy text handed to whoever drafts the document (a human, an agent, or
the default renderer below); none of it drives workflow decisions.
"""

__all__ = ["PRD_SECTIONS", "render_requirements", "render_task_list"]


# Section order for a requirements document, aimed at a junior developer
PRD_SECTIONS = [
    "Introduction/Overview",
    "Goals",
    "User Stories",
    "Functional Requirements",
    "Non-Goals (Out of Scope)",
    "Design Considerations",
    "Technical Considerations",
    "Success Metrics",
    "Open Questions",
]

PRD_GUIDANCE = (
    "Requirements should be explicit and unambiguous. Number the functional "
    "requirements; each one becomes a parent task when the document is approved."
)


def render_requirements(request) -> str:
    """Render the default PRD body for a FeatureRequest.

    Produces every section in PRD_SECTIONS. Lines of the request description
    that start with '- ' or a number become functional requirements; when
    there are none, a single requirement restating the feature is used.
    """
    description = (request.description or "").strip()

    requirements = []
    overview_lines = []
    for line in description.splitlines():
        stripped = line.strip()
        if stripped.startswith("- "):
            requirements.append(stripped[2:].strip())
        elif stripped[:1].isdigit() and ". " in stripped[:4]:
            requirements.append(stripped.split(". ", 1)[1].strip())
        elif stripped:
            overview_lines.append(stripped)

    if not requirements:
        requirements = [f"The system must provide {request.name}."]

    overview = " ".join(overview_lines) or f"This document describes the {request.name} feature."

    parts = [f"# PRD: {request.name}", ""]
    for section in PRD_SECTIONS:
        parts.append(f"## {section}")
        parts.append("")
        if section == "Introduction/Overview":
            parts.append(overview)
        elif section == "Functional Requirements":
            for i, req in enumerate(requirements, 1):
                parts.append(f"{i}. {req}")
        elif section == "Technical Considerations" and request.references:
            parts.append("Existing files to consider:")
            for ref in request.references:
                parts.append(f"- `{ref}`")
        else:
            parts.append("_To be completed._")
        parts.append("")

    parts.append(f"<!-- {PRD_GUIDANCE} -->")
    return "\n".join(parts) + "\n"


def render_task_list(task_list, statuses: dict[str, str] | None = None) -> str:
    """Render a TaskList as a markdown checklist.

    Sub-tasks are indented under their parent; ``statuses`` (id -> status)
    overrides the item statuses when rendering progress.
    """
    statuses = statuses or {}
    parts = [
        f"# Tasks: {task_list.feature_name}",
        "",
        f"Derived from `{task_list.prd_slug}` PRD version {task_list.prd_version}.",
        "",
    ]

    if task_list.references:
        parts.extend(["## Relevant Files", ""])
        for ref in task_list.references:
            parts.append(f"- `{ref}`")
        parts.append("")

    parts.extend(["## Tasks", ""])
    for item in task_list.items:
        status = statuses.get(item.id, item.status)
        mark = "x" if status == "done" else " "
        indent = "  " * (item.depth - 1)
        parts.append(f"{indent}- [{mark}] {item.id} {item.description}")

    return "\n".join(parts) + "\n"
