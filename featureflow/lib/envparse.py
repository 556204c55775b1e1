"""
Reader for featureflow.env.

The file is plain KEY=value lines and is never handed to a shell. Values
may hold a scaffold command line, so pipes are allowed, but anything that
would expand or chain commands is rejected.
"""

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

KNOWN_KEYS = frozenset({
    "PROJECT_NAME",
    "ARTIFACTS_DIR",
    "STATE_DIR",
    "STAGING_DIR",
    "MERGE_WORKERS",
    "SCAFFOLD_COMMAND",
})

FORBIDDEN_PATTERNS = [
    (re.compile(r'`'), "backtick"),
    (re.compile(r'\$\('), "command substitution"),
    (re.compile(r'\$\{'), "variable expansion"),
    (re.compile(r';'), "';'"),
    (re.compile(r'&&'), "'&&'"),
    (re.compile(r'\|\|'), "'||'"),
]

KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*$')


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def parse_env(text: str, source: str = "") -> dict[str, str]:
    """Parse KEY=value lines into a dict; later lines win.

    Keys outside KNOWN_KEYS are kept but logged, since they are usually typos.

    Raises:
        ValueError: if a line is malformed or a value contains a forbidden pattern
    """
    where = f"{source}: " if source else ""
    result = {}

    for lineno, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line or line.startswith('#'):
            continue

        if '=' not in line:
            raise ValueError(f"{where}Line {lineno}: Invalid syntax (no '=')")

        key, _, value = line.partition('=')
        key = key.strip()
        value = _unquote(value.strip())

        if not KEY_PATTERN.match(key):
            raise ValueError(f"{where}Line {lineno}: Invalid key '{key}'")

        for pattern, label in FORBIDDEN_PATTERNS:
            if pattern.search(value):
                raise ValueError(f"{where}Line {lineno}: Forbidden pattern ({label}) in value for {key}")

        if key not in KNOWN_KEYS:
            logger.warning(f"{where}Line {lineno}: unknown setting {key}")
        result[key] = value

    return result


def load_env(filepath: Path) -> dict[str, str]:
    """Parse a featureflow.env file.

    Raises:
        FileNotFoundError: if file doesn't exist
        ValueError: if syntax invalid or forbidden pattern found, naming the file
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")
    return parse_env(path.read_text(encoding="utf-8"), source=path.name)
