"""
Protected path policy.

Paths matching these patterns are never written by a scaffold merge, whether
or not they currently exist in the target. Patterns come in three forms:

- ``tasks/``      directory prefix (matches the directory and everything below)
- ``.env``        exact relative path
- ``*.local.md``  glob (fnmatch) against the relative path

The defaults can be extended per project with protected_paths.yaml:

    protected:
      - docs/
      - "*.local.md"

The set is loaded once per process and never mutated afterwards.
"""

import logging
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_PROTECTED_PATTERNS = (
    ".cursor/",
    ".featureflow/",
    ".git/",
    "tasks/",
)

_GLOB_CHARS = set("*?[")


def _normalize(path) -> str:
    """Return a posix-style relative path without leading './' or '/'."""
    text = Path(path).as_posix() if str(path) else ""
    return text.lstrip("/")


@dataclass(frozen=True)
class ProtectedPathSet:
    """Immutable predicate over target-relative paths."""

    patterns: tuple[str, ...] = DEFAULT_PROTECTED_PATTERNS

    def is_protected(self, path) -> bool:
        """Return True if the relative path matches any protected pattern."""
        rel = _normalize(path)
        if not rel or rel == ".":
            return False
        for pattern in self.patterns:
            if pattern.endswith("/"):
                prefix = pattern.rstrip("/")
                if rel == prefix or rel.startswith(prefix + "/"):
                    return True
            elif _GLOB_CHARS & set(pattern):
                if fnmatchcase(rel, pattern):
                    return True
            elif rel == pattern:
                return True
        return False

    def __contains__(self, path) -> bool:
        return self.is_protected(path)


def parse_patterns(data) -> tuple[str, ...]:
    """Extract pattern strings from a loaded protected_paths.yaml document."""
    if not data:
        return ()
    raw = data.get("protected", []) if isinstance(data, dict) else data
    if not isinstance(raw, list):
        raise ValueError("'protected' must be a list of path patterns")

    patterns = []
    for item in raw:
        if not isinstance(item, str) or not item.strip():
            raise ValueError(f"Invalid protected path pattern: {item!r}")
        pattern = item.strip()
        while pattern.startswith("./"):
            pattern = pattern[2:]
        patterns.append(pattern.lstrip("/"))
    return tuple(patterns)


# Loaded sets, keyed by config file path (None = defaults only)
_protected_cache: dict[Path | None, ProtectedPathSet] = {}


def load_protected_paths(config_path: Path | None = None) -> ProtectedPathSet:
    """Load the protected path set, once per process per config file.

    The defaults are always included; the file can only add patterns.
    An unreadable or malformed file is logged and ignored.
    """
    if config_path in _protected_cache:
        return _protected_cache[config_path]

    extra: tuple[str, ...] = ()
    if config_path is not None and config_path.exists():
        try:
            extra = parse_patterns(yaml.safe_load(config_path.read_text()))
        except (yaml.YAMLError, ValueError, OSError) as e:
            logger.warning(f"Failed to parse {config_path}: {e}")

    patterns = DEFAULT_PROTECTED_PATTERNS + tuple(
        p for p in extra if p not in DEFAULT_PROTECTED_PATTERNS
    )
    protected = ProtectedPathSet(patterns=patterns)
    _protected_cache[config_path] = protected
    return protected
