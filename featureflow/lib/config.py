"""
Configuration loader for featureflow.

Loads project settings from featureflow.env in the project directory.
Every key is optional; a missing file yields the defaults.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from . import envparse

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "featureflow.env"
PROTECTED_PATHS_FILENAME = "protected_paths.yaml"

DEFAULT_ARTIFACTS_DIR = "tasks"
DEFAULT_STATE_DIR = ".featureflow"
DEFAULT_MERGE_WORKERS = 4


@dataclass
class ProjectConfig:
    """Project-level configuration from featureflow.env"""
    name: str
    project_dir: Path
    artifacts_dir: Path  # PRDs and task lists
    state_dir: Path  # Session file and locks
    merge_workers: int
    staging_dir: Path | None  # Parent for staging areas; None = system temp
    scaffold_command: str  # Default generator command for `ff init`

    @property
    def session_file(self) -> Path:
        return self.state_dir / "session.json"

    @property
    def lock_file(self) -> Path:
        return self.state_dir / "locks" / "session.lock"

    @property
    def protected_paths_file(self) -> Path:
        return self.project_dir / PROTECTED_PATHS_FILENAME


def _parse_int(env: dict, key: str, default: int, minimum: int = 1) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {key} '{raw}', using default {default}")
        return default
    if value < minimum:
        logger.warning(f"{key} must be >= {minimum}, got {value}; using default {default}")
        return default
    return value


def _resolve(project_dir: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else project_dir / path


def load_project_config(project_dir: Path) -> ProjectConfig:
    """Load featureflow.env and return ProjectConfig."""
    project_dir = Path(project_dir).resolve()
    config_path = project_dir / CONFIG_FILENAME

    env = {}
    if config_path.exists():
        env = envparse.load_env(config_path)
    else:
        logger.debug(f"No {CONFIG_FILENAME} in {project_dir}, using defaults")

    staging = env.get("STAGING_DIR", "")

    return ProjectConfig(
        name=env.get("PROJECT_NAME") or project_dir.name,
        project_dir=project_dir,
        artifacts_dir=_resolve(project_dir, env.get("ARTIFACTS_DIR") or DEFAULT_ARTIFACTS_DIR),
        state_dir=_resolve(project_dir, env.get("STATE_DIR") or DEFAULT_STATE_DIR),
        merge_workers=_parse_int(env, "MERGE_WORKERS", DEFAULT_MERGE_WORKERS),
        staging_dir=_resolve(project_dir, staging) if staging else None,
        scaffold_command=env.get("SCAFFOLD_COMMAND", ""),
    )
