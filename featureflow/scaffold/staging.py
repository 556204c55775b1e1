"""
Scaffold staging areas.

A staging area is a uniquely named temporary directory, created outside the
target, that holds a generated skeleton until it is merged. It is removed on
every exit path.
"""

import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path

from featureflow.lib.errors import StagingCleanupFailure, StagingCreationFailure

logger = logging.getLogger(__name__)

STAGING_PREFIX = "featureflow-staging-"


def _is_within(path: Path, parent: Path) -> bool:
    try:
        path.resolve().relative_to(parent.resolve())
        return True
    except ValueError:
        return False


def create_staging_area(target: Path, parent: Path | None = None) -> Path:
    """Create an isolated staging directory for a scaffold aimed at target.

    Raises:
        StagingCreationFailure: if the directory cannot be created, or the
            requested parent would put it inside the target
    """
    if parent is not None and _is_within(parent, target):
        raise StagingCreationFailure(
            f"Staging parent {parent} is inside target {target}; staging must be isolated"
        )
    try:
        if parent is not None:
            parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=parent))
    except OSError as e:
        raise StagingCreationFailure(f"Could not create staging area: {e}") from e

    logger.debug(f"Created staging area {staging}")
    return staging


def remove_staging_area(staging: Path) -> None:
    """Remove a staging directory and verify it is gone.

    Raises:
        StagingCleanupFailure: if anything is left behind
    """
    try:
        shutil.rmtree(staging)
    except FileNotFoundError:
        pass
    except OSError as e:
        raise StagingCleanupFailure(staging, str(e)) from e

    if staging.exists():
        raise StagingCleanupFailure(staging, "directory still present after removal")
    logger.debug(f"Removed staging area {staging}")


@contextmanager
def staging_area(target: Path, parent: Path | None = None):
    """Yield a fresh staging directory, removing it on every exit path.

    A cleanup failure is raised even when the body raised; the body's error
    is kept as the cleanup error's __context__.
    """
    staging = create_staging_area(target, parent)
    try:
        yield staging
    finally:
        remove_staging_area(staging)
