"""
Safe project initialization.

Scaffolds a new project into a directory that may already hold work:

1. Empty (or missing) target: generate straight into it.
2. Otherwise generate into an isolated staging area, compute a merge plan
   (skip protected paths, copy new ones, overwrite the rest), apply it, and
   remove the staging area whatever happens.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Callable

from featureflow.lib.errors import StagingCreationFailure
from featureflow.lib.protected import ProtectedPathSet
from featureflow.scaffold.apply import MergeReport, apply_merge_plan
from featureflow.scaffold.plan import MergePlan, compute_merge_plan
from featureflow.scaffold.staging import staging_area

logger = logging.getLogger(__name__)

Generator = Callable[[Path], None]

GENERATOR_ERRORS = (OSError, RuntimeError, ValueError, subprocess.SubprocessError)


def is_empty_dir(path: Path) -> bool:
    """True if path is missing or an empty directory."""
    if not path.exists():
        return True
    if not path.is_dir():
        raise NotADirectoryError(f"Target is not a directory: {path}")
    with os.scandir(path) as it:
        return next(it, None) is None


def _list_files(root: Path) -> list[str]:
    files = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            files.append((Path(dirpath) / name).relative_to(root).as_posix())
    return sorted(files)


class SafeInitializer:
    """Merges generated skeletons into targets without touching protected paths."""

    def __init__(
        self,
        protected: ProtectedPathSet,
        workers: int = 4,
        staging_parent: Path | None = None,
    ):
        self.protected = protected
        self.workers = workers
        self.staging_parent = staging_parent

    def _generate(self, generator: Generator, dest: Path) -> None:
        try:
            generator(dest)
        except GENERATOR_ERRORS as e:
            raise StagingCreationFailure(f"Skeleton generation failed ({generator!r}): {e}") from e

    def preview(self, target: Path, generator: Generator) -> MergePlan:
        """Generate into a staging area and return the plan without applying it."""
        target = Path(target)
        with staging_area(target, self.staging_parent) as staging:
            self._generate(generator, staging)
            return compute_merge_plan(staging, target, self.protected)

    def run(self, target: Path, generator: Generator) -> MergeReport:
        """Scaffold into target.

        Raises:
            StagingCreationFailure: staging could not be created or filled;
                the target was not touched
            MergeApplyFailure: an I/O error interrupted the merge; the target
                may be partially updated, staging was removed
            StagingCleanupFailure: the staging area could not be removed
        """
        target = Path(target)

        if is_empty_dir(target):
            logger.info(f"Target {target} is empty, generating directly")
            try:
                target.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StagingCreationFailure(f"Could not create target {target}: {e}") from e
            self._generate(generator, target)
            return MergeReport(target=target, copied=_list_files(target), staged=False)

        with staging_area(target, self.staging_parent) as staging:
            logger.info(f"Target {target} is not empty, staging in {staging}")
            self._generate(generator, staging)
            plan = compute_merge_plan(staging, target, self.protected)
            logger.debug(f"Merge plan for {target}: {plan.summary()}")
            return apply_merge_plan(plan, self.workers)
