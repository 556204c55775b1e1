"""
Merge plan application.

Directories are created first, in order; file copies then run on a thread
pool. Each target path occurs in exactly one plan entry, so no two workers
ever write the same path.
"""

import logging
import os
import shutil
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from featureflow.lib.errors import MergeApplyFailure
from featureflow.scaffold.plan import MergeAction, MergeEntry, MergePlan, symlinked_component

logger = logging.getLogger(__name__)


@dataclass
class MergeReport:
    """What a merge did to the target."""
    target: Path
    copied: list[str] = field(default_factory=list)
    overwritten: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)  # skipped, target version kept
    staged: bool = True  # False when generated straight into an empty target

    @property
    def written(self) -> list[str]:
        return sorted(self.copied + self.overwritten)


def _copy_file(src: Path, dst: Path) -> None:
    """Copy one staged file (or symlink) over whatever is at dst."""
    if dst.is_dir() and not dst.is_symlink():
        raise IsADirectoryError(f"{dst} is a directory in the target")

    # Never write through an existing link
    if dst.is_symlink():
        dst.unlink()

    if src.is_symlink():
        if os.path.lexists(dst):
            dst.unlink()
        os.symlink(os.readlink(src), dst)
    else:
        shutil.copy2(src, dst, follow_symlinks=False)


def _prepare_directories(plan: MergePlan, entries: list[MergeEntry]) -> None:
    dirs = set()
    for entry in entries:
        rel = Path(entry.rel_path)
        if entry.is_dir:
            dirs.add(rel)
        elif rel.parent != Path("."):
            dirs.add(rel.parent)

    for rel in sorted(dirs):
        linked = symlinked_component(plan.target, rel.as_posix(), include_leaf=True)
        if linked is not None:
            raise MergeApplyFailure(rel.as_posix(), f"{linked} is a symlink in the target")
        try:
            (plan.target / rel).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise MergeApplyFailure(rel.as_posix(), str(e)) from e


def apply_merge_plan(plan: MergePlan, workers: int = 4) -> MergeReport:
    """Apply a fully computed plan to its target.

    Raises:
        MergeApplyFailure: on the first I/O error; the target may be partially
            updated and the error lists what was already written
    """
    seen = set()
    for entry in plan.entries:
        if entry.rel_path in seen:
            raise ValueError(f"Merge plan lists {entry.rel_path} more than once")
        seen.add(entry.rel_path)

    report = MergeReport(target=plan.target)
    for entry in plan.by_action(MergeAction.SKIP):
        logger.info(f"[MERGE] conflict: {entry.rel_path} ({entry.reason or 'protected'}), keeping target version")
        report.conflicts.append(entry.rel_path)

    writes = [e for e in plan.entries if e.action != MergeAction.SKIP]
    _prepare_directories(plan, writes)

    files = [e for e in writes if not e.is_dir]
    for entry in writes:
        if entry.is_dir:
            report.copied.append(entry.rel_path)

    failures: list[tuple[str, Exception]] = []
    if files:
        with ThreadPoolExecutor(max_workers=max(1, min(workers, len(files)))) as executor:
            futures: dict[Future, MergeEntry] = {
                executor.submit(
                    _copy_file, plan.staging / e.rel_path, plan.target / e.rel_path
                ): e
                for e in files
            }
            for future in as_completed(futures):
                entry = futures[future]
                try:
                    future.result()
                except OSError as e:
                    failures.append((entry.rel_path, e))
                    continue
                if entry.action == MergeAction.COPY:
                    report.copied.append(entry.rel_path)
                else:
                    report.overwritten.append(entry.rel_path)

    report.copied.sort()
    report.overwritten.sort()

    if failures:
        failures.sort(key=lambda f: f[0])
        rel_path, error = failures[0]
        logger.error(f"[MERGE] {len(failures)} write(s) failed, first: {rel_path}: {error}")
        raise MergeApplyFailure(rel_path, str(error), applied=report.written)

    logger.info(
        f"[MERGE] {plan.target}: {len(report.copied)} copied, "
        f"{len(report.overwritten)} overwritten, {len(report.conflicts)} protected"
    )
    return report
