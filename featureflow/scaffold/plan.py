"""
Merge planning for scaffold output.

Walks a staged skeleton and decides, per path, what merging it into the
target would do. Planning reads the filesystem but never writes, so a plan
can be inspected (or printed with `ff init --dry-run`) before anything
changes.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from featureflow.lib.protected import ProtectedPathSet


class MergeAction(Enum):
    COPY = "copy"  # absent in target
    OVERWRITE = "overwrite"  # present in target, not protected
    SKIP = "skip"  # protected or reached through a link; target wins


@dataclass(frozen=True)
class MergeEntry:
    rel_path: str  # posix, relative to both roots
    action: MergeAction
    is_dir: bool = False  # empty directory in the skeleton
    reason: str = ""  # why a SKIP entry is skipped


@dataclass(frozen=True)
class MergePlan:
    staging: Path
    target: Path
    entries: tuple[MergeEntry, ...] = field(default_factory=tuple)

    def by_action(self, action: MergeAction) -> list[MergeEntry]:
        return [e for e in self.entries if e.action == action]

    @property
    def conflicts(self) -> list[str]:
        """Paths the skeleton wanted to write but the target keeps."""
        return [e.rel_path for e in self.entries if e.action == MergeAction.SKIP]

    def summary(self) -> dict[str, int]:
        return {action.value: len(self.by_action(action)) for action in MergeAction}


def _walk_staged(staging: Path) -> list[tuple[str, bool]]:
    """List (relative path, is_dir) for files and empty leaf directories."""
    found = []
    for dirpath, dirnames, filenames in os.walk(staging):
        rel_dir = Path(dirpath).relative_to(staging)

        # Symlinked directories are entries of their own, not descended into
        linked = [name for name in dirnames if (Path(dirpath) / name).is_symlink()]
        dirnames[:] = sorted(name for name in dirnames if name not in linked)

        for name in sorted(filenames + linked):
            found.append(((rel_dir / name).as_posix(), False))
        if not dirnames and not filenames and not linked and rel_dir != Path("."):
            found.append((rel_dir.as_posix(), True))
    return sorted(found)


def symlinked_component(target: Path, rel_path: str, include_leaf: bool = False) -> str | None:
    """First component of rel_path that is a symlink in target, if any."""
    parts = Path(rel_path).parts
    if not include_leaf:
        parts = parts[:-1]
    current = target
    for part in parts:
        current = current / part
        if current.is_symlink():
            return current.relative_to(target).as_posix()
    return None


def _unsafe_reason(target: Path, rel_path: str, is_dir: bool, protected: ProtectedPathSet) -> str | None:
    """Why writing rel_path into target could reach a path it must not touch."""
    if protected.is_protected(rel_path):
        return "protected"

    # Writes never go through an existing link in the target
    linked = symlinked_component(target, rel_path, include_leaf=is_dir)
    if linked is not None:
        return f"{linked} is a symlink in the target"

    try:
        resolved = (target / rel_path).resolve().relative_to(target.resolve()).as_posix()
    except ValueError:
        return "resolves outside the target"
    if resolved in protected:
        return f"resolves to protected {resolved}"
    return None


def compute_merge_plan(staging: Path, target: Path, protected: ProtectedPathSet) -> MergePlan:
    """Decide copy / overwrite / skip for every staged path.

    Protection is by path identity: a protected path is skipped even when the
    target does not have it. Paths that would be reached through a symlinked
    directory, or that resolve onto a protected path or outside the target,
    are skipped as well.
    """
    entries = []
    for rel_path, is_dir in _walk_staged(staging):
        reason = _unsafe_reason(target, rel_path, is_dir, protected)
        if reason is not None:
            action = MergeAction.SKIP
        elif not os.path.lexists(target / rel_path):
            action = MergeAction.COPY
        else:
            action = MergeAction.OVERWRITE
        entries.append(MergeEntry(rel_path=rel_path, action=action, is_dir=is_dir, reason=reason or ""))

    return MergePlan(staging=staging, target=target, entries=tuple(entries))
