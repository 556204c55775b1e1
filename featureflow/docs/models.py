"""
Data models for workflow artifacts.
"""

from dataclasses import dataclass, field, replace
from typing import ClassVar

from featureflow.lib.constants import (
    MAX_SLUG_LEN,
    SLUG_STRIP_RE,
    STATUS_APPROVED,
    STATUS_PENDING,
    TASK_PENDING,
)


def slugify(name: str) -> str:
    """Convert a feature name into a filesystem-safe slug.

    - lowercase
    - replace runs of non [a-z0-9] with '-'
    - trim '-' and cap the length
    """
    s = (name or "").strip().lower()
    s = SLUG_STRIP_RE.sub("-", s).strip("-")
    if not s:
        raise ValueError(f"Cannot derive a slug from feature name {name!r}")
    return s[:MAX_SLUG_LEN].rstrip("-")


@dataclass(frozen=True)
class FeatureRequest:
    """A user's request to build a feature. Immutable once submitted."""
    name: str
    description: str = ""
    references: tuple[str, ...] = ()  # Existing source files to consider

    @property
    def slug(self) -> str:
        return slugify(self.name)


@dataclass(frozen=True)
class RequirementsDocument:
    """A versioned PRD keyed by the feature slug."""
    kind: ClassVar[str] = "prd"

    slug: str
    feature_name: str
    body: str
    version: int = 0  # 0 until saved
    status: str = STATUS_PENDING  # pending, approved
    created: str = ""
    references: tuple[str, ...] = ()

    @property
    def approved(self) -> bool:
        return self.status == STATUS_APPROVED


@dataclass(frozen=True)
class TaskItem:
    """One checklist entry. Ids are hierarchical: "1.0" parent, "1.1" sub-task."""
    id: str
    description: str
    status: str = TASK_PENDING  # pending, in_progress, done

    @property
    def parent_id(self) -> str | None:
        parts = self.id.split(".")
        if len(parts) == 1 or (len(parts) == 2 and parts[1] == "0"):
            return None
        if len(parts) == 2:
            return f"{parts[0]}.0"
        return ".".join(parts[:-1])

    @property
    def depth(self) -> int:
        parts = self.id.split(".")
        if self.parent_id is None:
            return 1
        return len(parts)

    def with_status(self, status: str) -> "TaskItem":
        return replace(self, status=status)


@dataclass(frozen=True)
class TaskList:
    """Ordered tasks derived from an approved RequirementsDocument."""
    kind: ClassVar[str] = "tasks"

    slug: str
    feature_name: str
    prd_slug: str
    prd_version: int
    items: tuple[TaskItem, ...] = field(default_factory=tuple)
    version: int = 0  # 0 until saved
    status: str = STATUS_PENDING  # pending, approved
    created: str = ""
    references: tuple[str, ...] = ()

    @property
    def approved(self) -> bool:
        return self.status == STATUS_APPROVED

    def get(self, task_id: str) -> TaskItem | None:
        for item in self.items:
            if item.id == task_id:
                return item
        return None

    def is_stale(self, prd: RequirementsDocument) -> bool:
        """True if the PRD this list came from has advanced since derivation."""
        return prd.slug == self.prd_slug and prd.version > self.prd_version
