"""Workflow session value and phase enum.

A WorkflowSession is an immutable snapshot of where one project's feature
workflow stands. Engine operations take a session and return a new one;
nothing here holds global state.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from featureflow.docs.models import TaskItem
from featureflow.lib.constants import TASK_DONE, TASK_PENDING


class Phase(Enum):
    """All workflow phases. Values match FSM state strings."""

    IDLE = "idle"

    # Requirements capture
    DRAFTING_REQUIREMENTS = "drafting_requirements"
    AWAITING_REQUIREMENTS_APPROVAL = "awaiting_requirements_approval"

    # Task decomposition
    DRAFTING_TASKS = "drafting_tasks"
    AWAITING_TASK_LIST_APPROVAL = "awaiting_task_list_approval"

    # Guarded implementation
    IMPLEMENTING = "implementing"


def parse_phase(value: str | None) -> Phase | None:
    """Parse a phase string, returning None if unknown."""
    for phase in Phase:
        if phase.value == value:
            return phase
    return None


@dataclass(frozen=True)
class WorkflowSession:
    phase: Phase = Phase.IDLE
    feature_name: str | None = None
    prd_slug: str | None = None
    prd_version: int | None = None
    tasks_version: int | None = None
    task_list_approved: bool = False
    tasks: tuple[TaskItem, ...] = field(default_factory=tuple)
    active_task_id: str | None = None

    def task(self, task_id: str) -> TaskItem | None:
        for item in self.tasks:
            if item.id == task_id:
                return item
        return None

    def children(self, task_id: str) -> list[TaskItem]:
        return [item for item in self.tasks if item.parent_id == task_id]

    def pending_tasks(self) -> list[TaskItem]:
        return [item for item in self.tasks if item.status == TASK_PENDING]

    @property
    def all_done(self) -> bool:
        return bool(self.tasks) and all(item.status == TASK_DONE for item in self.tasks)

    def with_task_status(self, task_id: str, status: str) -> "WorkflowSession":
        tasks = tuple(
            item.with_status(status) if item.id == task_id else item
            for item in self.tasks
        )
        return replace(self, tasks=tasks)

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "feature_name": self.feature_name,
            "prd_slug": self.prd_slug,
            "prd_version": self.prd_version,
            "tasks_version": self.tasks_version,
            "task_list_approved": self.task_list_approved,
            "active_task_id": self.active_task_id,
            "tasks": [
                {"id": t.id, "description": t.description, "status": t.status}
                for t in self.tasks
            ],
            "updated": datetime.now().isoformat(timespec="seconds"),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorkflowSession":
        phase = parse_phase(data.get("phase"))
        if phase is None:
            raise ValueError(f"Unknown workflow phase: {data.get('phase')!r}")
        return cls(
            phase=phase,
            feature_name=data.get("feature_name"),
            prd_slug=data.get("prd_slug"),
            prd_version=data.get("prd_version"),
            tasks_version=data.get("tasks_version"),
            task_list_approved=data.get("task_list_approved", False),
            tasks=tuple(
                TaskItem(id=t["id"], description=t["description"], status=t["status"])
                for t in data.get("tasks", [])
            ),
            active_task_id=data.get("active_task_id"),
        )
