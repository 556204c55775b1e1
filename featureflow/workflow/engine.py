"""
Approval-gated feature workflow.

Sequences a feature from request to implementation:

    idle -> drafting_requirements -> awaiting_requirements_approval
         -> drafting_tasks -> awaiting_task_list_approval
         -> implementing(task) -> awaiting_task_list_approval | idle

Every operation takes a WorkflowSession and returns a new one. Nothing
advances on its own: leaving an awaiting phase needs an approval naming the
exact document version, and implementation needs an explicit task id. A
rejected operation raises and leaves the caller's session as it was.
"""

import logging
from dataclasses import replace
from typing import Callable, Iterable

from featureflow.docs.models import FeatureRequest, RequirementsDocument, TaskItem, TaskList
from featureflow.docs.store import DocumentStore
from featureflow.lib.constants import (
    TASK_DONE,
    TASK_ID_PATTERN,
    TASK_IN_PROGRESS,
    TASK_PENDING,
)
from featureflow.lib.errors import (
    ApprovalVersionMismatch,
    FeatureflowError,
    InvalidTransition,
    TaskAlreadyInProgress,
    UnknownTask,
)
from featureflow.lib.taskparse import derive_task_items
from featureflow.lib.templates import render_requirements
from featureflow.workflow.fsm import ACTION_NAMES, PhaseMachine
from featureflow.workflow.session import Phase, WorkflowSession

logger = logging.getLogger(__name__)

# Drafter: FeatureRequest -> PRD markdown body
RequirementsDrafter = Callable[[FeatureRequest], str]
# Planner: approved PRD -> ordered (id, description) pairs or TaskItems
TaskPlanner = Callable[[RequirementsDocument], Iterable]


def _normalize_items(raw: Iterable) -> tuple[TaskItem, ...]:
    """Turn planner output into pending TaskItems, validating ids."""
    items = []
    seen = set()
    for entry in raw:
        if isinstance(entry, TaskItem):
            task_id, description = entry.id, entry.description
        else:
            task_id, description = entry
        if not TASK_ID_PATTERN.match(task_id):
            raise ValueError(f"Invalid task id from planner: {task_id!r}")
        if task_id in seen:
            raise ValueError(f"Duplicate task id from planner: {task_id}")
        seen.add(task_id)
        items.append(TaskItem(id=task_id, description=description, status=TASK_PENDING))
    if not items:
        raise ValueError("Planner produced no tasks")
    return tuple(items)


class WorkflowEngine:
    """Drives sessions through the approval-gated phases.

    Holds only collaborators (store, drafter, planner); all workflow state
    lives in the sessions passed in and returned.
    """

    def __init__(
        self,
        store: DocumentStore,
        drafter: RequirementsDrafter | None = None,
        planner: TaskPlanner | None = None,
    ):
        self.store = store
        self.drafter = drafter or render_requirements
        self.planner = planner or derive_task_items

    # ── requirements ────────────────────────────────────────────────────────

    def submit_feature_request(
        self, session: WorkflowSession, request: FeatureRequest
    ) -> tuple[WorkflowSession, RequirementsDocument]:
        """Draft and store a new PRD version for the request.

        Raises:
            InvalidTransition: if the session is not idle
            PersistenceFailure: if the PRD could not be stored
        """
        fsm = PhaseMachine.for_session(session, label=request.slug)
        fsm.fire("submit_request")

        prd = RequirementsDocument(
            slug=request.slug,
            feature_name=request.name,
            body=self.drafter(request),
            references=tuple(request.references),
        )
        try:
            saved = self.store.save(prd)
        except FeatureflowError:
            fsm.fire("drafting_failed")
            raise
        phase = fsm.fire("requirements_drafted")

        new_session = WorkflowSession(
            phase=Phase(phase),
            feature_name=request.name,
            prd_slug=saved.artifact.slug,
            prd_version=saved.version,
        )
        return new_session, saved.artifact

    def approve_requirements(
        self, session: WorkflowSession, slug: str, version: int
    ) -> tuple[WorkflowSession, TaskList]:
        """Approve the pending PRD and derive its task list.

        Raises:
            ApprovalVersionMismatch: if (slug, version) is not the pending PRD,
                or the stored PRD has moved on
            InvalidTransition: if no PRD is awaiting approval
        """
        action = ACTION_NAMES["approve_requirements"]
        if session.phase != Phase.AWAITING_REQUIREMENTS_APPROVAL:
            already = (slug, version) == (session.prd_slug, session.prd_version)
            self._reject_approval(session, action, slug, version, already)

        expected = f"{session.prd_slug} v{session.prd_version}"
        if (slug, version) != (session.prd_slug, session.prd_version):
            raise ApprovalVersionMismatch(session.phase.value, action, slug, version, expected)

        latest = self.store.latest_version(RequirementsDocument.kind, slug)
        if latest != version:
            raise ApprovalVersionMismatch(
                session.phase.value, action, slug, version, f"{slug} v{latest}"
            )

        fsm = PhaseMachine.for_session(session)
        fsm.fire("approve_requirements")

        try:
            prd = self.store.mark_approved(RequirementsDocument.kind, slug, version)
            task_list = TaskList(
                slug=prd.slug,
                feature_name=prd.feature_name,
                prd_slug=prd.slug,
                prd_version=prd.version,
                items=_normalize_items(self.planner(prd)),
                references=prd.references,
            )
            saved = self.store.save(task_list)
        except (FeatureflowError, ValueError):
            fsm.fire("drafting_failed")
            raise
        phase = fsm.fire("tasks_drafted")

        new_session = replace(
            session,
            phase=Phase(phase),
            tasks_version=saved.version,
            task_list_approved=False,
            tasks=saved.artifact.items,
            active_task_id=None,
        )
        return new_session, saved.artifact

    # ── task list ───────────────────────────────────────────────────────────

    def approve_task_list(self, session: WorkflowSession, slug: str, version: int) -> WorkflowSession:
        """Approve the pending task list. Does not start any task.

        Raises:
            ApprovalVersionMismatch: if (slug, version) is not the pending task
                list, it was already approved, or its PRD has since advanced
            InvalidTransition: if no task list is awaiting approval
        """
        action = ACTION_NAMES["approve_task_list"]
        names_current = (slug, version) == (session.prd_slug, session.tasks_version)

        if session.phase != Phase.AWAITING_TASK_LIST_APPROVAL:
            self._reject_approval(session, action, slug, version, names_current)

        if session.task_list_approved and names_current:
            self._reject_approval(session, action, slug, version, True)

        expected = f"{session.prd_slug} v{session.tasks_version}"
        if not names_current:
            raise ApprovalVersionMismatch(session.phase.value, action, slug, version, expected)

        latest = self.store.latest_version(TaskList.kind, slug)
        if latest != version:
            raise ApprovalVersionMismatch(
                session.phase.value, action, slug, version, f"{slug} v{latest}"
            )

        task_list = self.store.load_task_list(slug, version)
        prd = self.store.load_requirements(task_list.prd_slug)
        if task_list.is_stale(prd):
            raise ApprovalVersionMismatch(
                session.phase.value, action, slug, version,
                f"task list derived from PRD v{task_list.prd_version}, PRD is now v{prd.version}",
            )
        missing = [item.id for item in session.tasks if task_list.get(item.id) is None]
        if missing:
            raise ApprovalVersionMismatch(
                session.phase.value, action, slug, version,
                f"stored task list has no task {missing[0]}",
            )

        fsm = PhaseMachine.for_session(session)
        fsm.fire("approve_task_list")
        self.store.mark_approved(TaskList.kind, slug, version)

        return replace(session, task_list_approved=True)

    # ── implementation ──────────────────────────────────────────────────────

    def start_task(self, session: WorkflowSession, task_id: str) -> WorkflowSession:
        """Mark a pending task in progress and enter implementing.

        Raises:
            TaskAlreadyInProgress: if another task is being implemented
            InvalidTransition: if the task list is not approved, or the task is
                not pending or has sub-tasks
            UnknownTask: if the id is not in the approved task list
        """
        action = f"start task {task_id}"

        if session.phase == Phase.IMPLEMENTING:
            raise TaskAlreadyInProgress(session.phase.value, action, session.active_task_id, task_id)
        if session.phase != Phase.AWAITING_TASK_LIST_APPROVAL:
            raise InvalidTransition(session.phase.value, action)
        if not session.task_list_approved:
            raise InvalidTransition(
                session.phase.value, action,
                f"task list {session.prd_slug} v{session.tasks_version} is not approved",
            )

        item = session.task(task_id)
        if item is None:
            raise UnknownTask(session.phase.value, action, task_id, session.prd_slug or "")
        if session.children(task_id):
            raise InvalidTransition(
                session.phase.value, action, f"task {task_id} has sub-tasks; start one of those"
            )
        if item.status != TASK_PENDING:
            raise InvalidTransition(session.phase.value, action, f"task {task_id} is {item.status}")

        fsm = PhaseMachine.for_session(session)
        phase = fsm.fire("start_task")

        updated = session.with_task_status(task_id, TASK_IN_PROGRESS)
        return replace(updated, phase=Phase(phase), active_task_id=task_id)

    def complete_task(self, session: WorkflowSession, task_id: str) -> WorkflowSession:
        """Mark the in-progress task done.

        Returns to awaiting_task_list_approval while pending tasks remain,
        otherwise to idle. Parent tasks are marked done once all their
        sub-tasks are.

        Raises:
            InvalidTransition: if task_id is not the task being implemented
        """
        action = f"complete task {task_id}"
        if session.phase != Phase.IMPLEMENTING:
            raise InvalidTransition(session.phase.value, action)
        if session.active_task_id != task_id:
            raise InvalidTransition(
                session.phase.value, action, f"task {session.active_task_id} is in progress"
            )

        updated = self._roll_up(session.with_task_status(task_id, TASK_DONE), task_id)

        fsm = PhaseMachine.for_session(session, all_done=updated.all_done)
        phase = fsm.fire("complete_task")

        if phase == Phase.IDLE.value:
            logger.info(f"All tasks done for {session.prd_slug}")
        return replace(updated, phase=Phase(phase), active_task_id=None)

    def abandon(self, session: WorkflowSession) -> WorkflowSession:
        """Drop the current feature and return to idle. Stored artifacts stay."""
        if session.phase == Phase.IDLE:
            return session
        PhaseMachine.for_session(session).fire("abandon")
        return WorkflowSession()

    def available_actions(self, session: WorkflowSession) -> list[str]:
        """Triggers the session's phase allows."""
        return PhaseMachine.for_session(session).get_available_triggers()

    # ── helpers ─────────────────────────────────────────────────────────────

    def _roll_up(self, session: WorkflowSession, task_id: str) -> WorkflowSession:
        """Mark ancestors done when every child is done."""
        item = session.task(task_id)
        parent_id = item.parent_id if item else None
        while parent_id is not None:
            parent = session.task(parent_id)
            if parent is None:
                break
            children = session.children(parent_id)
            if not children or any(c.status != TASK_DONE for c in children):
                break
            session = session.with_task_status(parent_id, TASK_DONE)
            parent_id = parent.parent_id
        return session

    def _reject_approval(self, session, action, slug, version, already_approved: bool):
        """Raise the right error for an approval outside its awaiting phase.

        Naming a version this session already moved past is a version
        mismatch; anything else is simply not legal in this phase.
        """
        if already_approved:
            raise ApprovalVersionMismatch(session.phase.value, action, slug, version)
        raise InvalidTransition(session.phase.value, action, f"{slug} v{version} is not pending")
