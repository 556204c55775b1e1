"""Feature workflow phase machine using the transitions library.

Declares every legal phase change once, as a transitions table:
- Explicit triggers (named actions), no auto transitions
- Guards for task-list approval and task completion
- A single after-change callback that logs each move

Usage:
    from featureflow.workflow.fsm import PhaseMachine

    fsm = PhaseMachine.for_session(session)
    fsm.fire("submit_request")  # idle -> drafting_requirements
"""

import logging

from transitions import Machine, MachineError

from featureflow.lib.errors import InvalidTransition

logger = logging.getLogger(__name__)


STATES = [
    "idle",
    "drafting_requirements",
    "awaiting_requirements_approval",
    "drafting_tasks",
    "awaiting_task_list_approval",
    "implementing",
]

# Each trigger becomes a method on the machine
TRANSITIONS = [
    # Requirements capture
    {"trigger": "submit_request", "source": "idle", "dest": "drafting_requirements"},
    {"trigger": "requirements_drafted", "source": "drafting_requirements",
     "dest": "awaiting_requirements_approval"},

    # Human approves the PRD; tasks are derived
    {"trigger": "approve_requirements", "source": "awaiting_requirements_approval",
     "dest": "drafting_tasks"},
    {"trigger": "tasks_drafted", "source": "drafting_tasks", "dest": "awaiting_task_list_approval"},

    # Human approves the task list; phase stays until a task is started
    {"trigger": "approve_task_list", "source": "awaiting_task_list_approval",
     "dest": "awaiting_task_list_approval"},

    # Implementation, one task at a time
    {"trigger": "start_task", "source": "awaiting_task_list_approval", "dest": "implementing",
     "conditions": "is_task_list_approved"},
    {"trigger": "complete_task", "source": "implementing", "dest": "idle",
     "conditions": "is_all_done"},
    {"trigger": "complete_task", "source": "implementing", "dest": "awaiting_task_list_approval",
     "unless": "is_all_done"},

    # Drafting failed before anything was recorded: fall back
    {"trigger": "drafting_failed", "source": "drafting_requirements", "dest": "idle"},
    {"trigger": "drafting_failed", "source": "drafting_tasks",
     "dest": "awaiting_requirements_approval"},

    # Walk away from the current feature
    {"trigger": "abandon", "source": STATES[1:], "dest": "idle"},
]

# Triggers a caller can ask for (drafting steps are internal)
PUBLIC_TRIGGERS = [
    "submit_request",
    "approve_requirements",
    "approve_task_list",
    "start_task",
    "complete_task",
    "abandon",
]

# Human-readable action for rejection messages
ACTION_NAMES = {
    "submit_request": "submit a feature request",
    "requirements_drafted": "record drafted requirements",
    "approve_requirements": "approve requirements",
    "tasks_drafted": "record drafted tasks",
    "approve_task_list": "approve the task list",
    "start_task": "start a task",
    "complete_task": "complete a task",
    "drafting_failed": "roll back a failed draft",
    "abandon": "abandon the session",
}


class PhaseMachine:
    """Validates and performs one session's phase changes.

    Built fresh from a session snapshot for each operation; the guard
    inputs (task list approval, task completion) are plain attributes.
    """

    def __init__(
        self,
        initial: str = "idle",
        label: str = "",
        task_list_approved: bool = False,
        all_done: bool = False,
    ):
        if initial not in STATES:
            raise ValueError(f"Unknown phase: {initial}")

        self.label = label or "-"
        self.task_list_approved = task_list_approved
        self.all_done = all_done

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=initial,
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",
        )

    @classmethod
    def for_session(cls, session, **overrides) -> "PhaseMachine":
        params = dict(
            initial=session.phase.value,
            label=session.prd_slug or "",
            task_list_approved=session.task_list_approved,
            all_done=session.all_done,
        )
        params.update(overrides)
        return cls(**params)

    # Guards
    def is_task_list_approved(self, event) -> bool:
        return self.task_list_approved

    def is_all_done(self, event) -> bool:
        return self.all_done

    def on_state_change(self, event) -> None:
        logger.info(
            f"[FSM] {self.label}: {event.transition.source} -> "
            f"{event.transition.dest} ({event.event.name})"
        )

    def can(self, trigger: str) -> bool:
        """Check if a trigger is declared for the current phase."""
        return trigger in self.machine.get_triggers(self.state)

    def get_available_triggers(self) -> list[str]:
        """Public triggers declared for the current phase."""
        declared = self.machine.get_triggers(self.state)
        return [t for t in PUBLIC_TRIGGERS if t in declared]

    def fire(self, trigger: str, detail: str = "") -> str:
        """Run a trigger and return the new phase.

        Raises:
            InvalidTransition: if the trigger is not legal here or its guard fails
        """
        action = ACTION_NAMES.get(trigger, trigger)
        current = self.state
        try:
            moved = getattr(self, trigger)()
        except MachineError as e:
            raise InvalidTransition(current, action, detail) from e
        if not moved:
            raise InvalidTransition(current, action, detail or "precondition not met")
        return self.state
