"""
Error taxonomy for featureflow.

Every failure the workflow engine, document store or initializer can report
is a subclass of FeatureflowError carrying a stable ``kind`` string. Callers
catch these and decide; nothing here aborts the process on its own.
"""


class FeatureflowError(Exception):
    """Base class for all reportable featureflow failures."""

    kind = "FeatureflowError"


class InvalidTransition(FeatureflowError):
    """Raised when an action is not legal in the session's current phase."""

    kind = "InvalidTransition"

    def __init__(self, phase: str, action: str, detail: str = ""):
        self.phase = phase
        self.action = action
        self.detail = detail
        super().__init__(
            f"Cannot {action} while in phase '{phase}'"
            + (f": {detail}" if detail else "")
        )


class ApprovalVersionMismatch(FeatureflowError):
    """Raised when an approval names a document version that is not pending."""

    kind = "ApprovalVersionMismatch"

    def __init__(self, phase: str, action: str, slug: str, version: int, expected: str = ""):
        self.phase = phase
        self.action = action
        self.slug = slug
        self.version = version
        self.expected = expected
        super().__init__(
            f"Cannot {action} {slug} v{version} while in phase '{phase}'"
            + (f" (pending: {expected})" if expected else " (nothing pending)")
        )


class UnknownTask(FeatureflowError):
    """Raised when a task id is not part of the approved task list."""

    kind = "UnknownTask"

    def __init__(self, phase: str, action: str, task_id: str, slug: str = ""):
        self.phase = phase
        self.action = action
        self.task_id = task_id
        self.slug = slug
        super().__init__(
            f"Cannot {action} while in phase '{phase}': unknown task '{task_id}'"
            + (f" in task list {slug}" if slug else "")
        )


class TaskAlreadyInProgress(FeatureflowError):
    """Raised when a task start is requested while another is in progress."""

    kind = "TaskAlreadyInProgress"

    def __init__(self, phase: str, action: str, active_task_id: str, requested_task_id: str):
        self.phase = phase
        self.action = action
        self.active_task_id = active_task_id
        self.requested_task_id = requested_task_id
        super().__init__(
            f"Cannot {action} while in phase '{phase}': "
            f"task '{active_task_id}' is still in progress"
        )


class ArtifactNotFound(FeatureflowError):
    """Raised when a requested artifact (or version) does not exist."""

    kind = "NotFound"

    def __init__(self, kind: str, slug: str, version: int | None = None):
        self.artifact_kind = kind
        self.slug = slug
        self.version = version
        super().__init__(
            f"No {kind} artifact for '{slug}'"
            + (f" at version {version}" if version is not None else "")
        )


class ArtifactNotApproved(FeatureflowError):
    """Raised when a task list is stored against a PRD version that is not approved."""

    kind = "NotApproved"

    def __init__(self, kind: str, slug: str, version: int):
        self.artifact_kind = kind
        self.slug = slug
        self.version = version
        super().__init__(f"{kind} '{slug}' version {version} is not approved")


class PersistenceFailure(FeatureflowError):
    """Raised when an artifact or session cannot be read from or written to disk."""

    kind = "PersistenceFailure"

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Storage error at {path}: {reason}")


class SessionAlreadyActive(FeatureflowError):
    """Raised when another process is already driving this project's session."""

    kind = "SessionAlreadyActive"

    def __init__(self, project_dir, holder_pid: str = ""):
        self.project_dir = project_dir
        self.holder_pid = holder_pid
        super().__init__(
            f"A workflow session is already active for {project_dir}"
            + (f" (pid {holder_pid})" if holder_pid else "")
        )


class StagingCreationFailure(FeatureflowError):
    """Raised when the isolated staging directory cannot be created or filled."""

    kind = "StagingCreationFailure"


class MergeApplyFailure(FeatureflowError):
    """Raised when an I/O error interrupts applying a merge plan.

    The target may be partially updated; ``applied`` lists the relative paths
    that were written before the failure.
    """

    kind = "MergeApplyFailure"

    def __init__(self, path, reason: str, applied: list[str] | None = None):
        self.path = path
        self.reason = reason
        self.applied = applied or []
        super().__init__(f"Merge failed at {path}: {reason}")


class StagingCleanupFailure(FeatureflowError):
    """Raised when a staging area could not be removed.

    Residue was left on disk. Callers must not treat this as recoverable.
    """

    kind = "StagingCleanupFailure"

    def __init__(self, staging_dir, reason: str):
        self.staging_dir = staging_dir
        self.reason = reason
        super().__init__(f"Failed to remove staging area {staging_dir}: {reason}")
