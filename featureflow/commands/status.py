"""
ff status - Show the current feature session.
"""

from featureflow.docs.models import RequirementsDocument, TaskList
from featureflow.docs.store import DocumentStore
from featureflow.lib.config import ProjectConfig
from featureflow.lib.constants import TASK_DONE, TASK_IN_PROGRESS
from featureflow.workflow.engine import WorkflowEngine
from featureflow.workflow.locking import is_session_locked
from featureflow.workflow.session import Phase
from featureflow.workflow.session_store import load_session

CHECKBOX = {TASK_DONE: "[x]", TASK_IN_PROGRESS: "[~]"}


def cmd_status(args, project_config: ProjectConfig) -> int:
    """Print phase, documents, task progress and what can happen next."""
    store = DocumentStore(project_config.artifacts_dir)
    engine = WorkflowEngine(store)
    session = load_session(project_config.session_file)

    print(f"Project: {project_config.name}")
    print("=" * 60)
    print()
    print(f"Phase:          {session.phase.value}")
    if is_session_locked(project_config.lock_file):
        print("Lock:           held by another process")

    if session.phase == Phase.IDLE and not session.prd_slug:
        slugs = store.list_slugs()
        if slugs:
            print()
            print("Stored features:")
            for slug in slugs:
                print(f"  {slug} (PRD v{store.latest_version(RequirementsDocument.kind, slug)})")
        print()
        print("Start a feature: ff request \"<feature name>\"")
        return 0

    print(f"Feature:        {session.feature_name}")
    print(f"PRD:            {session.prd_slug} v{session.prd_version}")
    if session.tasks_version is not None:
        approved = "approved" if session.task_list_approved else "awaiting approval"
        print(f"Task list:      {session.prd_slug} v{session.tasks_version} ({approved})")
        latest_prd = store.latest_version(RequirementsDocument.kind, session.prd_slug)
        latest_tasks = store.latest_version(TaskList.kind, session.prd_slug)
        if latest_prd != session.prd_version or latest_tasks != session.tasks_version:
            print(f"WARNING: stored versions moved on (PRD v{latest_prd}, tasks v{latest_tasks})")

    if session.active_task_id:
        active = session.task(session.active_task_id)
        print(f"In progress:    {active.id}: {active.description}")

    if session.tasks:
        done = sum(1 for t in session.tasks if t.status == TASK_DONE)
        print()
        print(f"Tasks ({done}/{len(session.tasks)} done):")
        for task in session.tasks:
            indent = "  " * (task.depth - 1)
            mark = CHECKBOX.get(task.status, "[ ]")
            print(f"  {indent}{mark} {task.id} {task.description}")

    actions = engine.available_actions(session)
    print()
    print(f"Available:      {', '.join(actions) if actions else '(none)'}")
    return 0
