"""
ff start / done / abandon - Move through implementation one task at a time.
"""

from featureflow.lib.config import ProjectConfig
from featureflow.workflow.context import project_session
from featureflow.workflow.session import Phase


def cmd_start(args, project_config: ProjectConfig) -> int:
    """Mark a pending task in progress."""
    with project_session(project_config) as ctx:
        session = ctx.engine.start_task(ctx.session, args.task_id)
        ctx.commit(session)

    task = session.task(args.task_id)
    print(f"Started {task.id}: {task.description}")
    print(f"When finished: ff done {task.id}")
    return 0


def cmd_done(args, project_config: ProjectConfig) -> int:
    """Mark the in-progress task done."""
    with project_session(project_config) as ctx:
        session = ctx.engine.complete_task(ctx.session, args.task_id)
        ctx.commit(session)

    print(f"Completed {args.task_id}")
    if session.phase == Phase.IDLE:
        print(f"All tasks for '{session.prd_slug}' are done.")
        return 0

    remaining = [t for t in session.pending_tasks() if not session.children(t.id)]
    print(f"{len(remaining)} task(s) remaining")
    if remaining:
        print(f"  Next: ff start {remaining[0].id}  ({remaining[0].description})")
    return 0


def cmd_abandon(args, project_config: ProjectConfig) -> int:
    """Drop the current feature session. Stored documents are kept."""
    with project_session(project_config) as ctx:
        previous = ctx.session
        session = ctx.engine.abandon(previous)
        ctx.commit(session)

    if previous.phase == Phase.IDLE:
        print("No active feature session.")
    else:
        print(f"Abandoned session for '{previous.prd_slug}' (was {previous.phase.value})")
    return 0
