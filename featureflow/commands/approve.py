"""
ff approve-prd / approve-tasks - Human approval gates.
"""

from featureflow.lib.config import ProjectConfig
from featureflow.workflow.context import project_session


def cmd_approve_prd(args, project_config: ProjectConfig) -> int:
    """Approve a PRD version and derive its task list."""
    with project_session(project_config) as ctx:
        session, task_list = ctx.engine.approve_requirements(ctx.session, args.slug, args.version)
        ctx.commit(session)

    path = ctx.store.version_path(task_list.kind, task_list.slug, task_list.version)
    print(f"Approved PRD '{args.slug}' version {args.version}")
    print(f"Drafted task list version {task_list.version} ({len(task_list.items)} tasks)")
    print(f"  File: {path}")
    print()
    print("Review the tasks, then approve them:")
    print(f"  ff approve-tasks {task_list.slug} {task_list.version}")
    return 0


def cmd_approve_tasks(args, project_config: ProjectConfig) -> int:
    """Approve a task list version. Implementation still needs `ff start`."""
    with project_session(project_config) as ctx:
        session = ctx.engine.approve_task_list(ctx.session, args.slug, args.version)
        ctx.commit(session)

    print(f"Approved task list '{args.slug}' version {args.version}")
    pending = session.pending_tasks()
    startable = [t for t in pending if not session.children(t.id)]
    if startable:
        print()
        print("Start the first task:")
        print(f"  ff start {startable[0].id}")
    return 0
