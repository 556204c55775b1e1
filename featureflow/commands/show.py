"""
ff show - Print a stored PRD or task list.
"""

from featureflow.docs.models import RequirementsDocument, TaskList
from featureflow.docs.store import DocumentStore
from featureflow.lib.config import ProjectConfig
from featureflow.lib.templates import render_task_list
from featureflow.workflow.session_store import load_session


def cmd_show(args, project_config: ProjectConfig) -> int:
    """Show one artifact version (latest by default)."""
    store = DocumentStore(project_config.artifacts_dir)

    if args.kind == RequirementsDocument.kind:
        prd = store.load_requirements(args.slug, args.version)
        print(f"# {args.slug} PRD v{prd.version} ({prd.status}, created {prd.created})")
        print()
        print(prd.body, end="" if prd.body.endswith("\n") else "\n")
        return 0

    task_list = store.load_task_list(args.slug, args.version)
    statuses = None
    session = load_session(project_config.session_file)
    if (session.prd_slug, session.tasks_version) == (args.slug, task_list.version):
        statuses = {t.id: t.status for t in session.tasks}

    print(f"# {args.slug} tasks v{task_list.version} ({task_list.status}, created {task_list.created})")
    print()
    print(render_task_list(task_list, statuses), end="")
    return 0
