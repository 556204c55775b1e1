"""
ff request - Submit a feature request and draft its PRD.
"""

from featureflow.docs.models import FeatureRequest, slugify
from featureflow.lib.config import ProjectConfig
from featureflow.workflow.context import project_session


def cmd_request(args, project_config: ProjectConfig) -> int:
    """Draft a new PRD version and wait for approval."""
    name = args.name.strip()
    try:
        slugify(name)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 2

    request = FeatureRequest(
        name=name,
        description=args.description or "",
        references=tuple(args.ref or ()),
    )

    with project_session(project_config) as ctx:
        session, prd = ctx.engine.submit_feature_request(ctx.session, request)
        ctx.commit(session)

    path = ctx.store.version_path(prd.kind, prd.slug, prd.version)
    print(f"Drafted PRD '{prd.slug}' version {prd.version}")
    print(f"  File: {path}")
    print()
    print("Review the PRD, then approve it:")
    print(f"  ff approve-prd {prd.slug} {prd.version}")
    return 0
