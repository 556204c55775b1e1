#!/usr/bin/env python3
"""featureflow CLI entrypoint."""

import argparse
import logging
import sys
from pathlib import Path

from featureflow.commands import approve as cmd_approve_module
from featureflow.commands import init as cmd_init_module
from featureflow.commands import request as cmd_request_module
from featureflow.commands import show as cmd_show_module
from featureflow.commands import status as cmd_status_module
from featureflow.commands import task as cmd_task_module
from featureflow.lib.config import load_project_config
from featureflow.lib.constants import EXIT_ERROR, EXIT_NOT_FOUND, EXIT_RESIDUE
from featureflow.lib.errors import (
    ArtifactNotFound,
    FeatureflowError,
    MergeApplyFailure,
    StagingCleanupFailure,
)


def get_project_config(args):
    """Load project config from --project-dir or the working directory."""
    project_dir = Path(args.project_dir) if args.project_dir else Path.cwd()
    if not project_dir.is_dir():
        print(f"ERROR: Project directory not found: {project_dir}")
        sys.exit(EXIT_ERROR)
    try:
        return load_project_config(project_dir)
    except ValueError as e:
        print(f"ERROR: Invalid project config: {e}")
        sys.exit(EXIT_ERROR)


def run_command(func, args) -> int:
    """Run a command module function, turning featureflow errors into exit codes."""
    project_config = get_project_config(args)
    try:
        return func(args, project_config)
    except StagingCleanupFailure as e:
        print(f"ERROR: {e}")
        print(f"Remove {e.staging_dir} manually before retrying.")
        return EXIT_RESIDUE
    except MergeApplyFailure as e:
        print(f"ERROR: {e}")
        if e.applied:
            print(f"The target was partially updated ({len(e.applied)} path(s) written).")
        return EXIT_ERROR
    except ArtifactNotFound as e:
        print(f"ERROR: {e}")
        return EXIT_NOT_FOUND
    except FeatureflowError as e:
        print(f"ERROR: [{e.kind}] {e}")
        return EXIT_ERROR


def cmd_request(args):
    return run_command(cmd_request_module.cmd_request, args)


def cmd_approve_prd(args):
    return run_command(cmd_approve_module.cmd_approve_prd, args)


def cmd_approve_tasks(args):
    return run_command(cmd_approve_module.cmd_approve_tasks, args)


def cmd_start(args):
    return run_command(cmd_task_module.cmd_start, args)


def cmd_done(args):
    return run_command(cmd_task_module.cmd_done, args)


def cmd_abandon(args):
    return run_command(cmd_task_module.cmd_abandon, args)


def cmd_status(args):
    return run_command(cmd_status_module.cmd_status, args)


def cmd_show(args):
    return run_command(cmd_show_module.cmd_show, args)


def cmd_init(args):
    return run_command(cmd_init_module.cmd_init, args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='ff', description='Approval-gated feature workflow')
    parser.add_argument('--project-dir', '-C', help='Project directory (default: current directory)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log workflow transitions')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # ff request
    p_request = subparsers.add_parser('request', help='Submit a feature request and draft its PRD')
    p_request.add_argument('name', help='Feature name')
    p_request.add_argument('--description', '-d', help='Free-text description; "- " lines become requirements')
    p_request.add_argument('--ref', '-r', action='append', help='Reference (file, URL); repeatable')
    p_request.set_defaults(func=cmd_request)

    # ff approve-prd
    p_approve_prd = subparsers.add_parser('approve-prd', help='Approve a PRD version and derive tasks')
    p_approve_prd.add_argument('slug', help='Feature slug')
    p_approve_prd.add_argument('version', type=int, help='PRD version being approved')
    p_approve_prd.set_defaults(func=cmd_approve_prd)

    # ff approve-tasks
    p_approve_tasks = subparsers.add_parser('approve-tasks', help='Approve a task list version')
    p_approve_tasks.add_argument('slug', help='Feature slug')
    p_approve_tasks.add_argument('version', type=int, help='Task list version being approved')
    p_approve_tasks.set_defaults(func=cmd_approve_tasks)

    # ff start
    p_start = subparsers.add_parser('start', help='Start implementing one task')
    p_start.add_argument('task_id', help='Task id, e.g. 1.1')
    p_start.set_defaults(func=cmd_start)

    # ff done
    p_done = subparsers.add_parser('done', help='Mark the in-progress task done')
    p_done.add_argument('task_id', help='Task id, e.g. 1.1')
    p_done.set_defaults(func=cmd_done)

    # ff abandon
    p_abandon = subparsers.add_parser('abandon', help='Drop the current feature session')
    p_abandon.set_defaults(func=cmd_abandon)

    # ff status
    p_status = subparsers.add_parser('status', help='Show session phase and task progress')
    p_status.set_defaults(func=cmd_status)

    # ff show
    p_show = subparsers.add_parser('show', help='Print a stored PRD or task list')
    p_show.add_argument('kind', choices=['prd', 'tasks'], help='Artifact kind')
    p_show.add_argument('slug', help='Feature slug')
    p_show.add_argument('--version', type=int, help='Version (default: latest)')
    p_show.set_defaults(func=cmd_show)

    # ff init
    p_init = subparsers.add_parser('init', help='Scaffold a project skeleton safely')
    p_init.add_argument('target', help='Target directory (may already hold work)')
    source = p_init.add_mutually_exclusive_group()
    source.add_argument('--template', '-t', help='Template directory to copy')
    source.add_argument('--command', '-c', dest='generator_command', help='Generator command; {dest} is the output dir')
    p_init.add_argument('--dry-run', action='store_true', help='Print the merge plan only')
    p_init.set_defaults(func=cmd_init)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
