"""
ff init - Scaffold a project skeleton without clobbering existing work.
"""

from pathlib import Path

from featureflow.lib.config import ProjectConfig
from featureflow.lib.protected import load_protected_paths
from featureflow.scaffold.generators import CommandGenerator, TemplateGenerator
from featureflow.scaffold.initializer import SafeInitializer
from featureflow.scaffold.plan import MergeAction


def _build_generator(args, project_config: ProjectConfig, target: Path):
    variables = {"project_name": project_config.name, "target_name": target.name}
    if args.template:
        template_dir = Path(args.template).expanduser().resolve()
        if not template_dir.is_dir():
            print(f"ERROR: Template directory not found: {template_dir}")
            return None
        return TemplateGenerator(template_dir, variables)

    command = args.generator_command or project_config.scaffold_command
    if not command:
        print("ERROR: No generator. Use --template DIR, --command CMD, or set SCAFFOLD_COMMAND")
        return None
    return CommandGenerator(command, variables)


def cmd_init(args, project_config: ProjectConfig) -> int:
    """Generate a skeleton into TARGET, keeping protected paths intact."""
    target = Path(args.target).expanduser()
    if not target.is_absolute():
        target = project_config.project_dir / target
    if target.exists() and not target.is_dir():
        print(f"ERROR: Target is not a directory: {target}")
        return 2

    generator = _build_generator(args, project_config, target)
    if generator is None:
        return 2

    protected = load_protected_paths(project_config.protected_paths_file)
    initializer = SafeInitializer(
        protected,
        workers=project_config.merge_workers,
        staging_parent=project_config.staging_dir,
    )

    if args.dry_run:
        plan = initializer.preview(target, generator)
        print(f"Merge plan for {target}:")
        for entry in plan.entries:
            suffix = "/" if entry.is_dir else ""
            note = f"  ({entry.reason})" if entry.reason else ""
            print(f"  {entry.action.value:<9} {entry.rel_path}{suffix}{note}")
        counts = plan.summary()
        print()
        print(
            f"{counts[MergeAction.COPY.value]} to copy, "
            f"{counts[MergeAction.OVERWRITE.value]} to overwrite, "
            f"{counts[MergeAction.SKIP.value]} protected"
        )
        return 0

    report = initializer.run(target, generator)
    if not report.staged:
        print(f"Generated {len(report.copied)} file(s) into empty {target}")
        return 0

    print(f"Merged skeleton into {target}")
    print(f"  Copied:      {len(report.copied)}")
    print(f"  Overwritten: {len(report.overwritten)}")
    if report.conflicts:
        print(f"  Protected (kept target version): {len(report.conflicts)}")
        for rel_path in report.conflicts:
            print(f"    {rel_path}")
    return 0
