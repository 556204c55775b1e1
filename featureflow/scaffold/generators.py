"""
Skeleton generators.

A generator is any callable taking a destination directory and filling it
with a project skeleton. Two are provided: copying a template directory, and
running an external scaffolding command such as create-next-app.
"""

import logging
import re
import shlex
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

VARIABLE_RE = re.compile(r'\{\{\s*([a-z_][a-z0-9_]*)\s*\}\}')


def substitute_variables(text: str, variables: dict[str, str]) -> str:
    """Replace {{name}} placeholders; unknown names are left as-is."""
    return VARIABLE_RE.sub(lambda m: variables.get(m.group(1), m.group(0)), text)


class TemplateGenerator:
    """Copy a template tree, substituting {{variables}} in text files."""

    def __init__(self, template_dir: Path, variables: dict[str, str] | None = None):
        self.template_dir = Path(template_dir)
        self.variables = variables or {}

    def __call__(self, dest: Path) -> None:
        if not self.template_dir.is_dir():
            raise FileNotFoundError(f"Template directory not found: {self.template_dir}")

        shutil.copytree(self.template_dir, dest, symlinks=True, dirs_exist_ok=True)
        if not self.variables:
            return

        for path in dest.rglob("*"):
            if not path.is_file() or path.is_symlink():
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                continue  # binary
            rendered = substitute_variables(content, self.variables)
            if rendered != content:
                path.write_text(rendered, encoding="utf-8")

    def __repr__(self) -> str:
        return f"TemplateGenerator({self.template_dir})"


class CommandGenerator:
    """Run an external scaffolding command that writes into {dest}.

    Example: ``npx create-next-app@latest {dest} --ts --use-npm --yes``.
    Without a {dest} placeholder the command runs with dest as its cwd.
    """

    def __init__(self, command: str, variables: dict[str, str] | None = None, timeout: int = 900):
        self.command = command
        self.variables = variables or {}
        self.timeout = timeout

    def build_argv(self, dest: Path) -> list[str]:
        argv = []
        for arg in shlex.split(self.command):
            arg = arg.replace("{dest}", str(dest))
            argv.append(substitute_variables(arg, self.variables))
        if not argv:
            raise ValueError("Scaffold command is empty")
        return argv

    def __call__(self, dest: Path) -> None:
        argv = self.build_argv(dest)
        logger.info(f"Running scaffold command: {shlex.join(argv)}")
        result = subprocess.run(
            argv,
            cwd=dest,
            capture_output=True,
            text=True,
            timeout=self.timeout,
        )
        if result.returncode != 0:
            stderr = (result.stderr or result.stdout).strip()
            raise RuntimeError(
                f"Scaffold command exited {result.returncode}: {stderr[-500:]}"
            )

    def __repr__(self) -> str:
        return f"CommandGenerator({self.command!r})"
