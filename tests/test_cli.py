"""Tests for the ff command line."""

import fcntl
import json

import pytest
from unittest.mock import patch

from featureflow.cli import build_parser, main
from featureflow.lib import protected as protected_module


@pytest.fixture
def project(tmp_path):
    project_dir = tmp_path / "project"
    project_dir.mkdir()
    return project_dir


@pytest.fixture(autouse=True)
def clear_protected_cache():
    protected_module._protected_cache.clear()
    yield
    protected_module._protected_cache.clear()


def ff(project, *argv):
    return main(["-C", str(project), *argv])


def read_session(project):
    return json.loads((project / ".featureflow" / "session.json").read_text())


class TestParser:
    def test_init_command_flag_does_not_clobber_subcommand(self):
        args = build_parser().parse_args(["init", "app", "--command", "npx create-vite {dest}"])
        assert args.command == "init"
        assert args.generator_command == "npx create-vite {dest}"

    def test_template_and_command_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["init", "app", "--template", "t", "--command", "c"])


class TestWorkflowCommands:
    """Drive a feature from request to done through the CLI."""

    def test_full_flow(self, project, capsys):
        assert ff(project, "request", "Login Form", "-d", "- Validate email") == 0
        assert "ff approve-prd login-form 1" in capsys.readouterr().out
        assert (project / "tasks" / "login-form-prd.v1.md").exists()

        assert ff(project, "approve-prd", "login-form", "1") == 0
        assert "ff approve-tasks login-form 1" in capsys.readouterr().out

        assert ff(project, "approve-tasks", "login-form", "1") == 0
        assert "ff start 1.1" in capsys.readouterr().out

        assert ff(project, "start", "1.1") == 0
        assert read_session(project)["phase"] == "implementing"

        assert ff(project, "done", "1.1") == 0
        out = capsys.readouterr().out
        assert "Next: ff start 1.2" in out

        assert ff(project, "start", "1.2") == 0
        assert ff(project, "done", "1.2") == 0
        assert "All tasks for 'login-form' are done." in capsys.readouterr().out
        assert read_session(project)["phase"] == "idle"

    def test_start_before_approval(self, project, capsys):
        ff(project, "request", "Login Form")
        capsys.readouterr()

        assert ff(project, "start", "1.1") == 2
        out = capsys.readouterr().out
        assert "ERROR: [InvalidTransition]" in out
        assert "awaiting_requirements_approval" in out

    def test_double_approval(self, project, capsys):
        ff(project, "request", "Login Form")
        ff(project, "approve-prd", "login-form", "1")
        capsys.readouterr()

        assert ff(project, "approve-prd", "login-form", "1") == 2
        assert "ApprovalVersionMismatch" in capsys.readouterr().out
        assert read_session(project)["phase"] == "awaiting_task_list_approval"

    def test_abandon(self, project, capsys):
        ff(project, "request", "Login Form")
        assert ff(project, "abandon") == 0
        assert "Abandoned session for 'login-form'" in capsys.readouterr().out
        assert read_session(project)["phase"] == "idle"
        assert (project / "tasks" / "login-form-prd.v1.md").exists()

    def test_empty_name(self, project, capsys):
        assert ff(project, "request", "!!!") == 2
        assert "ERROR:" in capsys.readouterr().out

    def test_locked_project(self, project, capsys):
        lock_file = project / ".featureflow" / "locks" / "session.lock"
        lock_file.parent.mkdir(parents=True)
        with open(lock_file, "w") as holder:
            fcntl.flock(holder, fcntl.LOCK_EX | fcntl.LOCK_NB)
            try:
                assert ff(project, "request", "Login Form") == 2
            finally:
                fcntl.flock(holder, fcntl.LOCK_UN)
        assert "SessionAlreadyActive" in capsys.readouterr().out


class TestReadCommands:
    def test_status_idle(self, project, capsys):
        assert ff(project, "status") == 0
        out = capsys.readouterr().out
        assert "Phase:          idle" in out
        assert 'ff request "<feature name>"' in out

    def test_status_lists_tasks(self, project, capsys):
        ff(project, "request", "Login Form")
        ff(project, "approve-prd", "login-form", "1")
        ff(project, "approve-tasks", "login-form", "1")
        ff(project, "start", "1.1")
        capsys.readouterr()

        assert ff(project, "status") == 0
        out = capsys.readouterr().out
        assert "Phase:          implementing" in out
        assert "[~] 1.1" in out
        assert "Available:      complete_task, abandon" in out

    def test_show_prd(self, project, capsys):
        ff(project, "request", "Login Form")
        capsys.readouterr()
        assert ff(project, "show", "prd", "login-form") == 0
        assert "# PRD: Login Form" in capsys.readouterr().out

    def test_show_tasks_with_progress(self, project, capsys):
        ff(project, "request", "Login Form")
        ff(project, "approve-prd", "login-form", "1")
        ff(project, "approve-tasks", "login-form", "1")
        ff(project, "start", "1.1")
        ff(project, "done", "1.1")
        capsys.readouterr()

        assert ff(project, "show", "tasks", "login-form", "--version", "1") == 0
        assert "- [x] 1.1" in capsys.readouterr().out

    def test_show_missing_is_not_found(self, project, capsys):
        assert ff(project, "show", "prd", "nope") == 1
        assert "ERROR:" in capsys.readouterr().out


class TestInitCommand:
    @pytest.fixture
    def template(self, tmp_path):
        template_dir = tmp_path / "template"
        (template_dir / "src").mkdir(parents=True)
        (template_dir / "src" / "index.ts").write_text("// {{project_name}}\n")
        (template_dir / ".cursor").mkdir()
        (template_dir / ".cursor" / "config").write_text("generated")
        return template_dir

    def test_merges_into_existing_project(self, project, template, capsys):
        (project / ".cursor").mkdir()
        (project / ".cursor" / "config").write_text("mine")

        assert ff(project, "init", ".", "--template", str(template)) == 0
        out = capsys.readouterr().out
        assert "Protected (kept target version): 1" in out
        assert (project / ".cursor" / "config").read_text() == "mine"
        assert (project / "src" / "index.ts").read_text() == f"// {project.name}\n"

    def test_dry_run(self, project, template, capsys):
        (project / "README.md").write_text("hi")
        assert ff(project, "init", ".", "--template", str(template), "--dry-run") == 0
        out = capsys.readouterr().out
        assert "skip      .cursor/config  (protected)" in out
        assert "copy      src/index.ts" in out
        assert not (project / "src").exists()

    def test_no_generator(self, project, capsys):
        assert ff(project, "init", "app") == 2
        assert "No generator" in capsys.readouterr().out

    def test_cleanup_failure_exit_code(self, project, template, tmp_path, capsys):
        (project / "README.md").write_text("hi")
        staging_parent = tmp_path / "staging"
        (project / "featureflow.env").write_text(f"STAGING_DIR={staging_parent}\n")

        with patch("featureflow.scaffold.staging.shutil.rmtree", side_effect=OSError("busy")):
            assert ff(project, "init", ".", "--template", str(template)) == 3
        assert "manually" in capsys.readouterr().out
