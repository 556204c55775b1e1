"""Tests for featureflow.scaffold: staging, merge planning, merge apply, SafeInitializer."""

import os
import shutil
import sys

import pytest
from unittest.mock import patch

from featureflow.lib.errors import (
    MergeApplyFailure,
    StagingCleanupFailure,
    StagingCreationFailure,
)
from featureflow.lib.protected import ProtectedPathSet
from featureflow.scaffold.apply import apply_merge_plan
from featureflow.scaffold.generators import CommandGenerator, TemplateGenerator, substitute_variables
from featureflow.scaffold.initializer import SafeInitializer, is_empty_dir
from featureflow.scaffold.plan import MergeAction, MergeEntry, MergePlan, compute_merge_plan
from featureflow.scaffold.staging import STAGING_PREFIX, staging_area


def write(root, rel_path, content):
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def snapshot(root):
    """Map of relative path -> bytes for every file under root."""
    files = {}
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            path = os.path.join(dirpath, name)
            with open(path, "rb") as f:
                files[os.path.relpath(path, root)] = f.read()
    return files


def skeleton(files):
    """Generator that writes the given {rel_path: bytes} into dest."""
    def generate(dest):
        for rel_path, content in files.items():
            write(dest, rel_path, content)
    return generate


def staging_dirs(parent):
    return [p for p in parent.iterdir() if p.name.startswith(STAGING_PREFIX)]


@pytest.fixture
def staging_parent(tmp_path):
    parent = tmp_path / "staging"
    parent.mkdir()
    return parent


@pytest.fixture
def initializer(staging_parent):
    return SafeInitializer(ProtectedPathSet(), workers=4, staging_parent=staging_parent)


@pytest.fixture
def existing_project(tmp_path):
    target = tmp_path / "app"
    write(target, ".cursor/config", b"user settings")
    write(target, "tasks/Foo-PRD.md", b"# Foo\n")
    return target


class TestStagingArea:
    def test_created_outside_target_and_removed(self, tmp_path, staging_parent):
        target = tmp_path / "app"
        with staging_area(target, staging_parent) as staging:
            assert staging.is_dir()
            assert staging.parent == staging_parent
            write(staging, "a/b.txt", b"x")
        assert not staging.exists()

    def test_removed_when_body_raises(self, tmp_path, staging_parent):
        with pytest.raises(RuntimeError):
            with staging_area(tmp_path / "app", staging_parent) as staging:
                raise RuntimeError("boom")
        assert not staging.exists()

    def test_parent_inside_target_rejected(self, tmp_path):
        target = tmp_path / "app"
        target.mkdir()
        with pytest.raises(StagingCreationFailure):
            with staging_area(target, target / ".staging"):
                pass

    def test_cleanup_failure_is_distinct(self, tmp_path, staging_parent):
        with patch("featureflow.scaffold.staging.shutil.rmtree", side_effect=PermissionError("denied")):
            with pytest.raises(StagingCleanupFailure) as exc:
                with staging_area(tmp_path / "app", staging_parent):
                    pass
        assert exc.value.kind == "StagingCleanupFailure"
        shutil.rmtree(exc.value.staging_dir)


class TestComputeMergePlan:
    """Plans are computed without writing anything."""

    def test_actions(self, tmp_path, existing_project):
        staging = tmp_path / "stage"
        write(staging, ".cursor/config", b"generated")
        write(staging, "src/index.ts", b"export {}\n")
        write(existing_project, "README.md", b"old")
        write(staging, "README.md", b"new")

        before = snapshot(existing_project)
        plan = compute_merge_plan(staging, existing_project, ProtectedPathSet())

        actions = {e.rel_path: e.action for e in plan.entries}
        assert actions == {
            ".cursor/config": MergeAction.SKIP,
            "README.md": MergeAction.OVERWRITE,
            "src/index.ts": MergeAction.COPY,
        }
        assert plan.conflicts == [".cursor/config"]
        assert plan.summary() == {"copy": 1, "overwrite": 1, "skip": 1}
        assert snapshot(existing_project) == before

    def test_protected_even_when_absent_in_target(self, tmp_path):
        staging = tmp_path / "stage"
        write(staging, "tasks/generated.md", b"x")
        plan = compute_merge_plan(staging, tmp_path / "app", ProtectedPathSet())
        assert plan.entries[0].action == MergeAction.SKIP

    def test_empty_leaf_directories(self, tmp_path):
        staging = tmp_path / "stage"
        (staging / "public" / "assets").mkdir(parents=True)
        write(staging, "src/main.ts", b"")
        plan = compute_merge_plan(staging, tmp_path / "app", ProtectedPathSet())

        entries = {e.rel_path: e.is_dir for e in plan.entries}
        assert entries == {"public/assets": True, "src/main.ts": False}

    def test_symlinked_directory_is_skipped(self, tmp_path, existing_project):
        staging = tmp_path / "stage"
        write(staging, "conf/config", b"generated")
        os.symlink(".cursor", existing_project / "conf")

        plan = compute_merge_plan(staging, existing_project, ProtectedPathSet())
        entry = plan.entries[0]
        assert entry.action == MergeAction.SKIP
        assert entry.reason == "conf is a symlink in the target"


class TestApplyMergePlan:
    def test_rejects_duplicate_entries(self, tmp_path):
        plan = MergePlan(
            staging=tmp_path / "stage",
            target=tmp_path / "app",
            entries=(
                MergeEntry("a.txt", MergeAction.COPY),
                MergeEntry("a.txt", MergeAction.OVERWRITE),
            ),
        )
        with pytest.raises(ValueError):
            apply_merge_plan(plan)

    def test_conflicts_logged(self, tmp_path, existing_project, caplog):
        staging = tmp_path / "stage"
        write(staging, ".cursor/config", b"generated")
        plan = compute_merge_plan(staging, existing_project, ProtectedPathSet())

        with caplog.at_level("INFO", logger="featureflow.scaffold.apply"):
            report = apply_merge_plan(plan)
        assert report.conflicts == [".cursor/config"]
        assert "[MERGE] conflict: .cursor/config" in caplog.text

    def test_io_error_reports_partial_state(self, tmp_path):
        staging = tmp_path / "stage"
        target = tmp_path / "app"
        write(staging, "a.txt", b"a")
        write(staging, "b.txt", b"b")
        target.mkdir()
        (target / "b.txt").mkdir()  # a directory where the skeleton has a file

        plan = compute_merge_plan(staging, target, ProtectedPathSet())
        with pytest.raises(MergeApplyFailure) as exc:
            apply_merge_plan(plan, workers=2)
        assert exc.value.path == "b.txt"
        assert exc.value.applied == ["a.txt"]
        assert (target / "a.txt").read_bytes() == b"a"


class TestSafeInitializer:
    """End-to-end merges into existing targets."""

    def test_protected_scenario(self, initializer, existing_project):
        """Protected files survive; new files arrive; one conflict is reported."""
        generator = skeleton({
            ".cursor/config": b"generated settings",
            "src/index.ts": b"console.log('hi')\n",
        })

        report = initializer.run(existing_project, generator)

        assert (existing_project / ".cursor/config").read_bytes() == b"user settings"
        assert (existing_project / "tasks/Foo-PRD.md").read_bytes() == b"# Foo\n"
        assert (existing_project / "src/index.ts").read_bytes() == b"console.log('hi')\n"
        assert report.conflicts == [".cursor/config"]
        assert report.copied == ["src/index.ts"]
        assert report.staged

    def test_idempotent(self, initializer, existing_project):
        generator = skeleton({
            ".cursor/config": b"generated",
            "src/index.ts": b"v1",
            "package.json": b"{}",
        })
        write(existing_project, "package.json", b'{"name": "old"}')

        initializer.run(existing_project, generator)
        once = snapshot(existing_project)
        initializer.run(existing_project, generator)
        assert snapshot(existing_project) == once

    def test_protected_paths_never_modified(self, initializer, existing_project):
        write(existing_project, ".git/HEAD", b"ref: refs/heads/main\n")
        protected_before = {
            k: v for k, v in snapshot(existing_project).items()
            if ProtectedPathSet().is_protected(k)
        }
        generator = skeleton({
            ".git/HEAD": b"ref: refs/heads/scaffold\n",
            "tasks/new-prd.md": b"generated",
            "src/app.ts": b"",
        })

        initializer.run(existing_project, generator)

        after = snapshot(existing_project)
        assert {k: v for k, v in after.items() if ProtectedPathSet().is_protected(k)} == protected_before
        assert "src/app.ts" in after

    def test_staging_removed_on_success(self, initializer, staging_parent, existing_project):
        initializer.run(existing_project, skeleton({"src/index.ts": b""}))
        assert staging_dirs(staging_parent) == []

    def test_staging_removed_when_generator_fails(self, initializer, staging_parent, existing_project):
        def broken(dest):
            write(dest, "partial.txt", b"x")
            raise RuntimeError("npx exited 1")

        before = snapshot(existing_project)
        with pytest.raises(StagingCreationFailure):
            initializer.run(existing_project, broken)
        assert staging_dirs(staging_parent) == []
        assert snapshot(existing_project) == before

    def test_staging_removed_when_merge_fails(self, initializer, staging_parent, existing_project):
        (existing_project / "src").write_text("a file where the skeleton has a directory")
        with pytest.raises(MergeApplyFailure):
            initializer.run(existing_project, skeleton({"src/index.ts": b""}))
        assert staging_dirs(staging_parent) == []

    def test_cleanup_failure_surfaces(self, initializer, staging_parent, existing_project):
        with patch("featureflow.scaffold.staging.shutil.rmtree", side_effect=OSError("busy")):
            with pytest.raises(StagingCleanupFailure):
                initializer.run(existing_project, skeleton({"src/index.ts": b""}))
        for leftover in staging_dirs(staging_parent):
            shutil.rmtree(leftover)

    def test_empty_target_fast_path(self, initializer, staging_parent, tmp_path):
        target = tmp_path / "fresh"
        report = initializer.run(target, skeleton({"src/index.ts": b"", "README.md": b"hi"}))

        assert not report.staged
        assert report.copied == ["README.md", "src/index.ts"]
        assert (target / "README.md").read_bytes() == b"hi"
        assert staging_dirs(staging_parent) == []

    def test_preview_does_not_touch_target(self, initializer, staging_parent, existing_project):
        before = snapshot(existing_project)
        plan = initializer.preview(existing_project, skeleton({".cursor/config": b"x", "src/a.ts": b""}))

        assert plan.conflicts == [".cursor/config"]
        assert snapshot(existing_project) == before
        assert staging_dirs(staging_parent) == []

    def test_symlinked_directory_cannot_reach_protected(self, initializer, existing_project):
        write(existing_project, ".cursor/config", b"ORIGINAL")
        os.symlink(".cursor", existing_project / "conf")

        report = initializer.run(existing_project, skeleton({
            "conf/config": b"CLOBBERED",
            "src/index.ts": b"",
        }))

        assert (existing_project / ".cursor/config").read_bytes() == b"ORIGINAL"
        assert report.conflicts == ["conf/config"]
        assert report.overwritten == []
        assert report.copied == ["src/index.ts"]

    def test_symlink_leaving_target_is_skipped(self, initializer, tmp_path, existing_project):
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        os.symlink(elsewhere, existing_project / "out")

        report = initializer.run(existing_project, skeleton({"out/x.txt": b"x"}))

        assert list(elsewhere.iterdir()) == []
        assert report.conflicts == ["out/x.txt"]

    def test_file_symlink_to_protected_is_skipped(self, initializer, existing_project):
        os.symlink("tasks/Foo-PRD.md", existing_project / "notes.md")

        report = initializer.run(existing_project, skeleton({"notes.md": b"generated"}))

        assert (existing_project / "tasks/Foo-PRD.md").read_bytes() == b"# Foo\n"
        assert report.conflicts == ["notes.md"]

    def test_target_is_file(self, initializer, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("x")
        with pytest.raises(NotADirectoryError):
            is_empty_dir(target)


class TestGenerators:
    def test_substitute_variables(self):
        text = "name: {{ project_name }} / {{unknown}}"
        assert substitute_variables(text, {"project_name": "demo"}) == "name: demo / {{unknown}}"

    def test_template_generator(self, tmp_path):
        template = tmp_path / "template"
        write(template, "package.json", b'{"name": "{{project_name}}"}')
        write(template, "logo.bin", b"\xff\xfe\x00")
        dest = tmp_path / "out"
        dest.mkdir()

        TemplateGenerator(template, {"project_name": "demo"})(dest)
        assert (dest / "package.json").read_text() == '{"name": "demo"}'
        assert (dest / "logo.bin").read_bytes() == b"\xff\xfe\x00"

    def test_template_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TemplateGenerator(tmp_path / "nope")(tmp_path)

    def test_command_argv(self, tmp_path):
        generator = CommandGenerator("npx create-next-app@latest {dest} --ts")
        assert generator.build_argv(tmp_path) == ["npx", "create-next-app@latest", str(tmp_path), "--ts"]

    def test_command_failure_becomes_staging_failure(self, initializer, existing_project):
        command = f"{sys.executable} -c 'import sys; sys.exit(3)'"
        with pytest.raises(StagingCreationFailure, match="exited 3"):
            initializer.run(existing_project, CommandGenerator(command))

    def test_command_runs_in_staging(self, initializer, existing_project):
        command = f"{sys.executable} -c \"open('generated.txt', 'w').write('ok')\""
        report = initializer.run(existing_project, CommandGenerator(command))
        assert report.copied == ["generated.txt"]
        assert (existing_project / "generated.txt").read_text() == "ok"
