"""
Versioned artifact storage.

Artifacts are stored per feature slug under the artifacts directory:

  tasks/<slug>-prd.v1.md      requirements body, one file per version
  tasks/<slug>-prd.json       index of every PRD version and its status
  tasks/<slug>-tasks.v1.md    task checklist, one file per version
  tasks/<slug>-tasks.json     index of every task list version

Version files are created exclusively and never rewritten; a save always
produces the next version. Index files are replaced atomically.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path

from featureflow.docs.models import RequirementsDocument, TaskItem, TaskList
from featureflow.lib.constants import (
    PRD_SUFFIX,
    STATUS_APPROVED,
    TASKS_SUFFIX,
    VERSION_FILE_RE,
)
from featureflow.lib.errors import ArtifactNotApproved, ArtifactNotFound, PersistenceFailure
from featureflow.lib.templates import render_task_list
from featureflow.lib.validate import validate_before_write, validate_file

logger = logging.getLogger(__name__)

SUFFIXES = {
    RequirementsDocument.kind: PRD_SUFFIX,
    TaskList.kind: TASKS_SUFFIX,
}


@dataclass(frozen=True)
class SavedArtifact:
    """Result of a save: the stored artifact and where its version lives."""
    artifact: RequirementsDocument | TaskList
    path: Path

    @property
    def version(self) -> int:
        return self.artifact.version


class DocumentStore:
    """Persists RequirementsDocument and TaskList versions for one project."""

    def __init__(self, root: Path):
        self.root = Path(root)

    # ── naming ──────────────────────────────────────────────────────────────

    def stem(self, kind: str, slug: str) -> str:
        if kind not in SUFFIXES:
            raise ValueError(f"Unknown artifact kind: {kind}")
        return f"{slug}{SUFFIXES[kind]}"

    def index_path(self, kind: str, slug: str) -> Path:
        return self.root / f"{self.stem(kind, slug)}.json"

    def version_path(self, kind: str, slug: str, version: int) -> Path:
        return self.root / f"{self.stem(kind, slug)}.v{version}.md"

    # ── index handling ──────────────────────────────────────────────────────

    def _read_index(self, kind: str, slug: str) -> dict | None:
        path = self.index_path(kind, slug)
        if not path.exists():
            return None
        return validate_file(path, "artifact_index")

    def _write_index(self, index: dict) -> None:
        path = self.index_path(index["kind"], index["slug"])
        validate_before_write(index, "artifact_index", path)

        try:
            fd, temp_path = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.stem}_", suffix=".json.tmp"
            )
        except OSError as e:
            raise PersistenceFailure(path, str(e)) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(index, f, indent=2)
                f.write("\n")
            os.replace(temp_path, path)
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise PersistenceFailure(path, str(e)) from e

    def _highest_on_disk(self, kind: str, slug: str) -> int:
        """Highest version number present as a body file, indexed or not."""
        stem = self.stem(kind, slug)
        highest = 0
        if not self.root.exists():
            return 0
        for f in self.root.glob(f"{stem}.v*.md"):
            match = VERSION_FILE_RE.match(f.name)
            if match and match.group("stem") == stem:
                highest = max(highest, int(match.group("version")))
        return highest

    def _require_approved_prd(self, slug: str, version: int) -> None:
        for entry in self.versions(RequirementsDocument.kind, slug):
            if entry["version"] == version:
                if entry["status"] != STATUS_APPROVED:
                    raise ArtifactNotApproved(RequirementsDocument.kind, slug, version)
                return
        raise ArtifactNotFound(RequirementsDocument.kind, slug, version)

    # ── public API ──────────────────────────────────────────────────────────

    def latest_version(self, kind: str, slug: str) -> int:
        """Latest indexed version for the slug, 0 if none."""
        index = self._read_index(kind, slug)
        if not index or not index["versions"]:
            return 0
        return max(v["version"] for v in index["versions"])

    def versions(self, kind: str, slug: str) -> list[dict]:
        """Index entries for every stored version, oldest first."""
        index = self._read_index(kind, slug)
        if not index:
            return []
        return sorted(index["versions"], key=lambda v: v["version"])

    def list_slugs(self) -> list[str]:
        """Slugs that have at least one stored PRD."""
        if not self.root.exists():
            return []
        suffix = f"{PRD_SUFFIX}.json"
        return sorted(
            f.name[: -len(suffix)] for f in self.root.glob(f"*{suffix}")
        )

    def save(self, artifact: RequirementsDocument | TaskList) -> SavedArtifact:
        """Store the artifact as a new version.

        The version written is recorded on the returned artifact; existing
        versions are never touched.

        Raises:
            ArtifactNotFound: if a task list names a PRD version that was never stored
            ArtifactNotApproved: if a task list names a PRD version still pending
            PersistenceFailure: if the artifacts directory is not writable
        """
        kind = artifact.kind
        slug = artifact.slug
        if kind == TaskList.kind:
            self._require_approved_prd(artifact.prd_slug, artifact.prd_version)

        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceFailure(self.root, str(e)) from e

        index = self._read_index(kind, slug) or {
            "kind": kind,
            "slug": slug,
            "feature_name": artifact.feature_name,
            "versions": [],
        }
        indexed = max((v["version"] for v in index["versions"]), default=0)
        version = max(indexed, self._highest_on_disk(kind, slug)) + 1
        created = datetime.now().isoformat(timespec="seconds")

        stored = replace(artifact, version=version, created=created)
        body_path = self.version_path(kind, slug, version)
        body = stored.body if kind == RequirementsDocument.kind else render_task_list(stored)

        try:
            with open(body_path, "x", encoding="utf-8") as f:
                f.write(body)
        except OSError as e:
            raise PersistenceFailure(body_path, str(e)) from e

        entry = {
            "version": version,
            "status": stored.status,
            "created": created,
            "approved_at": None,
            "file": body_path.name,
            "references": list(stored.references),
        }
        if kind == TaskList.kind:
            entry["prd_slug"] = stored.prd_slug
            entry["prd_version"] = stored.prd_version
            entry["items"] = [
                {"id": item.id, "description": item.description} for item in stored.items
            ]

        index["feature_name"] = stored.feature_name
        index["versions"].append(entry)
        self._write_index(index)

        logger.info(f"Saved {kind} {slug} v{version} -> {body_path}")
        return SavedArtifact(artifact=stored, path=body_path)

    def mark_approved(self, kind: str, slug: str, version: int):
        """Record approval of one version and return the approved artifact."""
        index = self._read_index(kind, slug)
        if not index:
            raise ArtifactNotFound(kind, slug)

        for entry in index["versions"]:
            if entry["version"] == version:
                entry["status"] = STATUS_APPROVED
                entry["approved_at"] = datetime.now().isoformat(timespec="seconds")
                break
        else:
            raise ArtifactNotFound(kind, slug, version)

        self._write_index(index)
        logger.info(f"Approved {kind} {slug} v{version}")
        return self._load(kind, slug, version)

    def load_requirements(self, slug: str, version: int | None = None) -> RequirementsDocument:
        """Load a PRD (latest version by default).

        Raises:
            ArtifactNotFound: if the slug or version does not exist
        """
        return self._load(RequirementsDocument.kind, slug, version)

    def load_task_list(self, slug: str, version: int | None = None) -> TaskList:
        """Load a task list (latest version by default).

        Raises:
            ArtifactNotFound: if the slug or version does not exist
        """
        return self._load(TaskList.kind, slug, version)

    def _load(self, kind: str, slug: str, version: int | None):
        index = self._read_index(kind, slug)
        if not index or not index["versions"]:
            raise ArtifactNotFound(kind, slug, version)

        if version is None:
            entry = max(index["versions"], key=lambda v: v["version"])
        else:
            matches = [v for v in index["versions"] if v["version"] == version]
            if not matches:
                raise ArtifactNotFound(kind, slug, version)
            entry = matches[0]

        body_path = self.root / entry["file"]
        try:
            body = body_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ArtifactNotFound(kind, slug, entry["version"]) from None

        common = dict(
            slug=slug,
            feature_name=index["feature_name"],
            version=entry["version"],
            status=entry["status"],
            created=entry["created"],
            references=tuple(entry.get("references", [])),
        )
        if kind == RequirementsDocument.kind:
            return RequirementsDocument(body=body, **common)

        return TaskList(
            prd_slug=entry["prd_slug"],
            prd_version=entry["prd_version"],
            items=tuple(TaskItem(id=i["id"], description=i["description"]) for i in entry["items"]),
            **common,
        )
