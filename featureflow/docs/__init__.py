"""
Artifact documents for featureflow.

Requirements documents (PRDs) and the task lists derived from them, plus the
versioned store that persists both.
"""

from featureflow.docs.models import (
    FeatureRequest,
    RequirementsDocument,
    TaskItem,
    TaskList,
    slugify,
)
from featureflow.docs.store import DocumentStore, SavedArtifact

__all__ = [
    "FeatureRequest",
    "RequirementsDocument",
    "TaskItem",
    "TaskList",
    "slugify",
    "DocumentStore",
    "SavedArtifact",
]
