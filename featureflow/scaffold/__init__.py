"""
Safe project scaffolding.

Generates a skeleton in isolation and merges it into a possibly non-empty
target without clobbering protected paths.
"""

from featureflow.scaffold.apply import MergeReport, apply_merge_plan
from featureflow.scaffold.generators import CommandGenerator, TemplateGenerator
from featureflow.scaffold.initializer import SafeInitializer
from featureflow.scaffold.plan import MergeAction, MergeEntry, MergePlan, compute_merge_plan
from featureflow.scaffold.staging import staging_area

__all__ = [
    "MergeReport",
    "apply_merge_plan",
    "CommandGenerator",
    "TemplateGenerator",
    "SafeInitializer",
    "MergeAction",
    "MergeEntry",
    "MergePlan",
    "compute_merge_plan",
    "staging_area",
]
