"""featureflow - approval-gated feature workflow and safe project scaffolding."""

__version__ = "0.1.0"
