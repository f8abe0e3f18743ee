"""Collection generation engine."""

from .engine import CollectionEngine, RunResult, TraitBatch, TraitFailure

__all__ = ["CollectionEngine", "RunResult", "TraitBatch", "TraitFailure"]
