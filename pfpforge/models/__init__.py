"""Data models."""

from .composite import CompositeRequest, CompositeResult, TraitImage, TraitRef
from .config import GenerationConfig
from .manifest import Attribute, CharacterPlan, CollectionManifest
from .project import Layer, MintedAsset, ProjectState, ProjectStatus, TraitAsset

__all__ = [
    "Attribute",
    "CharacterPlan",
    "CollectionManifest",
    "CompositeRequest",
    "CompositeResult",
    "GenerationConfig",
    "Layer",
    "MintedAsset",
    "ProjectState",
    "ProjectStatus",
    "TraitAsset",
    "TraitImage",
    "TraitRef",
]
