"""Business logic services."""

from .assets import TRAIT_CATEGORIES, AssetGenerator, GeneratedTrait
from .compositor import CATEGORY_POLICIES, Compositor, MissingTraitPolicy
from .config_parser import ConfigParser
from .planner import CollectionPlanner
from .project import ProjectService
from .trait_store import TraitStore

__all__ = [
    "AssetGenerator",
    "CATEGORY_POLICIES",
    "CollectionPlanner",
    "Compositor",
    "ConfigParser",
    "GeneratedTrait",
    "MissingTraitPolicy",
    "ProjectService",
    "TRAIT_CATEGORIES",
    "TraitStore",
]
