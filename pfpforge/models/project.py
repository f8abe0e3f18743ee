"""Project lifecycle record, layers and trait assets."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ProjectStatus(str, Enum):
    DRAFT = "draft"
    GENERATING = "generating"
    SAVED = "saved"
    PUBLISHED = "published"


@dataclass(frozen=True)
class TraitAsset:
    """One generated trait image. Immutable once persisted."""
    id: str
    project_id: str
    category: str                # lower-cased category key
    description: str
    image_data: bytes            # raw image bytes, never a data URI
    variation: int | None = None


@dataclass(frozen=True)
class Layer:
    """A named trait category with its generated variants."""
    name: str                    # display label ("Body", "Background")
    traits: tuple[TraitAsset, ...] = ()
    parent: str = ""             # layer this one is drawn over

    @property
    def key(self) -> str:
        return self.name.lower()

    def append(self, trait: TraitAsset) -> "Layer":
        """Return a new layer with trait appended."""
        return Layer(name=self.name, traits=self.traits + (trait,), parent=self.parent)


@dataclass
class ProjectState:
    """Lifecycle record threading a collection's artifacts together."""
    id: str
    owner_address: str
    prompt: str
    name: str
    status: ProjectStatus = ProjectStatus.DRAFT
    layers: tuple[Layer, ...] = ()
    preview_image: bytes | None = None
    contract_address: str | None = None

    def layer(self, name: str) -> Layer | None:
        key = name.lower()
        for layer in self.layers:
            if layer.key == key:
                return layer
        return None

    @property
    def base_trait(self) -> TraitAsset | None:
        """First trait of the Body layer - the compositing anchor."""
        body = self.layer("Body")
        if body and body.traits:
            return body.traits[0]
        return None


@dataclass
class MintedAsset:
    """A finished collection item derived from the project's layers."""
    id: str
    project_id: str
    name: str
    description: str
    image: bytes | None = None
    attributes: list[dict[str, Any]] = field(default_factory=list)
    rarity_score: float = 100.0
    mint_status: str = "pending"
