"""Collection manifest - the planned list of characters."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Attribute:
    trait_type: str
    value: str


@dataclass(frozen=True)
class CharacterPlan:
    """One planned character."""
    name: str
    description: str
    dna: str                     # unique within the manifest
    edition: int                 # 1-based, matches manifest position
    timestamp: int
    attributes: tuple[Attribute, ...] = ()
    image: str = ""              # placeholder URI, not a real asset yet

    def attribute(self, trait_type: str) -> str | None:
        """Return the value for a trait type (case-insensitive)."""
        wanted = trait_type.lower()
        for attr in self.attributes:
            if attr.trait_type.lower() == wanted:
                return attr.value
        return None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "image": self.image,
            "dna": self.dna,
            "edition": self.edition,
            "date": self.timestamp,
            "attributes": [
                {"trait_type": a.trait_type, "value": a.value} for a in self.attributes
            ],
        }


@dataclass(frozen=True)
class CollectionManifest:
    plans: tuple[CharacterPlan, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.plans)

    def __iter__(self):
        return iter(self.plans)

    @property
    def dnas(self) -> list[str]:
        return [p.dna for p in self.plans]

    def to_list(self) -> list[dict]:
        return [p.to_dict() for p in self.plans]
