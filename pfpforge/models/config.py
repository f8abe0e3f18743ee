"""Generation configuration parsed from a free-text theme."""

from dataclasses import dataclass, field

DEFAULT_PALETTE = ("#00FF00", "#FF00FF", "#FFFF00")


@dataclass(frozen=True)
class GenerationConfig:
    """Structured generation configuration. Immutable once parsed."""
    subject: str                 # main character type (cat, robot, samurai)
    theme: str                   # cyberpunk, fantasy, horror
    style: str = "cartoon"       # art style
    supply: int = 5              # number of characters in the collection
    mood: str = "cool"
    face_orientation: str = "three-quarter"
    color_palette: tuple[str, ...] = field(default=DEFAULT_PALETTE)

    def __post_init__(self):
        if self.supply < 1:
            raise ValueError(f"supply must be >= 1, got {self.supply}")

    @property
    def palette_text(self) -> str:
        return ", ".join(self.color_palette)

    def to_dict(self) -> dict:
        return {
            "subject": self.subject,
            "theme": self.theme,
            "style": self.style,
            "supply": self.supply,
            "mood": self.mood,
            "face_orientation": self.face_orientation,
            "color_palette": list(self.color_palette),
        }
