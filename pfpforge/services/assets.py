"""Base and trait image generation."""

import logging
from dataclasses import dataclass

from ..errors import GenerationError
from ..models import GenerationConfig
from ..utils import load_prompt, time_seed

logger = logging.getLogger(__name__)

# Trait categories generated per project, in layering order (bottom to top)
TRAIT_CATEGORIES = ("background", "clothing", "accessory", "headwear", "eyewear")

BASE_TEMPERATURE = 0.5
TRAIT_TEMPERATURE = 0.7


@dataclass(frozen=True)
class GeneratedTrait:
    """Trait image returned by the generator. Not yet persisted."""
    category: str
    description: str
    image_data: bytes


class AssetGenerator:
    """Generates the base character and individual trait images.

    Stateless: concurrent calls for different categories/variations are safe.
    Persistence is the caller's job.
    """

    def __init__(self, image_client):
        self.image = image_client

    def generate_base(self, config: GenerationConfig) -> bytes:
        """Generate the anchor character image for a collection."""
        prompt = load_prompt("base").substitute(_style_fields(config))
        image_bytes = self._generate(
            prompt,
            temperature=BASE_TEMPERATURE,
            seed=time_seed(),
            label="BASE",
            category="body",
        )
        logger.info("Generated base image (%d bytes)", len(image_bytes))
        return image_bytes

    def generate_trait(
        self,
        category: str,
        config: GenerationConfig,
        variation: int,
    ) -> GeneratedTrait:
        """Generate one trait image for a category/variation."""
        category = category.strip().lower()
        prompt = load_prompt("trait").substitute(
            _style_fields(config), category=category, variation=variation
        )
        image_bytes = self._generate(
            prompt,
            temperature=TRAIT_TEMPERATURE,
            seed=time_seed(offset=variation),
            label=f"TRAIT {category} {variation}",
            category=category,
            variation=variation,
        )
        logger.info("Generated %s variation %d (%d bytes)", category, variation, len(image_bytes))
        return GeneratedTrait(
            category=category,
            description=f"{category} variation {variation}",
            image_data=image_bytes,
        )

    def _generate(
        self,
        prompt: str,
        temperature: float,
        seed: int,
        label: str,
        category: str,
        variation: int | None = None,
    ) -> bytes:
        try:
            image_bytes = self.image.generate_image(
                prompt, temperature=temperature, seed=seed, label=label
            )
        except GenerationError as e:
            raise type(e)(str(e), category=category, variation=variation) from e

        if not image_bytes:
            raise GenerationError(
                f"No image generated for {label.lower()}",
                category=category,
                variation=variation,
            )
        return image_bytes


def _style_fields(config: GenerationConfig) -> dict:
    return {
        "subject": config.subject,
        "theme": config.theme,
        "style": config.style,
        "mood": config.mood,
        "face_orientation": config.face_orientation,
        "palette": config.palette_text,
    }
