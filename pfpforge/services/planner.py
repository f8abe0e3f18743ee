"""Collection planner - expands a config into a manifest of characters."""

import logging
import time
from typing import Callable

from ..config import DEFAULT_COLLECTION_SIZE
from ..errors import ManifestDecodeError, ManifestValidationError, ParseError
from ..models import Attribute, CharacterPlan, CollectionManifest, GenerationConfig
from ..utils import decode_json_payload, load_prompt

logger = logging.getLogger(__name__)

REQUIRED_CATEGORIES = ("Background", "Body", "Head")

# Values the model copies from the example instead of designing a trait
PLACEHOLDER_VALUES = {"specific value", "...", "tbd", "todo", "value", "placeholder"}


class CollectionPlanner:
    """Plan a collection of unique characters with one text call.

    Malformed output is a hard failure: the manifest is never truncated or padded.
    """

    def __init__(self, llm, clock: Callable[[], float] = time.time):
        self.llm = llm
        self.clock = clock

    def plan(
        self,
        config: GenerationConfig | str,
        size: int = DEFAULT_COLLECTION_SIZE,
    ) -> CollectionManifest:
        """
        Plan `size` characters for a config (or raw theme string).

        Raises:
            ManifestDecodeError: Response was not a decodable JSON array.
            ManifestValidationError: Length, dna, edition or attribute invariant broken.
        """
        if size < 1:
            raise ManifestValidationError(f"Collection size must be >= 1, got {size}")

        theme = self._theme_text(config)
        timestamp = int(self.clock())
        system_prompt = load_prompt("plan_collection").substitute(size=size)
        user_message = (
            f"Theme: {theme}\n"
            f"Collection Size: {size}\n"
            f"Current Timestamp: {timestamp}"
        )

        text = self.llm.call(system_prompt, user_message, label="PLAN")
        logger.debug("Plan response: %s", text)

        try:
            data = decode_json_payload(text, expect=list)
        except ParseError as e:
            raise ManifestDecodeError(f"Failed to decode manifest: {e}", raw_output=text) from e

        manifest = CollectionManifest(plans=tuple(
            self._parse_entry(entry, index, timestamp) for index, entry in enumerate(data)
        ))
        self._validate(manifest, size)
        logger.info("Planned %d characters for theme %r", len(manifest), theme)
        return manifest

    def _theme_text(self, config: GenerationConfig | str) -> str:
        if isinstance(config, GenerationConfig):
            return f"{config.theme} {config.subject} ({config.style} style)"
        if not config or not config.strip():
            raise ManifestValidationError("Theme is required")
        return config.strip()

    def _parse_entry(self, entry, index: int, timestamp: int) -> CharacterPlan:
        position = index + 1
        if not isinstance(entry, dict):
            raise ManifestValidationError(f"Entry {position} is not an object")

        attributes = []
        for attr in entry.get("attributes") or []:
            if not isinstance(attr, dict):
                raise ManifestValidationError(f"Entry {position} has a malformed attribute")
            trait_type = str(attr.get("trait_type") or "").strip()
            value = str(attr.get("value") or "").strip()
            attributes.append(Attribute(trait_type=trait_type, value=value))

        edition = entry.get("edition")
        if isinstance(edition, bool) or not isinstance(edition, int):
            raise ManifestValidationError(f"Entry {position} has invalid edition: {edition!r}")

        date = entry.get("date", timestamp)
        return CharacterPlan(
            name=str(entry.get("name") or "").strip(),
            description=str(entry.get("description") or "").strip(),
            dna=str(entry.get("dna") or "").strip(),
            edition=edition,
            timestamp=date if isinstance(date, int) else timestamp,
            attributes=tuple(attributes),
            image=str(entry.get("image") or f"ipfs://YOUR_CID_HERE/{position}.png"),
        )

    def _validate(self, manifest: CollectionManifest, size: int) -> None:
        if len(manifest) != size:
            raise ManifestValidationError(f"Expected {size} characters, got {len(manifest)}")

        seen_dna: set[str] = set()
        for position, plan in enumerate(manifest, start=1):
            if not plan.dna:
                raise ManifestValidationError(f"Entry {position} is missing dna")
            if plan.dna in seen_dna:
                raise ManifestValidationError(f"Duplicate dna: {plan.dna}")
            seen_dna.add(plan.dna)

            if plan.edition != position:
                raise ManifestValidationError(
                    f"Entry {position} has edition {plan.edition}, expected {position}"
                )

            for category in REQUIRED_CATEGORIES:
                value = plan.attribute(category)
                if not value:
                    raise ManifestValidationError(
                        f"Entry {position} is missing {category}", category=category
                    )

            for attr in plan.attributes:
                if not attr.trait_type or not attr.value:
                    raise ManifestValidationError(f"Entry {position} has an empty attribute")
                if attr.value.lower() in PLACEHOLDER_VALUES:
                    raise ManifestValidationError(
                        f"Entry {position} has placeholder value for {attr.trait_type}",
                        category=attr.trait_type,
                    )
