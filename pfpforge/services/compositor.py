"""Compositor - generative blend of a base character with trait images.

There is no z-buffer: the backend receives the base image, every trait image and
an instruction that names each trait's image index and the fixed layering order.
Trait order in the instruction always matches trait order in the payload.
"""

import logging
import time
from enum import Enum
from typing import Callable, Sequence

from ..errors import CompositeError, NotFoundError, ValidationError
from ..models import CompositeRequest, CompositeResult, TraitImage, TraitRef
from ..utils import load_prompt, normalize_image_data

logger = logging.getLogger(__name__)

COMPOSITE_TEMPERATURE = 0.3


class MissingTraitPolicy(str, Enum):
    FAIL = "fail"    # abort the composite
    SKIP = "skip"    # drop the trait, log, continue


# What happens when a trait reference cannot be resolved, per category
CATEGORY_POLICIES: dict[str, MissingTraitPolicy] = {
    "body": MissingTraitPolicy.FAIL,
    "base": MissingTraitPolicy.FAIL,
    "background": MissingTraitPolicy.SKIP,
    "clothing": MissingTraitPolicy.SKIP,
    "accessory": MissingTraitPolicy.SKIP,
    "accessories": MissingTraitPolicy.SKIP,
    "headwear": MissingTraitPolicy.SKIP,
    "eyewear": MissingTraitPolicy.SKIP,
}
DEFAULT_POLICY = MissingTraitPolicy.SKIP

# Fixed visual layering, bottom to top
LAYERING_ORDER: tuple[tuple[str, str], ...] = (
    ("Background", "Bottom layer, behind character"),
    ("Clothing", "Base layer on character, follows torso contour"),
    ("Accessories", "Mid layer, positioned naturally"),
    ("Headwear", "Sits on head, behind ears but over forehead"),
    ("Eyewear", "Top layer, aligned with eyes and face"),
)


def policy_for(category: str) -> MissingTraitPolicy:
    return CATEGORY_POLICIES.get(category.strip().lower(), DEFAULT_POLICY)


def build_prompt(traits: Sequence[TraitImage]) -> str:
    """Build the composite instruction for traits in payload order."""
    if traits:
        image_list = "\n".join(
            f"Image {idx + 2} ({t.category}): Trait to be added" for idx, t in enumerate(traits)
        )
        trait_list = "\n".join(f"{idx + 1}. {t.category}" for idx, t in enumerate(traits))
    else:
        image_list = "No trait images are provided."
        trait_list = "(none - reproduce the base character unchanged)"

    layering = "\n".join(f"   - {name}: {rule}" for name, rule in LAYERING_ORDER)
    return load_prompt("composite").substitute(
        image_list=image_list,
        trait_list=trait_list,
        layering=layering,
    )


class Compositor:
    """Merge a base image with an ordered set of trait images into one image."""

    def __init__(self, image_client, store=None, clock: Callable[[], float] = time.time):
        self.image = image_client
        self.store = store
        self.clock = clock

    def composite(self, base_image: bytes, traits: Sequence[TraitImage]) -> bytes:
        """
        Composite traits onto the base with a single backend request.

        Args:
            base_image: Base character image (raw bytes or data URI).
            traits: Ordered traits. Zero traits is a legal passthrough request.

        Returns:
            Composite image bytes.

        Raises:
            GenerationError: Backend call failed or timed out.
            CompositeError: Backend returned no image part.
        """
        normalized = [
            TraitImage(category=t.category.strip().lower(), image_data=normalize_image_data(t.image_data))
            for t in traits
        ]
        prompt = build_prompt(normalized)
        images = [normalize_image_data(base_image)] + [t.image_data for t in normalized]
        seed = int(self.clock() * 1000) % 2147483647

        logger.info("Compositing %d traits onto base (seed=%d)", len(normalized), seed)
        image_bytes = self.image.generate_image(
            prompt,
            images=images,
            temperature=COMPOSITE_TEMPERATURE,
            seed=seed,
            label="COMPOSITE",
        )
        if not image_bytes:
            raise CompositeError("Failed to composite traits: backend returned no image")
        return image_bytes

    def prepare(
        self,
        base: bytes | str | TraitRef,
        trait_refs: Sequence[TraitRef],
        project_id: str | None = None,
    ) -> CompositeRequest:
        """
        Resolve references into a CompositeRequest, applying CATEGORY_POLICIES.

        Raises:
            NotFoundError: The base (or any FAIL-policy trait) could not be resolved.
        """
        if isinstance(base, TraitRef):
            base_ref = base
        else:
            base_ref = TraitRef(category="body", image_data=base)
        base_image = self._resolve(base_ref, project_id)
        if base_image is None:
            raise NotFoundError("Base image could not be resolved", category="body", project_id=project_id)

        traits: list[TraitImage] = []
        skipped: list[str] = []
        for ref in trait_refs:
            category = ref.category.strip().lower()
            image_data = self._resolve(ref, project_id)
            if image_data is not None:
                traits.append(TraitImage(category=category, image_data=image_data))
                continue

            if policy_for(category) is MissingTraitPolicy.FAIL:
                raise NotFoundError(
                    f"Required {category} trait could not be resolved",
                    category=category,
                    project_id=project_id,
                )
            logger.warning(
                "Skipping unresolved %s trait (project=%s, trait_id=%s)",
                category, project_id, ref.trait_id,
            )
            skipped.append(category)

        return CompositeRequest(base_image=base_image, traits=tuple(traits), skipped=tuple(skipped))

    def run(self, request: CompositeRequest) -> CompositeResult:
        image = self.composite(request.base_image, request.traits)
        return CompositeResult(image=image, traits_used=len(request.traits), skipped=request.skipped)

    def composite_refs(
        self,
        base: bytes | str | TraitRef,
        trait_refs: Sequence[TraitRef],
        project_id: str | None = None,
    ) -> CompositeResult:
        """prepare() then run()."""
        return self.run(self.prepare(base, trait_refs, project_id=project_id))

    def _resolve(self, ref: TraitRef, project_id: str | None) -> bytes | None:
        if self.store is not None:
            return self.store.resolve(ref, project_id=project_id)
        # Without a store only inline data can be used
        if not ref.image_data:
            return None
        try:
            return normalize_image_data(ref.image_data) or None
        except ValidationError as e:
            logger.warning("Unreadable inline %s data (project=%s): %s", ref.category, project_id, e)
            return None
