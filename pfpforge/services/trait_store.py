"""Trait store - keyed persistence of generated trait assets."""

import logging
import threading
import uuid

import requests

from ..clients.repository import Repository
from ..config import MIN_INLINE_IMAGE_BYTES
from ..errors import NotFoundError, ValidationError
from ..models import Layer, TraitAsset, TraitRef
from ..utils import fetch_image, layer_name, normalize_image_data
from .variants import category_rank

logger = logging.getLogger(__name__)

# Parent layer for each category when a layer is first created
LAYER_PARENTS = {"background": "", "body": "Background"}
DEFAULT_PARENT = "Body"


class TraitStore:
    """Single source of truth for generated traits once they exist.

    Layers are keyed by category name; saving replaces the project's layer
    tuple rather than mutating it, so concurrent saves never race on position.
    """

    def __init__(self, repository: Repository, min_inline_bytes: int = MIN_INLINE_IMAGE_BYTES):
        self.repository = repository
        self.min_inline_bytes = min_inline_bytes
        self._lock = threading.Lock()

    def save(
        self,
        project_id: str,
        category: str,
        description: str,
        image_data: bytes | str,
        variation: int | None = None,
    ) -> TraitAsset:
        """Persist a trait and append it to the project's layer for its category."""
        trait = TraitAsset(
            id=str(uuid.uuid4()),
            project_id=project_id,
            category=category.strip().lower(),
            description=description,
            image_data=normalize_image_data(image_data),
            variation=variation,
        )

        with self._lock:
            project = self.repository.get_project(project_id)
            self.repository.create_trait(trait)

            name = layer_name(trait.category)
            layers = list(project.layers)
            for i, layer in enumerate(layers):
                if layer.key == trait.category:
                    layers[i] = layer.append(trait)
                    break
            else:
                parent = LAYER_PARENTS.get(trait.category, DEFAULT_PARENT)
                rank = category_rank(trait.category)
                position = next(
                    (i for i, layer in enumerate(layers) if category_rank(layer.key) > rank),
                    len(layers),
                )
                layers.insert(position, Layer(name=name, traits=(trait,), parent=parent))

            self.repository.update_project(project_id, layers=tuple(layers))

        logger.info("Saved %s trait %s for project %s", trait.category, trait.id, project_id)
        return trait

    def get(self, trait_id: str) -> TraitAsset:
        """Raises NotFoundError if no trait has this id."""
        return self.repository.get_trait(trait_id)

    def find(self, project_id: str, category: str, variation: int | None) -> TraitAsset | None:
        """Return an already-generated trait for category/variation, if any."""
        key = category.strip().lower()
        for trait in self.repository.list_traits(project_id):
            if trait.category == key and trait.variation == variation:
                return trait
        return None

    def list_layers(self, project_id: str) -> tuple[Layer, ...]:
        return self.repository.get_project(project_id).layers

    def resolve(self, ref: TraitRef, project_id: str | None = None) -> bytes | None:
        """
        Resolve a trait reference to raw image bytes.

        Inline data above the minimum plausible size is used directly; otherwise
        the trait is fetched by url or looked up by id. With a project_id, a
        trait owned by another project counts as unresolved.

        Returns:
            Image bytes, or None if nothing could be resolved.
        """
        url = ref.url
        inline = ref.image_data
        if isinstance(inline, str) and inline.startswith(("http://", "https://")):
            url, inline = url or inline, None

        if inline:
            try:
                image_data = normalize_image_data(inline)
            except ValidationError as e:
                logger.warning("Unreadable inline %s data: %s", ref.category, e)
                image_data = b""
            if len(image_data) >= self.min_inline_bytes:
                return image_data
            logger.debug("Inline %s data too small (%d bytes)", ref.category, len(image_data))

        if url:
            try:
                return fetch_image(url)
            except requests.RequestException as e:
                logger.warning("Failed to download %s trait from %s: %s", ref.category, url, e)

        if ref.trait_id:
            try:
                trait = self.get(ref.trait_id)
            except NotFoundError:
                logger.warning("Trait %s not found for %s", ref.trait_id, ref.category)
            else:
                if project_id is None or trait.project_id == project_id:
                    return trait.image_data
                logger.warning(
                    "Trait %s belongs to project %s, not %s",
                    ref.trait_id, trait.project_id, project_id,
                )

        return None
