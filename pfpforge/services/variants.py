"""Collection variants - trait selection and layer combinations."""

import itertools
import random
from typing import Any, Sequence

from ..models import Layer, TraitAsset
from .assets import TRAIT_CATEGORIES

MAX_COMBINATIONS = 10000

# Canonical layer order, bottom to top. Unknown categories sort after these.
LAYER_ORDER = TRAIT_CATEGORIES[:1] + ("body",) + TRAIT_CATEGORIES[1:]


def category_rank(category: str) -> int:
    key = category.strip().lower()
    return LAYER_ORDER.index(key) if key in LAYER_ORDER else len(LAYER_ORDER)


def layer_depth(name: str, layers: Sequence[Layer]) -> int:
    """Number of parent hops from a layer to the bottom layer."""
    by_key = {layer.key: layer for layer in layers}
    depth = 0
    visited: set[str] = set()
    layer = by_key.get(name.lower())
    while layer and layer.parent and layer.key not in visited:
        visited.add(layer.key)
        layer = by_key.get(layer.parent.lower())
        if layer is None:
            break
        depth += 1
    return depth


def sort_layers(layers: Sequence[Layer]) -> list[Layer]:
    """Active layers sorted by visual depth, then by LAYER_ORDER.

    Layers the order does not know keep their relative position among themselves.
    """
    active = [layer for layer in layers if layer.traits]
    return sorted(active, key=lambda layer: (layer_depth(layer.name, active), category_rank(layer.key)))


def pick_variant(layers: Sequence[Layer], rng: random.Random | None = None) -> list[TraitAsset]:
    """Pick one random trait from every non-Body layer, bottom to top."""
    rng = rng or random.Random()
    return [
        rng.choice(layer.traits)
        for layer in sort_layers(layers)
        if layer.key != "body"
    ]


def rarity(layer: Layer) -> float:
    return 100 / len(layer.traits)


def enumerate_combinations(
    layers: Sequence[Layer],
    limit: int = MAX_COMBINATIONS,
) -> list[dict[str, Any]]:
    """
    Every combination of one trait per layer, capped at `limit`.

    Returns:
        List of {"attributes": [...], "rarity_score": float} dicts.
    """
    ordered = sort_layers(layers)
    if not ordered:
        return []

    combos = []
    product = itertools.product(*(layer.traits for layer in ordered))
    for traits in itertools.islice(product, limit):
        attributes = [
            {"trait_type": layer.name, "value": trait.description, "trait_id": trait.id}
            for layer, trait in zip(ordered, traits)
        ]
        score = sum(rarity(layer) for layer in ordered) / len(ordered)
        combos.append({"attributes": attributes, "rarity_score": score})
    return combos
