"""Tests for TraitStore persistence and reference resolution."""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest
import requests

from pfpforge.errors import NotFoundError
from pfpforge.models import TraitRef
from pfpforge.utils import to_data_uri

from conftest import FAKE_PNG, fake_png


def test_save_creates_layer(store, project):
    trait = store.save(project.id, "Accessory", "gold chain", FAKE_PNG, variation=1)

    assert trait.category == "accessory"
    assert trait.project_id == project.id
    layers = store.list_layers(project.id)
    assert [layer.name for layer in layers] == ["Accessory"]
    assert layers[0].traits == (trait,)
    assert layers[0].parent == "Body"


def test_save_appends_to_existing_layer(store, project):
    first = store.save(project.id, "headwear", "crown", fake_png(1))
    second = store.save(project.id, "HEADWEAR", "cap", fake_png(2))

    layers = store.list_layers(project.id)
    assert len(layers) == 1
    assert layers[0].traits == (first, second)
    assert first.id != second.id


def test_body_and_background_parents(store, project):
    store.save(project.id, "body", "Base Character", fake_png(1))
    store.save(project.id, "background", "neon alley", fake_png(2))

    parents = {layer.name: layer.parent for layer in store.list_layers(project.id)}
    assert parents == {"Body": "Background", "Background": ""}


def test_save_normalizes_data_uri(store, project):
    trait = store.save(project.id, "eyewear", "visor", to_data_uri(FAKE_PNG))
    assert trait.image_data == FAKE_PNG


def test_earlier_layers_are_not_mutated(store, project):
    store.save(project.id, "clothing", "hoodie", fake_png(1))
    before = store.list_layers(project.id)

    store.save(project.id, "clothing", "jacket", fake_png(2))

    assert len(before[0].traits) == 1
    assert len(store.list_layers(project.id)[0].traits) == 2


def test_concurrent_saves_keep_every_trait(store, project):
    jobs = [(category, n) for category in ("background", "clothing", "eyewear") for n in range(5)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda job: store.save(project.id, job[0], f"{job[0]} {job[1]}", fake_png(job[1])), jobs))

    layers = store.list_layers(project.id)
    assert sorted(layer.name for layer in layers) == ["Background", "Clothing", "Eyewear"]
    assert all(len(layer.traits) == 5 for layer in layers)


def test_get_returns_identical_bytes_twice(store, project):
    trait = store.save(project.id, "accessory", "badge", FAKE_PNG)

    assert store.get(trait.id).image_data == store.get(trait.id).image_data == FAKE_PNG


def test_get_missing(store):
    with pytest.raises(NotFoundError):
        store.get("missing")


def test_find_by_variation(store, project):
    trait = store.save(project.id, "clothing", "vest", FAKE_PNG, variation=2)

    assert store.find(project.id, "Clothing", 2) == trait
    assert store.find(project.id, "clothing", 1) is None


def test_save_unknown_project(store):
    with pytest.raises(NotFoundError):
        store.save("nope", "clothing", "vest", FAKE_PNG)


class TestResolve:
    def test_inline_data_used_directly(self, store):
        with patch.object(store, "get") as get:
            data = store.resolve(TraitRef(category="eyewear", image_data=FAKE_PNG, trait_id="x"))
        assert data == FAKE_PNG
        get.assert_not_called()

    def test_inline_data_uri(self, store):
        assert store.resolve(TraitRef(category="eyewear", image_data=to_data_uri(FAKE_PNG))) == FAKE_PNG

    def test_small_inline_falls_back_to_id(self, store, project):
        trait = store.save(project.id, "eyewear", "shades", FAKE_PNG)
        ref = TraitRef(category="eyewear", image_data=b"tiny", trait_id=trait.id)
        assert store.resolve(ref) == FAKE_PNG

    def test_small_inline_without_id_is_unresolved(self, store):
        assert store.resolve(TraitRef(category="eyewear", image_data=b"tiny")) is None

    def test_unreadable_inline_without_id_is_unresolved(self, store):
        assert store.resolve(TraitRef(category="eyewear", image_data="%%%")) is None

    def test_unknown_id_is_unresolved(self, store):
        assert store.resolve(TraitRef(category="eyewear", trait_id="missing")) is None

    def test_url_is_downloaded(self, store):
        with patch("pfpforge.services.trait_store.fetch_image", return_value=FAKE_PNG) as fetch:
            data = store.resolve(TraitRef(category="headwear", url="https://cdn.example/hat.png"))
        assert data == FAKE_PNG
        fetch.assert_called_once_with("https://cdn.example/hat.png")

    def test_http_string_in_image_data_is_treated_as_url(self, store):
        with patch("pfpforge.services.trait_store.fetch_image", return_value=FAKE_PNG) as fetch:
            data = store.resolve(TraitRef(category="headwear", image_data="https://cdn.example/hat.png"))
        assert data == FAKE_PNG
        fetch.assert_called_once()

    def test_failed_download_falls_back_to_id(self, store, project):
        trait = store.save(project.id, "headwear", "hat", FAKE_PNG)
        error = requests.ConnectionError("offline")
        with patch("pfpforge.services.trait_store.fetch_image", side_effect=error):
            data = store.resolve(TraitRef(category="headwear", url="https://cdn.example/hat.png", trait_id=trait.id))
        assert data == FAKE_PNG

    def test_id_from_another_project_is_unresolved(self, store, project, other_project):
        foreign = store.save(other_project.id, "eyewear", "visor", FAKE_PNG)
        ref = TraitRef(category="eyewear", trait_id=foreign.id)

        assert store.resolve(ref, project_id=project.id) is None
        assert store.resolve(ref, project_id=other_project.id) == FAKE_PNG


def test_layers_follow_category_order(store, project):
    for category in ("eyewear", "accessory", "body", "clothing", "background"):
        store.save(project.id, category, category, fake_png(1))

    names = [layer.name for layer in store.list_layers(project.id)]
    assert names == ["Background", "Body", "Clothing", "Accessory", "Eyewear"]


def test_unknown_category_layers_go_last(store, project):
    store.save(project.id, "aura", "glow", fake_png(1))
    store.save(project.id, "headwear", "crown", fake_png(2))

    assert [layer.name for layer in store.list_layers(project.id)] == ["Headwear", "Aura"]
