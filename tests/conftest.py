"""Shared pytest fixtures for pfpforge tests."""

import json

import pytest

from pfpforge.clients.repository import InMemoryRepository
from pfpforge.errors import GenerationError
from pfpforge.models import GenerationConfig
from pfpforge.services import ProjectService, TraitStore

# Large enough to pass the minimum plausible inline size
FAKE_PNG = b"\x89PNG\r\n\x1a\n" + bytes(range(256))


def fake_png(tag: int) -> bytes:
    """Distinct fake image bytes."""
    return FAKE_PNG + bytes([tag % 256]) * 16


class FakeImageClient:
    """Records generate_image calls and returns canned bytes.

    Labels containing any string in `fail_on` raise GenerationError;
    labels in `empty_on` return None (no image part).
    """

    def __init__(self, fail_on=(), empty_on=()):
        self.fail_on = tuple(fail_on)
        self.empty_on = tuple(empty_on)
        self.calls: list[dict] = []

    def generate_image(self, prompt, images=None, temperature=None, seed=None,
                       aspect_ratio="1:1", label=""):
        self.calls.append({
            "prompt": prompt,
            "images": list(images or []),
            "temperature": temperature,
            "seed": seed,
            "label": label,
        })
        if any(tag in label for tag in self.fail_on):
            raise GenerationError(f"backend down for {label}")
        if any(tag in label for tag in self.empty_on):
            return None
        return fake_png(len(self.calls))


class FakeTextClient:
    """Returns canned text per call label."""

    def __init__(self, responses: dict[str, str]):
        self.responses = responses
        self.calls: list[dict] = []

    def call(self, system_prompt, user_message, label=""):
        self.calls.append({"system": system_prompt, "user": user_message, "label": label})
        return self.responses[label]


def manifest_json(size: int = 5, fenced: bool = True, **overrides) -> str:
    """A valid planner response for `size` characters."""
    plans = []
    for edition in range(1, size + 1):
        plans.append({
            "name": f"Neon Ronin #{edition:04d}",
            "description": f"A cyberpunk samurai, number {edition}",
            "image": f"ipfs://YOUR_CID_HERE/{edition}.png",
            "dna": f"cn_{edition:08x}",
            "edition": edition,
            "date": 1736458593,
            "attributes": [
                {"trait_type": "Background", "value": "Rain-soaked neon alley"},
                {"trait_type": "Body", "value": f"Chrome armor plating mk{edition}"},
                {"trait_type": "Head", "value": "Visor helmet with red glow"},
                {"trait_type": "Rarity Class", "value": "Common"},
            ],
            **overrides,
        })
    text = json.dumps(plans)
    return f"Here is your collection:\n```json\n{text}\n```" if fenced else text


@pytest.fixture
def config() -> GenerationConfig:
    return GenerationConfig(subject="samurai", theme="cyberpunk", style="anime", supply=3)


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def projects(repository) -> ProjectService:
    return ProjectService(repository)


@pytest.fixture
def store(repository) -> TraitStore:
    return TraitStore(repository)


@pytest.fixture
def project(projects, config):
    return projects.create("0xowner", "cyberpunk samurai", config)


@pytest.fixture
def image_client() -> FakeImageClient:
    return FakeImageClient()


@pytest.fixture
def other_project(projects, config):
    return projects.create("0xsomeone", "cyberpunk samurai", config)
