"""Simulated backends used when no API credential is configured.

Every result is clearly labeled as simulated so it can never be mistaken for
real model output.
"""

import json
import logging
import re
import time
from io import BytesIO

from PIL import Image, ImageDraw

from ..utils import new_dna

logger = logging.getLogger(__name__)

SIMULATED_LABEL = "SIMULATED"

_PALETTE = [(59, 2, 122), (226, 0, 114), (255, 83, 112), (0, 128, 128), (40, 40, 40)]


def placeholder_image(text: str, size: int = 256, seed: int = 0) -> bytes:
    """Render a labeled placeholder PNG."""
    color = _PALETTE[seed % len(_PALETTE)]
    img = Image.new("RGB", (size, size), color)
    draw = ImageDraw.Draw(img)
    draw.text((10, 10), SIMULATED_LABEL, fill=(255, 255, 255))
    draw.text((10, 30), text[:40], fill=(255, 255, 255))

    output = BytesIO()
    img.save(output, format="PNG")
    return output.getvalue()


class SimulatedImageClient:
    """Stands in for GeminiClient.generate_image."""

    simulated = True

    def __init__(self):
        self.calls: list[dict] = []

    def generate_image(
        self,
        prompt: str,
        images: list[bytes] | None = None,
        temperature: float | None = None,
        seed: int | None = None,
        aspect_ratio: str = "1:1",
        label: str = "",
    ) -> bytes | None:
        self.calls.append({"label": label, "images": len(images or [])})
        logger.info("Simulated image for %s", label or "request")
        return placeholder_image(label or "image", seed=len(self.calls))


class SimulatedTextClient:
    """Stands in for the text backend. Answers CONFIG and PLAN calls."""

    simulated = True

    def call(self, system_prompt: str, user_message: str, label: str = "") -> str:
        if label == "PLAN":
            return self._plan(user_message)
        return self._config(user_message)

    def _config(self, user_message: str) -> str:
        match = re.search(r'Prompt:\s*"(.*)"', user_message, re.S)
        prompt = match.group(1) if match else user_message
        words = prompt.lower().split() or ["character"]
        return json.dumps({
            "subject": words[-1],
            "theme": words[0],
            "style": "cartoon",
            "mood": "cool",
            "faceOrientation": "three-quarter",
            "colorPalette": ["#00FF00", "#FF00FF", "#FFFF00"],
        })

    def _plan(self, user_message: str) -> str:
        theme_match = re.search(r"Theme:\s*(.+)", user_message)
        size_match = re.search(r"Collection Size:\s*(\d+)", user_message)
        ts_match = re.search(r"Current Timestamp:\s*(\d+)", user_message)
        theme = theme_match.group(1).strip() if theme_match else "collection"
        size = int(size_match.group(1)) if size_match else 5
        timestamp = int(ts_match.group(1)) if ts_match else int(time.time())

        plans = []
        for edition in range(1, size + 1):
            plans.append({
                "name": f"[{SIMULATED_LABEL}] {theme.title()} #{edition:04d}",
                "description": f"Simulated {theme} character {edition}",
                "image": f"ipfs://YOUR_CID_HERE/{edition}.png",
                "dna": new_dna(),
                "edition": edition,
                "date": timestamp,
                "attributes": [
                    {"trait_type": "Background", "value": f"Simulated {theme} backdrop {edition}"},
                    {"trait_type": "Body", "value": f"Simulated {theme} body {edition}"},
                    {"trait_type": "Head", "value": f"Simulated {theme} head {edition}"},
                ],
            })
        return "```json\n" + json.dumps(plans) + "\n```"
