import base64
import binascii
import json
import re
import secrets
import time
from pathlib import Path
from string import Template
from typing import Any

import requests

from .errors import ParseError, ValidationError

PROMPTS_DIR = Path(__file__).parent / "prompts"

_FENCE_RE = re.compile(r"```(?:json|JSON)?")
_DATA_URI_RE = re.compile(rb"^data:image/[\w.+-]+;base64,")


def load_prompt(name: str) -> Template:
    """Load a prompt template from the prompts directory."""
    path = PROMPTS_DIR / f"{name}.txt"
    if not path.exists():
        raise FileNotFoundError(f"Prompt file not found: {path}")
    return Template(path.read_text(encoding="utf-8").strip())


def to_slug(text: str) -> str:
    """Convert text to slug format: lowercase, dashes for spaces.

    Example: "Cyberpunk Samurai" -> "cyberpunk-samurai"
    """
    return "-".join(text.lower().split())


def layer_name(category: str) -> str:
    """Display label for a category key: "accessory" -> "Accessory"."""
    key = category.strip().lower()
    return key[:1].upper() + key[1:]


def new_dna() -> str:
    """Unique pseudo-random token for one planned character."""
    return f"cn_{secrets.token_hex(4)}"


def time_seed(offset: int = 0) -> int:
    """Seed derived from the current time, bounded to int32."""
    return (int(time.time() * 1000) + offset) % 2147483647


def decode_json_payload(text: str, expect: type = dict) -> Any:
    """Decode JSON from generated text, stripping markdown fences and prose.

    Args:
        text: Raw model output, possibly wrapped in ```json fences or prose.
        expect: dict or list - the top-level JSON type required.

    Returns:
        Decoded object of the expected type.

    Raises:
        ParseError: If no JSON of the expected type can be decoded.
    """
    if not text or not text.strip():
        raise ParseError("Empty response", raw_output=text or "")

    cleaned = _FENCE_RE.sub("", text).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        # Extract the outermost object/array in case there's extra text
        open_char, close_char = ("[", "]") if expect is list else ("{", "}")
        start = cleaned.find(open_char)
        end = cleaned.rfind(close_char) + 1
        if start == -1 or end == 0 or end <= start:
            raise ParseError(f"No JSON {expect.__name__} found in response", raw_output=text)
        try:
            data = json.loads(cleaned[start:end])
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON in response: {e}", raw_output=text) from e

    if not isinstance(data, expect):
        raise ParseError(
            f"Expected JSON {expect.__name__}, got {type(data).__name__}",
            raw_output=text,
        )
    return data


def normalize_image_data(value: bytes | str) -> bytes:
    """Normalize image data to raw bytes.

    Accepts raw bytes, base64 text, or a data URI ("data:image/png;base64,...")
    as either str or bytes.
    """
    if isinstance(value, str):
        value = value.strip().encode("ascii", errors="ignore")
        value = _DATA_URI_RE.sub(b"", value)
        return _b64decode(value)

    if _DATA_URI_RE.match(value):
        return _b64decode(_DATA_URI_RE.sub(b"", value))
    return bytes(value)


def _b64decode(value: bytes) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Image data is not valid base64: {e}") from e


def to_data_uri(image_data: bytes, mime_type: str = "image/png") -> str:
    """Encode raw image bytes as a data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(image_data).decode('ascii')}"


def fetch_image(url: str, timeout: float = 30) -> bytes:
    """Download image bytes from URL."""
    headers = {
        "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    }
    response = requests.get(url, headers=headers, timeout=timeout)
    response.raise_for_status()
    return response.content
