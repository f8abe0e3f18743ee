"""Config parser - free-text theme to GenerationConfig."""

import logging

from ..config import DEFAULT_COLLECTION_SIZE
from ..errors import ParseError, ValidationError
from ..models import GenerationConfig
from ..models.config import DEFAULT_PALETTE
from ..utils import decode_json_payload, load_prompt

logger = logging.getLogger(__name__)


class ConfigParser:
    """Convert a free-text theme into a GenerationConfig with one text call.

    Either every required field resolves or the call fails. No retries.
    """

    REQUIRED_FIELDS = ("subject", "theme")

    def __init__(self, llm):
        self.llm = llm

    def parse(self, prompt: str, supply: int | None = None) -> GenerationConfig:
        """
        Parse a theme prompt into a GenerationConfig.

        Args:
            prompt: Free-text theme (e.g. "cyberpunk samurai").
            supply: Collection size override. Falls back to the model's answer,
                then to DEFAULT_COLLECTION_SIZE.

        Raises:
            ValidationError: Empty prompt.
            ParseError: Response missing subject/theme or with an invalid supply.
        """
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required")

        system_prompt = load_prompt("parse_config").template
        user_message = f'Prompt: "{prompt.strip()}"'
        text = self.llm.call(system_prompt, user_message, label="CONFIG")

        data = decode_json_payload(text, expect=dict)
        return self._build_config(data, supply, raw_output=text)

    def _build_config(self, data: dict, supply: int | None, raw_output: str) -> GenerationConfig:
        values = {}
        for name in self.REQUIRED_FIELDS:
            value = data.get(name)
            if not isinstance(value, str) or not value.strip():
                raise ParseError(f"Missing required field: {name}", raw_output=raw_output)
            values[name] = value.strip()

        resolved_supply = supply if supply is not None else data.get("supply", DEFAULT_COLLECTION_SIZE)
        try:
            resolved_supply = int(resolved_supply)
        except (TypeError, ValueError):
            raise ParseError(f"Invalid supply: {resolved_supply!r}", raw_output=raw_output)
        if resolved_supply < 1:
            raise ParseError(f"Supply must be >= 1, got {resolved_supply}", raw_output=raw_output)

        palette = data.get("colorPalette") or data.get("color_palette")
        if not isinstance(palette, list) or not palette:
            palette = DEFAULT_PALETTE

        config = GenerationConfig(
            subject=values["subject"],
            theme=values["theme"],
            style=_text_or(data.get("style") or data.get("artStyle"), "cartoon"),
            supply=resolved_supply,
            mood=_text_or(data.get("mood"), "cool"),
            face_orientation=_text_or(
                data.get("faceOrientation") or data.get("face_orientation"), "three-quarter"
            ),
            color_palette=tuple(str(c) for c in palette),
        )
        logger.info("Parsed config: %s %s (%s), supply=%d",
                    config.theme, config.subject, config.style, config.supply)
        return config


def _text_or(value, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default
