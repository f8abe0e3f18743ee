"""Gemini client for image generation (Nano Banana Pro / Gemini 3 Pro Image) and text."""

import logging
import time
from io import BytesIO

import httpx
from google import genai
from google.genai import types
from PIL import Image, UnidentifiedImageError

from ..config import RetryPolicy
from ..errors import GenerationError, GenerationTimeoutError

logger = logging.getLogger(__name__)


def is_timeout(error: Exception) -> bool:
    """True if an SDK error was caused by a deadline."""
    return isinstance(error, (TimeoutError, httpx.TimeoutException))


class GeminiClient:
    """Client for generating images and text via Google's Gemini models."""

    def __init__(
        self,
        api_key: str,
        image_model: str = "gemini-3-pro-image-preview",
        text_model: str = "gemini-2.0-flash",
        timeout: float = 60.0,
        retry: RetryPolicy | None = None,
    ):
        # HttpOptions timeout is in milliseconds
        self.client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout * 1000)),
        )
        # Supports up to 14 input images (5 with high fidelity)
        self.image_model = image_model
        self.text_model = text_model
        self.timeout = timeout
        self.retry = retry or RetryPolicy()

    def _call_with_retry(self, func, label: str = ""):
        """Call the backend, retrying transient errors per the retry policy."""
        attempt = 0
        while True:
            try:
                return func()
            except Exception as e:
                timed_out = is_timeout(e)
                if not self.retry.should_retry(e, attempt, timed_out):
                    if timed_out:
                        raise GenerationTimeoutError(
                            f"Gemini {label or 'call'} timed out after {self.timeout}s"
                        ) from e
                    raise GenerationError(f"Gemini {label or 'call'} failed: {e}") from e

                wait_time = self.retry.wait_time(attempt)
                logger.warning(
                    "Gemini API error (attempt %d/%d), retrying in %ss: %s",
                    attempt + 1, self.retry.max_attempts, wait_time, e,
                )
                time.sleep(wait_time)
                attempt += 1

    def generate_image(
        self,
        prompt: str,
        images: list[bytes] | None = None,
        temperature: float | None = None,
        seed: int | None = None,
        aspect_ratio: str = "1:1",
        label: str = "",
    ) -> bytes | None:
        """
        Generate an image from a prompt and optional reference images.

        Args:
            prompt: Text instruction.
            images: Reference image bytes, sent after the prompt in order.
            temperature: Sampling temperature.
            seed: Backend seed (bounds, does not eliminate, variance).
            aspect_ratio: Output aspect ratio (default 1:1).
            label: Optional label for logging.

        Returns:
            Generated image bytes, or None if the response had no image part.

        Raises:
            GenerationError: If the call errored or timed out, or a reference
                image could not be decoded.
        """
        # Build multimodal content: text prompt + all images
        contents: list = [prompt]
        for index, img_bytes in enumerate(images or []):
            try:
                contents.append(Image.open(BytesIO(img_bytes)))
            except UnidentifiedImageError as e:
                raise GenerationError(
                    f"Gemini {label or 'call'}: reference image {index + 1} is not a readable image"
                ) from e

        response = self._call_with_retry(
            lambda: self.client.models.generate_content(
                model=self.image_model,
                contents=contents,
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE", "TEXT"],
                    temperature=temperature,
                    seed=seed,
                    image_config=types.ImageConfig(aspect_ratio=aspect_ratio),
                ),
            ),
            label=label,
        )
        return extract_image(response)

    def call(self, system_prompt: str, user_message: str, label: str = "") -> str:
        """Make a text call and return response text.

        Args:
            system_prompt: System instruction.
            user_message: User message.
            label: Optional label for logging.

        Returns:
            Response text content (may contain markdown fences).
        """
        response = self._call_with_retry(
            lambda: self.client.models.generate_content(
                model=self.text_model,
                contents=user_message,
                config=types.GenerateContentConfig(system_instruction=system_prompt),
            ),
            label=label,
        )
        text = response.text or ""
        if label:
            logger.info("%s: %d chars", label, len(text))
        return text.strip()


def extract_image(response) -> bytes | None:
    """Return the first inline image part of a generate_content response."""
    if not response.candidates:
        return None
    content = response.candidates[0].content
    if not content or not content.parts:
        return None
    for part in content.parts:
        inline = part.inline_data
        if inline and inline.data and (inline.mime_type or "").startswith("image/"):
            return inline.data
    return None
