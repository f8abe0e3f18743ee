"""API clients for external services."""

import logging

from ..config import Settings
from ..errors import ConfigurationError
from .gemini import GeminiClient
from .llm import LLMClient
from .repository import InMemoryRepository, Repository
from .simulated import SimulatedImageClient, SimulatedTextClient

logger = logging.getLogger(__name__)


def is_simulated(client) -> bool:
    """True for placeholder clients substituted for a missing credential."""
    return getattr(client, "simulated", False)


def build_clients(settings: Settings):
    """Build (text_client, image_client) from settings.

    A missing credential yields a labeled simulated client when
    settings.allow_simulation is set, otherwise ConfigurationError.
    """
    if settings.gemini_api_key:
        image_client = GeminiClient(
            api_key=settings.gemini_api_key,
            image_model=settings.image_model,
            text_model=settings.text_model,
            timeout=settings.request_timeout,
            retry=settings.retry,
        )
    elif settings.allow_simulation:
        logger.warning("GEMINI_API_KEY not set - using simulated image backend")
        image_client = SimulatedImageClient()
    else:
        raise ConfigurationError("GEMINI_API_KEY (or GOOGLE_AI_API_KEY) is required")

    if settings.text_provider == "openai":
        if settings.openai_api_key:
            text_client = LLMClient(
                api_key=settings.openai_api_key,
                model=settings.openai_model,
                timeout=settings.request_timeout,
                retry=settings.retry,
            )
        elif settings.allow_simulation:
            logger.warning("OPENAI_API_KEY not set - using simulated text backend")
            text_client = SimulatedTextClient()
        else:
            raise ConfigurationError("OPENAI_API_KEY is required for TEXT_PROVIDER=openai")
    elif settings.text_provider == "gemini":
        if isinstance(image_client, GeminiClient):
            text_client = image_client
        else:
            text_client = SimulatedTextClient()
    else:
        raise ConfigurationError(f"Unknown TEXT_PROVIDER: {settings.text_provider}")

    return text_client, image_client


__all__ = [
    "GeminiClient",
    "InMemoryRepository",
    "LLMClient",
    "Repository",
    "SimulatedImageClient",
    "SimulatedTextClient",
    "build_clients",
    "is_simulated",
]
