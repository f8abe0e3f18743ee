import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

# API Keys and Config - loaded from .env
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_AI_API_KEY")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

# "gemini" or "openai" - which backend answers config/plan text calls
TEXT_PROVIDER = os.getenv("TEXT_PROVIDER", "gemini")

GEMINI_IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "gemini-3-pro-image-preview")
GEMINI_TEXT_MODEL = os.getenv("GEMINI_TEXT_MODEL", "gemini-2.0-flash")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-5.2")

# Per external call deadline, seconds
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "60"))
MAX_WORKERS = int(os.getenv("MAX_WORKERS", "4"))

# Missing credentials -> labeled simulated output instead of ConfigurationError
ALLOW_SIMULATION = os.getenv("ALLOW_SIMULATION", "true").lower() in ("1", "true", "yes")

# Retry policy for transient backend errors (1 attempt = no retry)
RETRY_MAX_ATTEMPTS = int(os.getenv("RETRY_MAX_ATTEMPTS", "1"))
RETRY_ON_TIMEOUT = os.getenv("RETRY_ON_TIMEOUT", "false").lower() in ("1", "true", "yes")

# Collection defaults
DEFAULT_COLLECTION_SIZE = 5
DEFAULT_TRAIT_VARIATIONS = 2
MIN_INLINE_IMAGE_BYTES = 100


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with exponential backoff for transient backend errors."""
    max_attempts: int = 1
    retry_codes: tuple[int, ...] = (429, 503)
    retry_on_timeout: bool = False
    backoff_base: float = 2.0

    def should_retry(self, error: Exception, attempt: int, is_timeout: bool) -> bool:
        """attempt is zero-based."""
        if attempt >= self.max_attempts - 1:
            return False
        if is_timeout:
            return self.retry_on_timeout
        error_str = str(error)
        return any(str(code) in error_str for code in self.retry_codes)

    def wait_time(self, attempt: int) -> float:
        return self.backoff_base ** attempt  # 1s, 2s, 4s


@dataclass(frozen=True)
class Settings:
    """Runtime settings threaded through the engine and clients."""
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    text_provider: str = "gemini"
    image_model: str = "gemini-3-pro-image-preview"
    text_model: str = "gemini-2.0-flash"
    openai_model: str = "gpt-5.2"
    request_timeout: float = 60.0
    max_workers: int = 4
    allow_simulation: bool = True
    collection_size: int = DEFAULT_COLLECTION_SIZE
    trait_variations: int = DEFAULT_TRAIT_VARIATIONS
    min_inline_bytes: int = MIN_INLINE_IMAGE_BYTES
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the module-level environment values."""
        return cls(
            gemini_api_key=GEMINI_API_KEY,
            openai_api_key=OPENAI_API_KEY,
            text_provider=TEXT_PROVIDER,
            image_model=GEMINI_IMAGE_MODEL,
            text_model=GEMINI_TEXT_MODEL,
            openai_model=OPENAI_MODEL,
            request_timeout=REQUEST_TIMEOUT,
            max_workers=MAX_WORKERS,
            allow_simulation=ALLOW_SIMULATION,
            retry=RetryPolicy(
                max_attempts=RETRY_MAX_ATTEMPTS,
                retry_on_timeout=RETRY_ON_TIMEOUT,
            ),
        )
