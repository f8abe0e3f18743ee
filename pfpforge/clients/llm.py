"""Generic LLM client with provider-agnostic interface."""

import logging
import time

import openai
from openai import OpenAI

from ..config import RetryPolicy
from ..errors import GenerationError, GenerationTimeoutError

logger = logging.getLogger(__name__)


class LLMClient:
    """Generic LLM client. Currently uses OpenAI, interface is provider-agnostic."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-5.2",
        timeout: float = 60.0,
        retry: RetryPolicy | None = None,
    ):
        # Retries are owned by RetryPolicy, not the SDK
        self._client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model
        self.timeout = timeout
        self.retry = retry or RetryPolicy()
        self.total_input_tokens = 0
        self.total_output_tokens = 0

    def call(self, system_prompt: str, user_message: str, label: str = "") -> str:
        """Make LLM call and return response text.

        Args:
            system_prompt: System/developer prompt.
            user_message: User message.
            label: Optional label for logging token usage.

        Returns:
            Response text content.
        """
        attempt = 0
        while True:
            try:
                response = self._client.responses.create(
                    model=self.model,
                    input=[
                        {"role": "developer", "content": system_prompt},
                        {"role": "user", "content": user_message},
                    ],
                    reasoning={"effort": "medium"},
                )
                break
            except openai.OpenAIError as e:
                timed_out = isinstance(e, openai.APITimeoutError)
                if not self.retry.should_retry(e, attempt, timed_out):
                    if timed_out:
                        raise GenerationTimeoutError(
                            f"LLM {label or 'call'} timed out after {self.timeout}s"
                        ) from e
                    raise GenerationError(f"LLM {label or 'call'} failed: {e}") from e
                wait_time = self.retry.wait_time(attempt)
                logger.warning("LLM error (attempt %d), retrying in %ss: %s", attempt + 1, wait_time, e)
                time.sleep(wait_time)
                attempt += 1

        # Track tokens
        usage = response.usage
        if usage:
            self.total_input_tokens += usage.input_tokens
            self.total_output_tokens += usage.output_tokens
            if label:
                logger.info("%s: input=%d, output=%d", label, usage.input_tokens, usage.output_tokens)

        return response.output_text.strip()

    def get_token_totals(self) -> tuple[int, int]:
        """Return accumulated (input, output) tokens."""
        return self.total_input_tokens, self.total_output_tokens
