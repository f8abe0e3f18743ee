"""Tests for backend clients with the SDKs mocked out."""

import json
from io import BytesIO
from types import SimpleNamespace
from unittest.mock import patch

import httpx
import openai
import pytest
from PIL import Image

from pfpforge.clients import (
    GeminiClient,
    LLMClient,
    SimulatedImageClient,
    SimulatedTextClient,
    build_clients,
    is_simulated,
)
from pfpforge.clients.gemini import extract_image
from pfpforge.config import RetryPolicy, Settings
from pfpforge.errors import ConfigurationError, GenerationError, GenerationTimeoutError


def png_bytes(color=(255, 0, 0)) -> bytes:
    output = BytesIO()
    Image.new("RGB", (8, 8), color).save(output, format="PNG")
    return output.getvalue()


def image_response(data: bytes | None = b"generated", mime_type: str = "image/png"):
    parts = [SimpleNamespace(inline_data=None, text="here you go")]
    if data is not None:
        parts.append(SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type)))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


@pytest.fixture
def genai_client():
    with patch("pfpforge.clients.gemini.genai.Client") as client_cls:
        yield client_cls.return_value


class TestExtractImage:
    def test_first_image_part(self):
        assert extract_image(image_response(b"abc")) == b"abc"

    def test_no_image_part(self):
        assert extract_image(image_response(None)) is None

    def test_non_image_mime(self):
        assert extract_image(image_response(b"abc", mime_type="text/plain")) is None

    def test_no_candidates(self):
        assert extract_image(SimpleNamespace(candidates=[])) is None


class TestGeminiClient:
    def test_generate_image_sends_prompt_then_images(self, genai_client):
        genai_client.models.generate_content.return_value = image_response(b"out")
        client = GeminiClient(api_key="key")

        result = client.generate_image("compose", images=[png_bytes(), png_bytes((0, 0, 255))],
                                       temperature=0.3, seed=42)

        assert result == b"out"
        kwargs = genai_client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-3-pro-image-preview"
        contents = kwargs["contents"]
        assert contents[0] == "compose"
        assert len(contents) == 3
        assert all(isinstance(img, Image.Image) for img in contents[1:])
        assert kwargs["config"].temperature == 0.3
        assert kwargs["config"].seed == 42

    def test_absent_image_returns_none(self, genai_client):
        genai_client.models.generate_content.return_value = image_response(None)
        assert GeminiClient(api_key="key").generate_image("draw") is None

    def test_error_is_wrapped(self, genai_client):
        genai_client.models.generate_content.side_effect = RuntimeError("400 INVALID_ARGUMENT")
        with pytest.raises(GenerationError, match="INVALID_ARGUMENT"):
            GeminiClient(api_key="key").generate_image("draw", label="BASE")

    def test_timeout_is_typed(self, genai_client):
        genai_client.models.generate_content.side_effect = httpx.ReadTimeout("timed out")
        with pytest.raises(GenerationTimeoutError):
            GeminiClient(api_key="key", timeout=1).generate_image("draw")

    def test_transient_error_retried_per_policy(self, genai_client):
        genai_client.models.generate_content.side_effect = [
            RuntimeError("503 UNAVAILABLE"),
            image_response(b"ok"),
        ]
        client = GeminiClient(api_key="key", retry=RetryPolicy(max_attempts=3))

        with patch("pfpforge.clients.gemini.time.sleep") as sleep:
            assert client.generate_image("draw") == b"ok"
        sleep.assert_called_once_with(1.0)

    def test_default_policy_does_not_retry(self, genai_client):
        genai_client.models.generate_content.side_effect = RuntimeError("503 UNAVAILABLE")
        with pytest.raises(GenerationError):
            GeminiClient(api_key="key").generate_image("draw")
        assert genai_client.models.generate_content.call_count == 1

    def test_unreadable_reference_image_is_typed(self, genai_client):
        with pytest.raises(GenerationError, match="reference image 2"):
            GeminiClient(api_key="key").generate_image(
                "compose", images=[png_bytes(), b"not an image" * 20], label="COMPOSITE"
            )
        genai_client.models.generate_content.assert_not_called()

    def test_text_call(self, genai_client):
        genai_client.models.generate_content.return_value = SimpleNamespace(text=" {\"a\": 1} ")
        client = GeminiClient(api_key="key")

        assert client.call("system", "user", label="CONFIG") == '{"a": 1}'
        kwargs = genai_client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.0-flash"
        assert kwargs["contents"] == "user"
        assert kwargs["config"].system_instruction == "system"


class TestRetryPolicy:
    def test_timeouts_opt_in(self):
        error = TimeoutError()
        assert not RetryPolicy(max_attempts=3).should_retry(error, 0, is_timeout=True)
        assert RetryPolicy(max_attempts=3, retry_on_timeout=True).should_retry(error, 0, is_timeout=True)

    def test_attempts_bounded(self):
        policy = RetryPolicy(max_attempts=2)
        error = RuntimeError("429 RESOURCE_EXHAUSTED")
        assert policy.should_retry(error, 0, is_timeout=False)
        assert not policy.should_retry(error, 1, is_timeout=False)

    def test_backoff(self):
        assert [RetryPolicy().wait_time(n) for n in range(3)] == [1.0, 2.0, 4.0]


class TestLLMClient:
    @pytest.fixture
    def openai_client(self):
        with patch("pfpforge.clients.llm.OpenAI") as client_cls:
            yield client_cls.return_value

    def test_call_tracks_tokens(self, openai_client):
        openai_client.responses.create.return_value = SimpleNamespace(
            usage=SimpleNamespace(input_tokens=10, output_tokens=5),
            output_text="  result  ",
        )
        client = LLMClient(api_key="key")

        assert client.call("system", "user", label="PLAN") == "result"
        assert client.get_token_totals() == (10, 5)
        messages = openai_client.responses.create.call_args.kwargs["input"]
        assert messages[0] == {"role": "developer", "content": "system"}

    def test_timeout_is_typed(self, openai_client):
        request = httpx.Request("POST", "https://api.openai.com/v1/responses")
        openai_client.responses.create.side_effect = openai.APITimeoutError(request=request)

        with pytest.raises(GenerationTimeoutError):
            LLMClient(api_key="key").call("system", "user")


class TestBuildClients:
    def test_simulated_without_credentials(self):
        text, image = build_clients(Settings())
        assert isinstance(text, SimulatedTextClient)
        assert isinstance(image, SimulatedImageClient)
        assert is_simulated(text) and is_simulated(image)

    def test_missing_credential_without_simulation(self):
        with pytest.raises(ConfigurationError):
            build_clients(Settings(allow_simulation=False))

    def test_gemini_serves_text_and_images(self, genai_client):
        text, image = build_clients(Settings(gemini_api_key="key"))
        assert isinstance(image, GeminiClient)
        assert text is image
        assert not is_simulated(image)

    def test_openai_text_provider(self, genai_client):
        with patch("pfpforge.clients.llm.OpenAI"):
            text, _ = build_clients(Settings(gemini_api_key="key", openai_api_key="sk", text_provider="openai"))
        assert isinstance(text, LLMClient)

    def test_unknown_text_provider(self, genai_client):
        with pytest.raises(ConfigurationError):
            build_clients(Settings(gemini_api_key="key", text_provider="bard"))


def test_simulated_image_is_labeled_png():
    data = SimulatedImageClient().generate_image("anything", label="BASE")
    img = Image.open(BytesIO(data))
    assert img.format == "PNG"
    assert len(data) > 100


def test_simulated_config_from_prompt_words():
    payload = json.loads(SimulatedTextClient().call("sys", 'Prompt: "space cats"', label="CONFIG"))
    assert (payload["theme"], payload["subject"]) == ("space", "cats")
