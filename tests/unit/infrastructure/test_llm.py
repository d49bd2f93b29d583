"""Unit tests for LLMTextGenerator."""

from unittest.mock import AsyncMock, MagicMock, patch

import litellm
import pytest

from app.config.retry import TEXT_GENERATION
from app.config.template import PromptModel
from app.core.exceptions import CollaboratorError, ErrorKind
from app.infrastructure.llm import (
    LLMConfig,
    LLMResponse,
    LLMTextGenerator,
    classify_llm_error,
)


def provider_error(error_type: type[Exception], message: str = "provider error") -> MagicMock:
    """Build an exception stand-in that passes isinstance checks."""
    error = MagicMock(spec=error_type)
    error.__str__.return_value = message
    return error


class TestClassifyLLMError:
    """Test mapping of provider errors to ErrorKind."""

    @pytest.mark.parametrize(
        ("error_type", "kind"),
        [
            (litellm.RateLimitError, ErrorKind.RATE_LIMITED),
            (litellm.Timeout, ErrorKind.TIMEOUT),
            (litellm.ServiceUnavailableError, ErrorKind.UNAVAILABLE),
            (litellm.APIConnectionError, ErrorKind.NETWORK),
            (litellm.AuthenticationError, ErrorKind.AUTHENTICATION),
            (litellm.NotFoundError, ErrorKind.NOT_FOUND),
            (litellm.ContentPolicyViolationError, ErrorKind.CONTENT_POLICY),
            (litellm.ContextWindowExceededError, ErrorKind.INVALID_INPUT),
        ],
    )
    def test_known_errors(self, error_type: type[Exception], kind: ErrorKind) -> None:
        """Should map each provider error type to its kind."""
        assert classify_llm_error(provider_error(error_type)) == kind

    def test_quota_rate_limit_is_terminal(self) -> None:
        """Should treat an exhausted quota as non-transient."""
        error = provider_error(litellm.RateLimitError, "You exceeded your current quota")

        assert classify_llm_error(error) == ErrorKind.QUOTA_EXHAUSTED

    def test_unknown_error(self) -> None:
        """Should fall back to UNKNOWN."""
        assert classify_llm_error(RuntimeError("???")) == ErrorKind.UNKNOWN


class TestLLMConfig:
    """Test LLMConfig dataclass."""

    def test_default_values(self) -> None:
        """Should have correct default values."""
        config = LLMConfig(model="openai/gpt-4o-mini")

        assert config.max_tokens == 2000
        assert config.temperature == 0.7
        assert config.timeout == 120


class TestLLMTextGenerator:
    """Test LLMTextGenerator functionality."""

    @pytest.fixture
    def mock_response(self) -> MagicMock:
        """Create mock litellm response."""
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = "Generated outline"
        response.model = "openai/gpt-4o-mini"
        response.usage = MagicMock()
        response.usage.prompt_tokens = 10
        response.usage.completion_tokens = 20
        response.usage.total_tokens = 30
        return response

    @pytest.fixture
    def generator(self) -> LLMTextGenerator:
        """Create generator instance."""
        return LLMTextGenerator(default_model="openai/gpt-4o-mini", timeout=30)

    @pytest.mark.asyncio
    async def test_generate_uses_prompt_params(
        self, generator: LLMTextGenerator, mock_response: MagicMock
    ) -> None:
        """Should pass stage model parameters to the provider."""
        mock_fn = AsyncMock(return_value=mock_response)
        params = PromptModel(
            model="anthropic/claude-3-5-haiku-20241022", temperature=0.2, max_tokens=500
        )

        with patch("app.infrastructure.llm.acompletion", mock_fn):
            text = await generator.generate("Write an outline", params)

        assert text == "Generated outline"
        mock_fn.assert_called_once_with(
            model="anthropic/claude-3-5-haiku-20241022",
            messages=[{"role": "user", "content": "Write an outline"}],
            max_tokens=500,
            temperature=0.2,
            timeout=30,
        )

    @pytest.mark.asyncio
    async def test_generate_falls_back_to_default_model(
        self, generator: LLMTextGenerator, mock_response: MagicMock
    ) -> None:
        """Should use the default model when the stage names none."""
        mock_fn = AsyncMock(return_value=mock_response)

        with patch("app.infrastructure.llm.acompletion", mock_fn):
            await generator.generate("Hi", PromptModel())

        assert mock_fn.call_args.kwargs["model"] == "openai/gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_generate_empty_response_fails(
        self, generator: LLMTextGenerator, mock_response: MagicMock
    ) -> None:
        """Should report an empty response as a generation failure."""
        mock_response.choices[0].message.content = "   "

        with patch(
            "app.infrastructure.llm.acompletion",
            new_callable=AsyncMock,
            return_value=mock_response,
        ):
            with pytest.raises(CollaboratorError) as exc_info:
                await generator.generate("Hi", PromptModel())

        assert exc_info.value.kind == ErrorKind.GENERATION_FAILED
        assert exc_info.value.service == TEXT_GENERATION

    @pytest.mark.asyncio
    async def test_complete_returns_usage(
        self, generator: LLMTextGenerator, mock_response: MagicMock
    ) -> None:
        """Should collect token usage."""
        with patch(
            "app.infrastructure.llm.acompletion",
            new_callable=AsyncMock,
            return_value=mock_response,
        ):
            response = await generator.complete(
                LLMConfig(model="openai/gpt-4o-mini"), [{"role": "user", "content": "Hi"}]
            )

        assert isinstance(response, LLMResponse)
        assert response.usage == {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30}

    @pytest.mark.asyncio
    async def test_complete_wraps_provider_errors(self, generator: LLMTextGenerator) -> None:
        """Should raise CollaboratorError with the classified kind."""
        with patch(
            "app.infrastructure.llm.acompletion",
            new_callable=AsyncMock,
            side_effect=RuntimeError("connection reset"),
        ):
            with pytest.raises(CollaboratorError) as exc_info:
                await generator.complete(
                    LLMConfig(model="openai/gpt-4o-mini"), [{"role": "user", "content": "Hi"}]
                )

        assert exc_info.value.kind == ErrorKind.UNKNOWN
        assert "connection reset" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
