"""Text generation collaborator using LiteLLM.

This module provides the LLM client used for every text-generation stage
(outline, script, visual style, chapter content, prompts, descriptions).
Provider failures are mapped to CollaboratorError with a typed ErrorKind so
the retry engine can classify them.
"""

from dataclasses import dataclass
from typing import Any

import litellm
from litellm import acompletion

from app.config.retry import TEXT_GENERATION
from app.config.template import PromptModel
from app.core.config import get_config
from app.core.exceptions import CollaboratorError, ErrorKind
from app.core.logging import get_logger

logger = get_logger(__name__)

# Configure LiteLLM
litellm.drop_params = True  # Drop unsupported params for each provider

# Checked in order: subclasses before their bases
_ERROR_KINDS: tuple[tuple[type[Exception], ErrorKind], ...] = (
    (litellm.ContentPolicyViolationError, ErrorKind.CONTENT_POLICY),
    (litellm.ContextWindowExceededError, ErrorKind.INVALID_INPUT),
    (litellm.AuthenticationError, ErrorKind.AUTHENTICATION),
    (litellm.NotFoundError, ErrorKind.NOT_FOUND),
    (litellm.BadRequestError, ErrorKind.INVALID_INPUT),
    (litellm.RateLimitError, ErrorKind.RATE_LIMITED),
    (litellm.Timeout, ErrorKind.TIMEOUT),
    (litellm.ServiceUnavailableError, ErrorKind.UNAVAILABLE),
    (litellm.InternalServerError, ErrorKind.UNAVAILABLE),
    (litellm.APIConnectionError, ErrorKind.NETWORK),
)


def classify_llm_error(error: Exception) -> ErrorKind:
    """Map a LiteLLM exception to an ErrorKind.

    Rate-limit errors caused by an exhausted quota are terminal.

    Args:
        error: Exception raised by LiteLLM

    Returns:
        Matching ErrorKind, UNKNOWN if nothing matches
    """
    for error_type, kind in _ERROR_KINDS:
        if isinstance(error, error_type):
            if kind == ErrorKind.RATE_LIMITED and "quota" in str(error).lower():
                return ErrorKind.QUOTA_EXHAUSTED
            return kind
    return ErrorKind.UNKNOWN


@dataclass
class LLMConfig:
    """LLM configuration for one request.

    Attributes:
        model: Model identifier (e.g., "openai/gpt-4o-mini")
        max_tokens: Maximum tokens in response
        temperature: Sampling temperature
        timeout: Request timeout in seconds
    """

    model: str
    max_tokens: int = 2000
    temperature: float = 0.7
    timeout: int = 120


@dataclass
class LLMResponse:
    """Standardized LLM response.

    Attributes:
        content: Generated text content
        model: Model used for generation
        usage: Token usage statistics
        raw_response: Raw response from provider
    """

    content: str
    model: str
    usage: dict[str, int]
    raw_response: Any = None


class LLMTextGenerator:
    """Text generator backed by LiteLLM.

    Model naming convention:
        - Anthropic: "anthropic/claude-3-5-sonnet-20241022"
        - OpenAI: "openai/gpt-4o"
        - Gemini: "gemini/gemini-1.5-pro"

    Example:
        >>> generator = LLMTextGenerator()
        >>> text = await generator.generate("Write a story outline", PromptModel())
    """

    def __init__(
        self,
        default_model: str | None = None,
        timeout: int | None = None,
    ) -> None:
        """Initialize generator with API keys from config.

        Args:
            default_model: Model used when a stage does not name one
            timeout: Request timeout in seconds
        """
        config = get_config()
        if config.anthropic_api_key:
            litellm.anthropic_key = config.anthropic_api_key
        if config.openai_api_key:
            litellm.openai_key = config.openai_api_key

        self.default_model = default_model or config.llm_default_model
        self.timeout = timeout or config.llm_timeout_seconds

        logger.info("LLMTextGenerator initialized", default_model=self.default_model)

    async def generate(self, prompt: str, params: PromptModel) -> str:
        """Generate text for a single-turn prompt.

        Args:
            prompt: User prompt
            params: Stage model parameters

        Returns:
            Generated text

        Raises:
            CollaboratorError: If generation fails or returns nothing
        """
        config = LLMConfig(
            model=params.model or self.default_model,
            max_tokens=params.max_tokens,
            temperature=params.temperature,
            timeout=self.timeout,
        )
        response = await self.complete(config, [{"role": "user", "content": prompt}])
        if not response.content.strip():
            raise CollaboratorError(
                TEXT_GENERATION,
                "empty response",
                kind=ErrorKind.GENERATION_FAILED,
                context={"model": response.model},
            )
        return response.content

    async def complete(
        self,
        config: LLMConfig,
        messages: list[dict[str, str]],
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate completion from LLM.

        Args:
            config: LLM configuration
            messages: List of message dicts with 'role' and 'content'
            **kwargs: Additional parameters passed to the model

        Returns:
            LLMResponse with generated content

        Raises:
            CollaboratorError: If the provider call fails
        """
        try:
            logger.debug(
                "LLM request",
                model=config.model,
                max_tokens=config.max_tokens,
                message_count=len(messages),
            )

            response = await acompletion(
                model=config.model,
                messages=messages,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                timeout=config.timeout,
                **kwargs,
            )
        except Exception as e:
            kind = classify_llm_error(e)
            logger.warning(
                "LLM request failed",
                model=config.model,
                kind=kind.value,
                error=str(e),
            )
            raise CollaboratorError(
                TEXT_GENERATION,
                str(e),
                kind=kind,
                context={"model": config.model},
            ) from e

        content = response.choices[0].message.content or ""

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens or 0,
                "completion_tokens": response.usage.completion_tokens or 0,
                "total_tokens": response.usage.total_tokens or 0,
            }

        logger.debug(
            "LLM response",
            model=response.model,
            content_length=len(content),
            usage=usage,
        )

        return LLMResponse(
            content=content,
            model=response.model or config.model,
            usage=usage,
            raw_response=response,
        )


__all__ = [
    "LLMConfig",
    "LLMResponse",
    "LLMTextGenerator",
    "classify_llm_error",
]
