"""
=====================================================
Craftsman Phone Assistant - OpenAI LLM Service
=====================================================
Chat completions for the booking conversation
"""

from typing import Optional
from loguru import logger
from openai import AsyncOpenAI

from config.settings import ConfigurationError
from .llm_base import LLMServiceBase, LLMRequest, LLMResponse


class OpenAILLM(LLMServiceBase):
    """
    OpenAI chat completion service

    One short completion per caller turn; no streaming, no tools.
    """

    name = "OpenAI"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", base_url: Optional[str] = None):
        """
        Initialize OpenAI LLM service

        Args:
            api_key: OpenAI API key
            model: Chat model (a small model keeps turn latency low)
            base_url: Optional OpenAI-compatible endpoint
        """
        super().__init__(api_key, model)
        self.base_url = base_url
        self._client: Optional[AsyncOpenAI] = None

    def _get_client(self) -> AsyncOpenAI:
        """Get or create OpenAI client"""
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url or None)
        return self._client

    async def chat(self, request: LLMRequest) -> LLMResponse:
        """
        Non-streaming chat completion

        Args:
            request: Prompt and sampling limits

        Returns:
            The model's reply
        """
        params = request.to_api_params()
        logger.debug(f"OpenAI: Requesting reply from {self.model} ({len(params['messages'])} messages)")

        try:
            completion = await self._get_client().chat.completions.create(model=self.model, stream=False, **params)
        except Exception as e:
            logger.error(f"OpenAI: Chat error: {e!r}")
            raise

        choice = completion.choices[0]
        usage = completion.usage
        response = LLMResponse(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason,
            tokens_used=usage.total_tokens if usage else 0,
            metadata={"model": completion.model},
        )
        logger.info(f"OpenAI: Reply in {response.tokens_used} tokens ({response.finish_reason})")
        return response

    async def close(self) -> None:
        """Close the underlying HTTP client"""
        if self._client is not None:
            await self._client.close()
            self._client = None


# Factory function
def create_openai_llm(config: dict) -> OpenAILLM:
    """
    Factory function to create OpenAI LLM service from config

    Args:
        config: Configuration dictionary (from Settings)

    Returns:
        Configured OpenAILLM instance

    Raises:
        ConfigurationError: If no API key is configured
    """
    api_key = config.get('openai_api_key')
    if not api_key:
        raise ConfigurationError("OPENAI_API_KEY is required for the dialogue model")

    return OpenAILLM(
        api_key=api_key,
        model=config.get('openai_model', 'gpt-4o-mini'),
        base_url=config.get('openai_base_url') or None,
    )
