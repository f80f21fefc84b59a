"""LiteLLM-based provider for OpenAI models."""

import logging

from ..config.settings import Settings
from ..models import Provider
from ..utils.llm_client import complete_prompt
from .base_agent import AnthropicProvider, GenerationResult, TextProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(TextProvider):
    """
    GPT models routed through LiteLLM.

    Same interface as AnthropicProvider; LiteLLM handles the API call.
    """

    name = "OpenAI"

    def __init__(self, api_key: str, model_id: str = "gpt-4"):
        super().__init__(api_key, model_id)

    async def generate(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> GenerationResult:
        logger.info("[LITELLM] Calling %s (max_tokens=%d)", self.model_id, max_tokens)
        completion = await complete_prompt(
            self.model_id,
            prompt,
            max_tokens=max_tokens,
            temperature=temperature,
            api_key=self.api_key,
            timeout=timeout,
        )
        return GenerationResult(
            text=completion.text,
            input_tokens=completion.prompt_tokens,
            output_tokens=completion.completion_tokens,
            model=self.model_id,
        )


def build_provider(provider: Provider, api_key: str, settings: Settings) -> TextProvider:
    """Create the provider implementation for a configured provider."""
    if provider is Provider.ANTHROPIC:
        return AnthropicProvider(api_key, model_id=settings.anthropic_model)
    return OpenAIProvider(api_key, model_id=settings.openai_model)
