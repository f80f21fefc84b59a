"""Text-generation provider capability and the Anthropic implementation.

Every provider answers one prompt with one block of text. The invoker picks
an implementation from the user's configuration, so call sites never branch
on the provider.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import anthropic


@dataclass
class GenerationResult:
    """Text plus token usage from a single provider call."""

    text: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""


class TextProvider(ABC):
    """
    Base class for text-generation providers.

    Subclasses implement generate() for one backend. Implementations must not
    retry; the caller enforces the stage timeout around the call.
    """

    name: str = ""

    def __init__(self, api_key: str, model_id: str):
        """
        Initialize the provider.

        Args:
            api_key: Key for this provider
            model_id: Model to use
        """
        self.api_key = api_key
        self.model_id = model_id

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> GenerationResult:
        """Send the prompt as a single user message and return the reply."""


class AnthropicProvider(TextProvider):
    """Claude via the Anthropic SDK."""

    name = "Anthropic"

    def __init__(self, api_key: str, model_id: str = "claude-3-5-sonnet-20241022"):
        super().__init__(api_key, model_id)
        self.client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)

    async def generate(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> GenerationResult:
        response = await self.client.messages.create(
            model=self.model_id,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
            timeout=timeout,
        )
        return GenerationResult(
            text=self._extract_text(response),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=self.model_id,
        )

    def _extract_text(self, response: anthropic.types.Message) -> str:
        """Extract text content from response."""
        for block in response.content:
            if block.type == "text":
                return block.text
        return ""
