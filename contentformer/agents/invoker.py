"""Model invoker: one generation call with config validation, timeout and error classification.

The invoker never retries and never mutates shared state, so independent
stages could call it concurrently; the orchestrator calls it sequentially.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..config.settings import Settings, StageBudget, settings as default_settings
from ..exceptions import (
    AuthError,
    ConfigError,
    ContentformerError,
    EmptyResponseError,
    ProviderError,
    RateLimitError,
    RequestTimeoutError,
)
from ..models import ApiConfig, Provider
from ..prompts.builder import CONNECTION_TEST_PROMPT
from ..utils.cost_tracker import PipelineCosts
from .base_agent import TextProvider
from .litellm_provider import build_provider

logger = logging.getLogger(__name__)

NO_VALID_CONFIG_MESSAGE = "No valid API configuration found. Please check your API settings."

ProviderFactory = Callable[[Provider, str], TextProvider]


def _status_of(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if value is None:
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    return None


def timeout_error(provider_name: str, timeout_seconds: float) -> RequestTimeoutError:
    return RequestTimeoutError(
        f"Request timed out after {timeout_seconds:g} seconds. "
        f"{provider_name} took too long to respond.",
        provider=provider_name,
    )


def classify_provider_error(
    exc: BaseException,
    provider_name: str,
    timeout_seconds: float = 0,
) -> ProviderError:
    """Map an SDK or transport error onto the error taxonomy.

    Looks at HTTP-like status attributes first, then at the exception type
    name and message, since the two SDKs word their errors differently.
    """
    status = _status_of(exc)
    message = str(exc) or type(exc).__name__
    lowered = message.lower()
    type_name = type(exc).__name__

    if isinstance(exc, TimeoutError) or "Timeout" in type_name or "timed out" in lowered:
        return timeout_error(provider_name, timeout_seconds)

    if (
        status == 401
        or "Authentication" in type_name
        or "401" in message
        or "unauthorized" in lowered
    ):
        return AuthError(
            f"Authentication failed with {provider_name}. Please check your API key.",
            provider=provider_name,
            original=exc,
        )

    if status == 429 or "RateLimit" in type_name or "429" in message or "rate limit" in lowered:
        return RateLimitError(
            f"Rate limit exceeded for {provider_name}. Please try again later.",
            provider=provider_name,
            original=exc,
        )

    return ProviderError(
        f"{provider_name} service error: {message}",
        provider=provider_name,
        original=exc,
    )


@dataclass
class ConnectionResult:
    """Outcome of a connection test."""

    success: bool
    message: str
    provider: Optional[str] = None
    status_code: int = 200

    def to_dict(self) -> dict:
        data = {"success": self.success, "message": self.message}
        if self.provider:
            data["provider"] = self.provider
        return data


class ModelInvoker:
    """Runs single prompts against the configured provider."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        provider_factory: Optional[ProviderFactory] = None,
        costs: Optional[PipelineCosts] = None,
    ):
        """
        Args:
            settings: Settings holding model ids and stage budgets
            provider_factory: Builds a TextProvider for (provider, api_key);
                defaults to the Anthropic SDK / LiteLLM implementations
            costs: Optional usage tracker updated after every successful call
        """
        self.settings = settings or default_settings
        self.provider_factory = provider_factory or (
            lambda provider, key: build_provider(provider, key, self.settings)
        )
        self.costs = costs

    def validate_config(self, config: ApiConfig) -> Provider:
        """Return the provider to use, or raise ConfigError before any network call."""
        provider = Provider.parse(config.preferred_provider)
        if provider is None:
            raise ConfigError(NO_VALID_CONFIG_MESSAGE)

        if not config.key_for(provider).strip():
            raise ConfigError(
                f"{provider.display_name} API key is missing. Please add your API key in settings."
            )
        return provider

    def budget(self, stage: str) -> StageBudget:
        return self.settings.budget_for(stage)

    async def invoke(
        self,
        config: ApiConfig,
        prompt: str,
        stage: str,
        budget: Optional[StageBudget] = None,
    ) -> str:
        """Generate text for a prompt.

        Args:
            config: API configuration to use
            prompt: Fully rendered prompt
            stage: Stage name, used for the default budget and usage tracking
            budget: Overrides the stage's configured budget

        Returns:
            Non-blank generated text

        Raises:
            ConfigError: Preferred provider unusable (no network call made)
            RequestTimeoutError: Call exceeded the stage timeout
            AuthError, RateLimitError, ProviderError: Provider failure
            EmptyResponseError: Provider returned blank text
        """
        provider = self.validate_config(config)
        budget = budget or self.budget(stage)
        text_provider = self.provider_factory(provider, config.key_for(provider).strip())

        logger.info(
            "[INVOKER] stage=%s provider=%s model=%s max_tokens=%d timeout=%.0fs",
            stage,
            text_provider.name,
            text_provider.model_id,
            budget.max_tokens,
            budget.timeout_seconds,
        )

        try:
            result = await asyncio.wait_for(
                text_provider.generate(
                    prompt,
                    max_tokens=budget.max_tokens,
                    temperature=budget.temperature,
                    timeout=budget.timeout_seconds,
                ),
                timeout=budget.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("[INVOKER] stage=%s timed out after %.0fs", stage, budget.timeout_seconds)
            raise timeout_error(text_provider.name, budget.timeout_seconds) from None
        except ContentformerError:
            raise
        except Exception as e:
            error = classify_provider_error(e, text_provider.name, budget.timeout_seconds)
            logger.error("[INVOKER] stage=%s failed: %s", stage, e)
            raise error from e

        if self.costs is not None:
            self.costs.add_usage(stage, result.model, result.input_tokens, result.output_tokens)

        text = result.text or ""
        if not text.strip():
            logger.warning("[INVOKER] stage=%s returned an empty response", stage)
            raise EmptyResponseError(
                "Received empty response from AI service.",
                provider=text_provider.name,
            )

        logger.info("[INVOKER] stage=%s got response (%d chars)", stage, len(text))
        return text


async def check_connection(invoker: ModelInvoker, config: ApiConfig) -> ConnectionResult:
    """Send a tiny prompt to the preferred provider. Never raises."""
    try:
        provider = invoker.validate_config(config)
        await invoker.invoke(config, CONNECTION_TEST_PROMPT, stage="connection")
    except ContentformerError as e:
        logger.warning("[CONNECTION] Test failed: %s", e.message)
        return ConnectionResult(success=False, message=e.message, status_code=e.status_code)

    return ConnectionResult(
        success=True,
        provider=provider.value,
        message=f"{provider.display_name} API connection successful",
    )
