"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

import asyncio
import json
from typing import Callable, Optional

import pytest

from contentformer.agents.base_agent import GenerationResult, TextProvider
from contentformer.agents.invoker import ModelInvoker
from contentformer.config.settings import Settings
from contentformer.models import ApiConfig, Provider
from contentformer.utils.cost_tracker import PipelineCosts

SAMPLE_IDEAS = [
    {"title": "Why AI pilots stall", "description": "The three blockers we see in every pilot."},
    {"title": "Data before models", "description": "Cleaning data beats picking a model."},
    {"title": "Measuring ROI", "description": "How to put a number on an AI rollout."},
]


def default_reply(prompt: str) -> str:
    """Answer each stage prompt the way a well-behaved model would."""
    if "valid JSON array" in prompt:
        return json.dumps(SAMPLE_IDEAS)
    if "Refine this video script" in prompt:
        return "Refined script text"
    if "completely new" in prompt:
        return "Regenerated script text"
    if "LinkedIn post" in prompt:
        return "Big news on LinkedIn #AI"
    if "Convert this transcript" in prompt:
        title = prompt.split("Title: ", 1)[1].split("\n", 1)[0]
        return f"Script for: {title}"
    return "API connection successful"


class FakeProvider(TextProvider):
    """In-memory TextProvider; records every prompt it receives."""

    name = "Fake"

    def __init__(
        self,
        reply: Callable[[str], str] = default_reply,
        delay: float = 0.0,
        error: Optional[BaseException] = None,
    ):
        super().__init__("fake-key", "fake-model")
        self.reply = reply
        self.delay = delay
        self.error = error
        self.prompts: list[str] = []
        self.calls: list[dict] = []

    async def generate(self, prompt, max_tokens, temperature, timeout) -> GenerationResult:
        self.prompts.append(prompt)
        self.calls.append(
            {"max_tokens": max_tokens, "temperature": temperature, "timeout": timeout}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return GenerationResult(
            text=self.reply(prompt),
            input_tokens=100,
            output_tokens=50,
            model=self.model_id,
        )


class StatusError(Exception):
    """Stand-in for an SDK error carrying an HTTP status."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


@pytest.fixture
def test_settings() -> Settings:
    return Settings(environment="development")


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def factory_calls() -> list:
    """(provider, api_key) pairs the invoker asked the factory for."""
    return []


@pytest.fixture
def costs() -> PipelineCosts:
    return PipelineCosts()


@pytest.fixture
def invoker(test_settings, fake_provider, factory_calls, costs) -> ModelInvoker:
    def factory(provider: Provider, api_key: str) -> TextProvider:
        factory_calls.append((provider, api_key))
        return fake_provider

    return ModelInvoker(settings=test_settings, provider_factory=factory, costs=costs)


@pytest.fixture
def api_config() -> ApiConfig:
    return ApiConfig(anthropic_api_key="sk-ant-test", preferred_provider="anthropic")


@pytest.fixture
def sample_transcript() -> str:
    return (
        "Today I want to talk about why most AI pilots never make it to production. "
        "In my experience the model is rarely the problem. The data is."
    )
