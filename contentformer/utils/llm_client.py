"""Thin async wrapper over LiteLLM for single-prompt completions."""

import logging
from dataclasses import dataclass
from typing import Optional

import litellm

# Suppress verbose LiteLLM logging
litellm.set_verbose = False
logging.getLogger("LiteLLM").setLevel(logging.WARNING)


@dataclass
class Completion:
    text: str
    prompt_tokens: int = 0
    completion_tokens: int = 0


async def complete_prompt(
    model: str,
    prompt: str,
    max_tokens: int,
    temperature: float,
    api_key: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Completion:
    """
    Send one prompt as a single user message and return the reply with usage.

    Client-level retries are disabled; callers decide what a failure means.

    Raises:
        Exception: Whatever LiteLLM raises for the failed call
    """
    kwargs = {
        "model": model,
        "messages": [{"role": "user", "content": prompt}],
        "max_tokens": max_tokens,
        "temperature": temperature,
        "max_retries": 0,
    }
    if api_key:
        kwargs["api_key"] = api_key
    if timeout:
        kwargs["timeout"] = timeout

    response = await litellm.acompletion(**kwargs)
    usage = getattr(response, "usage", None)
    return Completion(
        text=response.choices[0].message.content or "",
        prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
    )
