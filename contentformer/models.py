"""Domain records shared by the pipeline, the web app and the CLI."""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Provider(str, Enum):
    """Text-generation providers a user can pick."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"

    @property
    def display_name(self) -> str:
        return "Anthropic" if self is Provider.ANTHROPIC else "OpenAI"

    @classmethod
    def parse(cls, value: str) -> Optional["Provider"]:
        """Return the provider for a config value, or None if unrecognised."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return None


def new_id(prefix: str) -> str:
    """Generate an id like ``idea-1a2b3c4d``."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class ApiConfig:
    """Provider keys and the preferred provider.

    The preferred provider's key is checked when a call is made, not here.
    """

    anthropic_api_key: str = ""
    openai_api_key: str = ""
    preferred_provider: str = Provider.ANTHROPIC.value

    def key_for(self, provider: Provider) -> str:
        if provider is Provider.ANTHROPIC:
            return self.anthropic_api_key or ""
        return self.openai_api_key or ""

    def has_any_key(self) -> bool:
        return bool((self.anthropic_api_key or "").strip() or (self.openai_api_key or "").strip())

    def to_dict(self) -> dict:
        return {
            "anthropicApiKey": self.anthropic_api_key,
            "openaiApiKey": self.openai_api_key,
            "preferredProvider": self.preferred_provider,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ApiConfig":
        return cls(
            anthropic_api_key=data.get("anthropicApiKey") or "",
            openai_api_key=data.get("openaiApiKey") or "",
            preferred_provider=data.get("preferredProvider") or Provider.ANTHROPIC.value,
        )


@dataclass(frozen=True)
class ContentIdea:
    """A video idea derived from the transcript."""

    id: str
    title: str
    description: str

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title, "description": self.description}


@dataclass(frozen=True)
class VideoScript:
    """A blog-style video script written for one idea."""

    id: str
    idea_id: str
    title: str
    script: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ideaId": self.idea_id,
            "title": self.title,
            "script": self.script,
        }


@dataclass(frozen=True)
class LinkedInPost:
    """A LinkedIn post promoting one script."""

    id: str
    script_id: str
    post: str

    def to_dict(self) -> dict:
        return {"id": self.id, "scriptId": self.script_id, "post": self.post}
