"""API credential resolution and persistence.

Resolution order is fixed: environment variables, then the secure cookies
(only when the ``hasApiConfig`` flag cookie says they were set), then the
client-side store, then empty defaults.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional

from starlette.responses import Response

from ..config.settings import Settings
from ..models import ApiConfig, Provider

logger = logging.getLogger(__name__)

ANTHROPIC_KEY_COOKIE = "anthropic-api-key"
OPENAI_KEY_COOKIE = "openai-api-key"
PROVIDER_COOKIE = "preferred-provider"
CONFIG_FLAG_COOKIE = "hasApiConfig"


class ClientConfigStore(ABC):
    """Durable client-side storage for an ApiConfig."""

    @abstractmethod
    def load(self) -> Optional[ApiConfig]:
        """Return the stored config, or None if nothing usable is stored."""

    @abstractmethod
    def save(self, config: ApiConfig) -> None:
        """Persist the config."""


class JsonFileConfigStore(ClientConfigStore):
    """ApiConfig kept in a JSON file (the CLI's equivalent of browser storage)."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> Optional[ApiConfig]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Failed to parse saved API config at %s: %s", self.path, e)
            self.path.unlink(missing_ok=True)
            return None
        if not isinstance(data, dict):
            logger.error("Saved API config at %s is not an object; removing it", self.path)
            self.path.unlink(missing_ok=True)
            return None
        return ApiConfig.from_dict(data)

    def save(self, config: ApiConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
        try:
            self.path.chmod(0o600)
        except OSError as e:
            logger.warning("Could not restrict permissions on %s: %s", self.path, e)


class PayloadConfigStore(ClientConfigStore):
    """Read-only view over the config fields a client sent with a request."""

    def __init__(self, config: Optional[ApiConfig]):
        self.config = config

    def load(self) -> Optional[ApiConfig]:
        # Returned even without keys so the caller's preferred provider survives
        return self.config

    def save(self, config: ApiConfig) -> None:
        self.config = config


class CredentialResolver:
    """Resolves the ApiConfig for a call from its sources in precedence order."""

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        cookies: Optional[Mapping[str, str]] = None,
        client_store: Optional[ClientConfigStore] = None,
    ):
        self.env = os.environ if env is None else env
        self.cookies = cookies or {}
        self.client_store = client_store

    def from_env(self) -> Optional[ApiConfig]:
        anthropic_key = self.env.get("ANTHROPIC_API_KEY", "")
        openai_key = self.env.get("OPENAI_API_KEY", "")
        if not anthropic_key and not openai_key:
            return None
        return ApiConfig(
            anthropic_api_key=anthropic_key,
            openai_api_key=openai_key,
            preferred_provider=self.env.get("PREFERRED_PROVIDER") or Provider.ANTHROPIC.value,
        )

    def from_cookies(self) -> Optional[ApiConfig]:
        if self.cookies.get(CONFIG_FLAG_COOKIE) != "true":
            return None
        config = ApiConfig(
            anthropic_api_key=self.cookies.get(ANTHROPIC_KEY_COOKIE, ""),
            openai_api_key=self.cookies.get(OPENAI_KEY_COOKIE, ""),
            preferred_provider=self.cookies.get(PROVIDER_COOKIE) or Provider.ANTHROPIC.value,
        )
        return config if config.has_any_key() else None

    def get_config(self) -> ApiConfig:
        """Return the first config found: env, secure cookies, client store, defaults."""
        for source, loader in (
            ("environment", self.from_env),
            ("cookies", self.from_cookies),
            ("client store", self._from_client_store),
        ):
            config = loader()
            if config is not None:
                logger.debug("Using API configuration from %s", source)
                return config
        return ApiConfig()

    def _from_client_store(self) -> Optional[ApiConfig]:
        if self.client_store is None:
            return None
        return self.client_store.load()

    def save_config(self, config: ApiConfig) -> ApiConfig:
        """Persist the config to the client store."""
        if self.client_store is None:
            raise ValueError("No client store configured for saving credentials")
        self.client_store.save(config)
        return config


def write_credential_cookies(response: Response, config: ApiConfig, settings: Settings) -> None:
    """Store the config as httponly cookies plus a readable "config present" flag."""
    secure = settings.is_production
    same_site = "strict" if settings.is_production else "lax"
    max_age = settings.credential_cookie_max_age

    for name, value in (
        (ANTHROPIC_KEY_COOKIE, config.anthropic_api_key),
        (OPENAI_KEY_COOKIE, config.openai_api_key),
        (PROVIDER_COOKIE, config.preferred_provider),
    ):
        response.set_cookie(
            name,
            value or "",
            max_age=max_age,
            path="/",
            secure=secure,
            httponly=True,
            samesite=same_site,
        )

    response.set_cookie(
        CONFIG_FLAG_COOKIE,
        "true",
        max_age=max_age,
        path="/",
        secure=secure,
        httponly=False,
        samesite=same_site,
    )
