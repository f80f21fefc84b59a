"""Configuration settings for Contentformer."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

# Load .env file
load_dotenv()


class StageBudget(BaseModel):
    """Token, timeout and temperature budget for one generation stage."""

    max_tokens: int = Field(gt=0)
    timeout_seconds: float = Field(gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)


def _default_stage_budgets() -> dict[str, StageBudget]:
    return {
        "connection": StageBudget(max_tokens=20, timeout_seconds=10, temperature=0.1),
        "ideas": StageBudget(max_tokens=1000, timeout_seconds=30),
        "script": StageBudget(max_tokens=2000, timeout_seconds=60),
        "refine": StageBudget(max_tokens=2000, timeout_seconds=60),
        "regenerate": StageBudget(max_tokens=2000, timeout_seconds=60),
        "linkedin": StageBudget(max_tokens=1000, timeout_seconds=30),
    }


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: str = os.getenv("APP_ENV", "development")
    port: int = 8000

    # Model Configuration
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    openai_model: str = "gpt-4"

    # Per-stage generation budgets (override with STAGE_BUDGETS as JSON)
    stage_budgets: dict[str, StageBudget] = Field(default_factory=_default_stage_budgets)

    # Credential cookies
    credential_cookie_max_age: int = 60 * 60 * 24 * 7  # 1 week

    # Pipeline session cookie
    secret_key: str = os.getenv("SECRET_KEY", "dev-secret-change-me")
    session_cookie: str = "contentformer_session"
    session_max_age: int = 60 * 60 * 24  # 1 day

    # CLI credential store
    client_config_path: Path = Path.home() / ".contentformer" / "api_config.json"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def budget_for(self, stage: str) -> StageBudget:
        """Return the budget configured for a stage."""
        try:
            return self.stage_budgets[stage]
        except KeyError:
            raise ValueError(f"Unknown generation stage: {stage}") from None


# Global settings instance
settings = Settings()
