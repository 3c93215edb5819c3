"""Runtime configuration.

Settings come from environment variables, with a .env file in the working
directory loaded first. Every setting has a default except the OpenRouter
API key, which OpenRouterClient reads itself and requires at construction.

Environment variables:
    OPENROUTER_API_KEY:   OpenRouter API key (required for model calls).
    CLASSIFIER_MODEL:     Model used by the classifier.
    EXPLAINER_MODELS:     Comma-separated models for the explainer, primary first.
    LLM_TIMEOUT_SECONDS:  Per-request timeout for model calls.
    INCIDENT_DB_URL:      SQLAlchemy URL of the history database.
    HISTORY_ENABLED:      "false" disables the history lookup entirely.
    MAX_INPUT_LENGTH:     Longest accepted input, in characters.
    ALLOWED_ORIGINS:      Comma-separated CORS origins for the API.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from agents.classifier import CLASSIFIER_MODEL
from agents.explainer import EXPLAINER_MODELS
from core.guard import DEFAULT_MAX_INPUT_LENGTH
from history.store import DEFAULT_DATABASE_URL
from llm.openrouter import DEFAULT_TIMEOUT_SECONDS

load_dotenv()

_FALSE_VALUES = {"0", "false", "no", "off"}


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one process."""

    classifier_model: str = CLASSIFIER_MODEL
    explainer_models: list[str] = field(default_factory=lambda: list(EXPLAINER_MODELS))
    llm_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    database_url: str = DEFAULT_DATABASE_URL
    history_enabled: bool = True
    max_input_length: int = DEFAULT_MAX_INPUT_LENGTH
    allowed_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current environment.

        Raises:
            ValueError: If a numeric variable is set to a non-numeric value.
        """
        env = os.environ
        return cls(
            classifier_model=env.get("CLASSIFIER_MODEL", CLASSIFIER_MODEL),
            explainer_models=_split(env.get("EXPLAINER_MODELS", "")) or list(EXPLAINER_MODELS),
            llm_timeout_seconds=float(env.get("LLM_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)),
            database_url=env.get("INCIDENT_DB_URL", DEFAULT_DATABASE_URL),
            history_enabled=env.get("HISTORY_ENABLED", "true").strip().lower() not in _FALSE_VALUES,
            max_input_length=int(env.get("MAX_INPUT_LENGTH", DEFAULT_MAX_INPUT_LENGTH)),
            allowed_origins=_split(env.get("ALLOWED_ORIGINS", "")) or ["http://localhost:3000"],
        )
