"""Classifier agent — sorts an incident into category, fault domain and severity."""

import logging
from enum import Enum

from pydantic import BaseModel, field_validator

from agents.base import BaseAgent
from schemas.classification import ErrorCategory, FaultDomain, IncidentClassification, Severity
from schemas.incident import IncidentInput

logger = logging.getLogger(__name__)

CLASSIFIER_MODEL = "openai/gpt-4o-mini"
MAX_MODEL_SIGNALS = 4

# Spellings models commonly return instead of the canonical values.
_FAULT_DOMAIN_ALIASES = {
    "openrouter": FaultDomain.OPENROUTER_PLATFORM,
    "platform": FaultDomain.OPENROUTER_PLATFORM,
    "upstream": FaultDomain.UPSTREAM_PROVIDER,
    "provider": FaultDomain.UPSTREAM_PROVIDER,
}


def _coerce_enum(value, enum_cls: type[Enum], default: Enum, aliases: dict | None = None) -> Enum:
    """Match value against enum_cls leniently, returning default if nothing fits."""
    if not isinstance(value, str):
        return default
    key = value.strip().lower()
    for candidate in (key, key.replace("_", "-"), key.replace("-", "_")):
        try:
            return enum_cls(candidate)
        except ValueError:
            continue
    return (aliases or {}).get(key, default)


class _ClassificationSchema(BaseModel):
    errorCategory: ErrorCategory = ErrorCategory.UNKNOWN
    faultDomain: FaultDomain = FaultDomain.UNKNOWN
    severity: Severity = Severity.MEDIUM
    provider: str | None = None
    signals: list[str] = []

    @field_validator("errorCategory", mode="before")
    @classmethod
    def _category(cls, value):
        return _coerce_enum(value, ErrorCategory, ErrorCategory.UNKNOWN)

    @field_validator("faultDomain", mode="before")
    @classmethod
    def _fault_domain(cls, value):
        return _coerce_enum(value, FaultDomain, FaultDomain.UNKNOWN, _FAULT_DOMAIN_ALIASES)

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, value):
        return _coerce_enum(value, Severity, Severity.MEDIUM)

    @field_validator("provider", mode="before")
    @classmethod
    def _provider(cls, value):
        if not isinstance(value, str):
            return None
        return value.strip() or None

    @field_validator("signals", mode="before")
    @classmethod
    def _signals(cls, value):
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None][:MAX_MODEL_SIGNALS]


def fallback_classification(incident: IncidentInput) -> IncidentClassification:
    """Classify an incident from its status code alone.

    Pure and deterministic. 4xx codes are blamed on the customer, 5xx on the
    upstream provider, and anything else on the platform. Severity is
    always MEDIUM since a bare status code says nothing about impact.
    """
    code = incident.error.code

    if 400 <= code < 500:
        category, domain = ErrorCategory.CLIENT_ERROR, FaultDomain.CUSTOMER
    elif 500 <= code < 600:
        category, domain = ErrorCategory.SERVER_ERROR, FaultDomain.UPSTREAM_PROVIDER
    else:
        category, domain = ErrorCategory.UNKNOWN, FaultDomain.OPENROUTER_PLATFORM

    return IncidentClassification(
        error_category=category,
        fault_domain=domain,
        severity=Severity.MEDIUM,
        provider=incident.model.split("/", 1)[0] if incident.model else None,
        signals=[f"HTTP {code}", incident.error.message],
    )


class ClassifierAgent(BaseAgent):
    """Classifies an incident with a fast model, falling back to the rule table.

    Model: openai/gpt-4o-mini via OpenRouter at temperature 0, chosen for
    low latency and repeatable output on a small, closed label set.
    """

    name = "classifier"
    prompt_name = "classifier"

    async def classify(self, incident: IncidentInput) -> IncidentClassification:
        """Return the classification for incident. Never raises."""
        user_message = f"INCIDENT DATA:\n{incident.prompt_payload()}"

        try:
            parsed = await self._ask(user_message, _ClassificationSchema)
        except Exception as exc:
            logger.warning("classifier: model call failed, using rule table: %s", exc)
            return fallback_classification(incident)

        return IncidentClassification(
            error_category=parsed.errorCategory,
            fault_domain=parsed.faultDomain,
            severity=parsed.severity,
            provider=parsed.provider,
            signals=parsed.signals,
        )
