"""Explainer agent — writes the incident report for a classified incident."""

import json
import logging

from pydantic import BaseModel, field_validator

from agents.base import BaseAgent
from schemas.classification import IncidentClassification, Severity
from schemas.incident import IncidentInput
from schemas.report import IncidentReport

logger = logging.getLogger(__name__)

EXPLAINER_MODELS = ["anthropic/claude-3.5-sonnet", "openai/gpt-4o"]
REPRODUCTION_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"
REPRODUCTION_DEFAULT_MODEL = "openai/gpt-4o-mini"
SUMMARY_LENGTH = 150

FALLBACK_MITIGATION = [
    "Retry the request with exponential backoff",
    "Consider switching to a fallback model",
]


class _ReportSchema(BaseModel):
    rootCause: str = "Unable to determine root cause"
    evidence: list[str] = []
    customerImpact: str = "Impact unknown"
    mitigation: list[str] = []
    reproductionScript: str = ""
    escalationNotes: str = ""

    @field_validator("evidence", "mitigation", mode="before")
    @classmethod
    def _string_list(cls, value):
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None and str(item).strip()]

    @field_validator("rootCause", "customerImpact", "reproductionScript", "escalationNotes", mode="before")
    @classmethod
    def _string(cls, value, info):
        if value is None:
            return cls.model_fields[info.field_name].default
        return value if isinstance(value, str) else str(value)


def build_reproduction_script(incident: IncidentInput) -> str:
    """Return a curl command that sends a minimal chat request to the incident's model."""
    body = {
        "model": incident.model or REPRODUCTION_DEFAULT_MODEL,
        "messages": [{"role": "user", "content": "Hello"}],
    }
    return (
        f"curl -X POST {REPRODUCTION_ENDPOINT} \\\n"
        '  -H "Authorization: Bearer YOUR_API_KEY" \\\n'
        '  -H "Content-Type: application/json" \\\n'
        f"  -d '{json.dumps(body, separators=(',', ':'))}'"
    )


def fallback_report(incident: IncidentInput, classification: IncidentClassification) -> IncidentReport:
    """Build a report from templates, without a model.

    Every field of the result is non-empty for any incident/classification
    pair, so this is always safe to return in place of a model report.
    """
    model = incident.model or "unknown model"
    code = incident.error.code
    summary = incident.error.message[:SUMMARY_LENGTH]

    if code > 0:
        root_cause = f"HTTP {code} error from {model}: {summary}"
        evidence = [f"HTTP status code: {code}"]
    else:
        root_cause = f"Incident reported for {model}: {summary}"
        evidence = []
    evidence.append(f"Error summary: {summary}")
    evidence.extend(classification.signals)

    if classification.severity.rank >= Severity.HIGH.rank:
        customer_impact = "Production traffic is likely affected."
    else:
        customer_impact = "Limited impact expected."

    return IncidentReport(
        root_cause=root_cause,
        evidence=evidence,
        customer_impact=customer_impact,
        mitigation=list(FALLBACK_MITIGATION),
        reproduction_script=build_reproduction_script(incident),
        escalation_notes=f"Fault domain: {classification.fault_domain.value}. Monitor for recurrence.",
    )


class ExplainerAgent(BaseAgent):
    """Generates the incident report with a high-quality model.

    Model: anthropic/claude-3.5-sonnet with openai/gpt-4o as OpenRouter's
    fallback route, at temperature 0.2. If both fail, or the response cannot
    be parsed, the templated fallback report is returned instead.
    """

    name = "explainer"
    prompt_name = "explainer"

    async def explain(
        self,
        incident: IncidentInput,
        classification: IncidentClassification,
    ) -> IncidentReport:
        """Return the report for incident. Never raises."""
        user_message = (
            f"INCIDENT DATA:\n{incident.prompt_payload()}\n\n"
            f"CLASSIFICATION (from initial triage):\n"
            f"{json.dumps(classification.model_dump(mode='json', by_alias=True), indent=2)}"
        )

        try:
            parsed = await self._ask(user_message, _ReportSchema)
        except Exception as exc:
            logger.warning("explainer: model call failed, using templated report: %s", exc)
            return fallback_report(incident, classification)

        # Fields the model left empty are filled from the template.
        template = fallback_report(incident, classification)
        return IncidentReport(
            root_cause=parsed.rootCause.strip() or template.root_cause,
            evidence=parsed.evidence or template.evidence,
            customer_impact=parsed.customerImpact.strip() or template.customer_impact,
            mitigation=parsed.mitigation or template.mitigation,
            reproduction_script=parsed.reproductionScript.strip() or template.reproduction_script,
            escalation_notes=parsed.escalationNotes.strip() or template.escalation_notes,
        )
