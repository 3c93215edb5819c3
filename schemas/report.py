"""Report schemas.

IncidentReport is the human-facing output of the explanation stage.
SimilarIncident rows come from the history store and are attached to the
report by the runtime after it has been built.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from schemas.classification import IncidentClassification
from schemas.incident import IncidentInput


class SimilarIncident(BaseModel):
    """A previously analyzed incident whose message shares a keyword.

    Attributes:
        id: Store-assigned incident ID (uuid4 string).
        created_at: ISO-8601 timestamp of when the incident was recorded.
        error_message: The stored incident's error message.
        fault_domain: Fault domain the incident was classified into.
        severity: Severity the incident was classified with.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    created_at: str
    error_message: str
    fault_domain: str
    severity: str


class IncidentReport(BaseModel):
    """Incident report for the customer and for internal escalation.

    Attributes:
        root_cause: One sentence naming the most likely cause.
        evidence: Observations from the incident data backing the root cause.
        customer_impact: Plain-language description of the impact.
        mitigation: Actionable steps the customer can take now.
        reproduction_script: curl command reproducing the failure, with a
            placeholder API key.
        escalation_notes: Notes for internal escalation.
        similar_incidents: Historical matches. None when history lookup is
            disabled, failed, or found nothing.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    root_cause: str = Field(min_length=1)
    evidence: list[str]
    customer_impact: str = Field(min_length=1)
    mitigation: list[str]
    reproduction_script: str
    escalation_notes: str = Field(min_length=1)
    similar_incidents: list[SimilarIncident] | None = None


class AnalysisResult(BaseModel):
    """Everything one pipeline run produced: the body of a successful response."""

    incident: IncidentInput
    classification: IncidentClassification
    report: IncidentReport
