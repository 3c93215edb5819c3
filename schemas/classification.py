"""Classification schema.

The output of the classification stage: which kind of failure this is, who
is most likely responsible, and how bad it is.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ErrorCategory(str, Enum):
    CLIENT_ERROR = "4xx"
    SERVER_ERROR = "5xx"
    TIMEOUT = "timeout"
    STREAM_ABORT = "stream_abort"
    UNKNOWN = "unknown"


class FaultDomain(str, Enum):
    """Which party is most likely responsible for an incident.

    UNKNOWN is only produced when a model response omits or garbles the
    field; the deterministic rule table always picks one of the other three.
    """

    CUSTOMER = "customer"
    OPENROUTER_PLATFORM = "openrouter-platform"
    UPSTREAM_PROVIDER = "upstream-provider"
    UNKNOWN = "unknown"


class Severity(str, Enum):
    """Business impact level, ordered low < medium < high < critical."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Position in the severity ordering, 0 for LOW up to 3 for CRITICAL."""
        return list(Severity).index(self)


class IncidentClassification(BaseModel):
    """Result of classifying one incident.

    Every field is always populated. Uncertain values default to UNKNOWN /
    MEDIUM rather than being left out.

    Attributes:
        error_category: Broad failure class (4xx, 5xx, timeout, ...).
        fault_domain: Party most likely responsible.
        severity: Business impact level.
        provider: Upstream provider name (e.g. "anthropic"), if identifiable.
        signals: Short evidence strings supporting the classification.
            Up to 4 from the model path, exactly 2 from the fallback.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    error_category: ErrorCategory = ErrorCategory.UNKNOWN
    fault_domain: FaultDomain = FaultDomain.UNKNOWN
    severity: Severity = Severity.MEDIUM
    provider: str | None = None
    signals: list[str] = Field(default_factory=list, max_length=4)
