"""Incident input schema.

Defines the canonical incident record produced by the normalizer. Whatever
shape the user pasted (error JSON, a curl command, or a prose description),
everything downstream of normalization works with this one type.
"""

import json
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class InputType(str, Enum):
    """Which parser produced an IncidentInput.

    Extends str so values serialize to plain strings in API responses and
    prompt dumps.

    Values:
        STRUCTURED: The input was a JSON document.
        SHELL_COMMAND: The input was a curl command line.
        PROSE: The input was free text, or JSON that failed to parse.
    """

    STRUCTURED = "structured"
    SHELL_COMMAND = "shell-command"
    PROSE = "prose"


class ErrorDetail(BaseModel):
    """The status code and message recovered from the reported failure.

    Attributes:
        code: HTTP status code. 0 means no numeric status was recoverable.
        message: Error message. Never empty; the normalizer substitutes a
            placeholder when the source has none.
    """

    model_config = ConfigDict(frozen=True)

    code: int = 0
    message: str = Field(min_length=1)


class IncidentInput(BaseModel):
    """Canonical representation of one reported API failure.

    Created once per request by the normalizer and never modified after.
    Serializes with camelCase keys (latencyMs, rawInput, ...) so API
    responses match what the frontend expects.

    Attributes:
        model: Provider/model pair (e.g. "openai/gpt-4o"), when identifiable.
        error: Status code and message of the failure.
        latency_ms: Request latency, only present for structured input.
        request_id: Upstream request ID, only present for structured input.
        raw_input: The original text exactly as submitted.
        input_type: Which parser produced this record.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )

    model: str | None = None
    error: ErrorDetail
    latency_ms: float | None = None
    request_id: str | None = None
    raw_input: str
    input_type: InputType

    def prompt_payload(self) -> str:
        """Return the incident text embedded in model prompts.

        Prose is passed through verbatim since it carries context the
        normalizer cannot extract. Structured and shell-command input is
        reduced to the extracted fields.
        """
        if self.input_type is InputType.PROSE:
            return self.raw_input
        return json.dumps(
            {
                "model": self.model,
                "error": self.error.model_dump(),
                "latencyMs": self.latency_ms,
                "requestId": self.request_id,
            },
            indent=2,
        )
