"""Incident normalizer.

Turns whatever the user pasted into a canonical IncidentInput. Three input
shapes are recognized, checked in this order (first match wins):

    1. Structured: text starting with '{' or '['. Parsed as JSON.
    2. Shell command: text starting with 'curl'. Fields are pulled out with
       regexes; only the inline "error" object is parsed as JSON.
    3. Prose: anything else. The status code and model are picked out of
       the text and the whole text becomes the error message.

normalize() never raises. Input that cannot be parsed degrades into a
lower-fidelity record: malformed JSON is re-read as prose, and an unparsable
error fragment in a curl command keeps the default code and message.
"""

import json
import logging
import math
import re

from schemas.incident import ErrorDetail, IncidentInput, InputType

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "Unknown error"
UNPARSED_CURL_MESSAGE = "Could not parse error from curl command"

_CURL_MODEL_RE = re.compile(r'"model"\s*:\s*"([^"]+)"')
_CURL_ERROR_RE = re.compile(r'"error"\s*:\s*(\{[^}]+\})')
_STATUS_CODE_RE = re.compile(r"\b([45]\d{2})\b")
_PROSE_MODEL_RE = re.compile(r"\b(anthropic|openai|google|meta)/[\w.-]+", re.IGNORECASE)


def normalize(raw: str) -> IncidentInput:
    """Detect the shape of raw and extract a canonical incident record.

    Args:
        raw: The incident description exactly as submitted.

    Returns:
        An IncidentInput whose raw_input is the untouched original text and
        whose error.message is never empty.
    """
    trimmed = raw.strip()

    if trimmed.startswith(("{", "[")):
        try:
            return _parse_structured(raw, trimmed)
        except (json.JSONDecodeError, RecursionError) as exc:
            logger.warning("Input looks like JSON but does not parse (%s); reading it as prose.", exc)
            return _parse_prose(raw, trimmed)

    if trimmed.lower().startswith("curl"):
        return _parse_shell_command(raw, trimmed)

    return _parse_prose(raw, trimmed)


# ── Parsers ────────────────────────────────────────────────────────────────────

def _parse_structured(raw: str, trimmed: str) -> IncidentInput:
    """Parse a JSON error payload.

    Raises json.JSONDecodeError on bad JSON and RecursionError on JSON nested
    too deeply to decode.
    """
    parsed = json.loads(trimmed)

    if isinstance(parsed, list):
        parsed = next((item for item in parsed if isinstance(item, dict)), {})
    if not isinstance(parsed, dict):
        parsed = {}

    error = parsed.get("error")
    if isinstance(error, dict):
        code = _coerce_code(error.get("code"))
        message = _coerce_message(error.get("message"), UNKNOWN_ERROR_MESSAGE)
    elif isinstance(error, str):
        code = 0
        message = _coerce_message(error, UNKNOWN_ERROR_MESSAGE)
    else:
        code = 0
        message = UNKNOWN_ERROR_MESSAGE

    model = parsed.get("model")
    latency = _first_present(parsed, "latency_ms", "latencyMs")
    request_id = _first_present(parsed, "request_id", "requestId")

    return IncidentInput(
        model=str(model) if model else None,
        error=ErrorDetail(code=code, message=message),
        latency_ms=_coerce_latency(latency),
        request_id=str(request_id) if request_id is not None else None,
        raw_input=raw,
        input_type=InputType.STRUCTURED,
    )


def _parse_shell_command(raw: str, trimmed: str) -> IncidentInput:
    """Pull the model and inline error object out of a curl command line."""
    model_match = _CURL_MODEL_RE.search(trimmed)
    error_match = _CURL_ERROR_RE.search(trimmed)

    code = 0
    message = UNPARSED_CURL_MESSAGE

    if error_match:
        try:
            fragment = json.loads(error_match.group(1))
        except (json.JSONDecodeError, RecursionError):
            logger.debug("Inline error object in curl command is not valid JSON; keeping defaults.")
        else:
            code = _coerce_code(fragment.get("code"))
            message = _coerce_message(fragment.get("message"), UNPARSED_CURL_MESSAGE)

    return IncidentInput(
        model=model_match.group(1) if model_match else None,
        error=ErrorDetail(code=code, message=message),
        raw_input=raw,
        input_type=InputType.SHELL_COMMAND,
    )


def _parse_prose(raw: str, trimmed: str) -> IncidentInput:
    """Scan free text for a 4xx/5xx status code and a known provider/model."""
    code_match = _STATUS_CODE_RE.search(trimmed)
    model_match = _PROSE_MODEL_RE.search(trimmed)

    return IncidentInput(
        model=model_match.group(0) if model_match else None,
        error=ErrorDetail(
            code=int(code_match.group(1)) if code_match else 0,
            message=trimmed or UNKNOWN_ERROR_MESSAGE,
        ),
        raw_input=raw,
        input_type=InputType.PROSE,
    )


# ── Coercion helpers ───────────────────────────────────────────────────────────

def _first_present(data: dict, *keys: str):
    """Return the value of the first key in data that is not None."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _coerce_code(value) -> int:
    """Coerce a status code to int, returning 0 for anything non-numeric."""
    if isinstance(value, bool):
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def _coerce_message(value, default: str) -> str:
    """Coerce a message to a non-empty string, falling back to default."""
    if value is None:
        return default
    text = value if isinstance(value, str) else json.dumps(value)
    return text if text.strip() else default


def _coerce_latency(value) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        result = float(value)
    except ValueError:
        return None
    return result if math.isfinite(result) else None
