"""LLM response parser utility.

Both agents use this to turn a raw LLM string into a validated Pydantic
model. Handles the common failure modes:
- Empty or whitespace-only responses
- JSON wrapped in markdown code blocks (```json ... ```)
- Commentary before or after the JSON object
- JSON that is valid but is not an object (a bare list, a string)
"""

import json
import re
from typing import TypeVar

from pydantic import BaseModel

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class LLMParseError(Exception):
    """Raised when an LLM response cannot be parsed into the expected schema.

    Includes the raw response so callers can log it for debugging without
    having to catch and re-wrap the original exception themselves.
    """

    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw


def parse_llm_json(response: str, schema: type[SchemaT]) -> SchemaT:
    """Parse an LLM response string into a validated Pydantic model.

    Tries two extraction strategies in order, stopping at the first that
    produces a JSON object:
        1. Strip markdown code fences and parse the remainder directly.
        2. Extract the first {...} block via regex (handles leading commentary).
    If neither works, fails with LLMParseError including the raw response.

    Args:
        response: Raw string returned by LLMClient.complete().
        schema:   Pydantic model class to validate against.

    Returns:
        A validated instance of schema.

    Raises:
        LLMParseError: If the response is empty, cannot be parsed, or does
            not match the schema. The .raw attribute contains the original
            response.
    """
    if not isinstance(response, str) or not response.strip():
        raise LLMParseError(f"Empty LLM response for schema {schema.__name__}", raw=str(response))

    cleaned = _strip_code_fences(response)

    data = _try_parse(cleaned)
    if data is None:
        data = _extract_json_object(cleaned)
    if data is None:
        raise LLMParseError(
            f"No valid JSON found in LLM response for schema {schema.__name__}",
            raw=response,
        )

    try:
        return schema.model_validate(data)
    except Exception as exc:
        raise LLMParseError(
            f"LLM response does not match schema {schema.__name__}: {exc}",
            raw=response,
        ) from exc


# ── Private helpers ────────────────────────────────────────────────────────────

def _strip_code_fences(text: str) -> str:
    """Remove ```json ... ``` or ``` ... ``` wrappers."""
    text = re.sub(r"```(?:json)?\s*", "", text)
    text = re.sub(r"```", "", text)
    return text.strip()


def _try_parse(text: str) -> dict | None:
    """Attempt a direct json.loads(); return None on failure."""
    try:
        result = json.loads(text)
        return result if isinstance(result, dict) else None
    except json.JSONDecodeError:
        return None


def _extract_json_object(text: str) -> dict | None:
    """Find the first {...} block in text and parse it."""
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if not match:
        return None
    return _try_parse(match.group(0))
