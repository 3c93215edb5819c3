"""Input guard.

Runs before anything else touches user input. Rejects input that is blank,
longer than the configured maximum, or that matches a known prompt-injection
phrase. Rejected input never reaches the normalizer or the models.

Checks run in a fixed order: presence, then length, then injection patterns.
"""

import re

DEFAULT_MAX_INPUT_LENGTH = 10_000

INJECTION_PATTERNS: tuple[re.Pattern, ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\b(ignore|disregard|forget|override)\s+(all\s+|any\s+)?(of\s+)?(the\s+|your\s+)?"
        r"(previous|prior|above|earlier|preceding)\s+(instructions|prompts?|rules|directions)",
        r"\b(reveal|show|print|repeat|output|display|leak)\s+(me\s+)?(your|the)\s+"
        r"(system\s+prompt|initial\s+instructions|hidden\s+instructions)",
        r"\bwhat\s+(is|are)\s+your\s+(system\s+prompt|instructions)\b",
        r"\byou\s+are\s+now\s+(dan\b|(a|an)\s+(new|different|unrestricted|unfiltered|\w+\s+(assistant|ai|persona|character))\b)",
        r"\bpretend\s+(to\s+be|you\s+are)\b",
        r"\b(adopt|assume)\s+(a\s+)?new\s+(persona|identity|role)\b",
        r"\bact\s+as\s+(dan|an?\s+unrestricted)\b",
        r"\bjailbreak\b",
    )
)


class InputRejectedError(ValueError):
    """Raised when input fails validation. The message is safe to show users."""


def validate_input(raw, max_length: int = DEFAULT_MAX_INPUT_LENGTH) -> str:
    """Check raw input against the presence, length and injection rules.

    Args:
        raw: Whatever the caller submitted. Anything other than a non-blank
            string is rejected.
        max_length: Maximum accepted length in characters.

    Returns:
        raw, unchanged, if it passes every check.

    Raises:
        InputRejectedError: If any check fails.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InputRejectedError(
            "Input is required. Paste a failed request, error JSON, or curl command."
        )

    if len(raw) > max_length:
        raise InputRejectedError(
            f"Input is too long ({len(raw)} characters). The maximum is {max_length}."
        )

    for pattern in INJECTION_PATTERNS:
        if pattern.search(raw):
            raise InputRejectedError(
                "Input contains instructions aimed at the analysis model and was rejected."
            )

    return raw
