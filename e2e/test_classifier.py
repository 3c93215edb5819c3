"""Tests for ClassifierAgent and the rule-table fallback.

No API key required. Every test injects a stub LLMClient that returns a
canned response or raises.
"""

import asyncio
import json

import pytest

from agents.classifier import ClassifierAgent, fallback_classification
from core.normalizer import normalize
from llm.base import LLMClient, LLMEmptyResponseError
from schemas.classification import ErrorCategory, FaultDomain, IncidentClassification, Severity


class StubLLM(LLMClient):
    def __init__(self, response: str = "", error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system: str, user: str) -> str:
        self.calls.append((system, user))
        if self.error is not None:
            raise self.error
        return self.response


def structured(code: int, message: str = "boom", model: str | None = "openai/gpt-4o"):
    payload = {"error": {"code": code, "message": message}}
    if model:
        payload["model"] = model
    return normalize(json.dumps(payload))


# ── Fallback rule table ───────────────────────────────────────────────────────

class TestFallbackClassification:
    def test_503_is_upstream_server_error(self):
        result = fallback_classification(structured(503))
        assert result.error_category is ErrorCategory.SERVER_ERROR
        assert result.fault_domain is FaultDomain.UPSTREAM_PROVIDER
        assert result.severity is Severity.MEDIUM

    def test_404_is_customer_client_error(self):
        result = fallback_classification(structured(404))
        assert result.error_category is ErrorCategory.CLIENT_ERROR
        assert result.fault_domain is FaultDomain.CUSTOMER
        assert result.severity is Severity.MEDIUM

    @pytest.mark.parametrize("code", [0, 200, 302, 600, 999])
    def test_other_codes_blame_platform(self, code):
        result = fallback_classification(structured(code))
        assert result.error_category is ErrorCategory.UNKNOWN
        assert result.fault_domain is FaultDomain.OPENROUTER_PLATFORM

    @pytest.mark.parametrize("code,category", [(400, "4xx"), (499, "4xx"), (500, "5xx"), (599, "5xx")])
    def test_range_boundaries(self, code, category):
        assert fallback_classification(structured(code)).error_category.value == category

    def test_provider_is_model_prefix(self):
        assert fallback_classification(structured(500, model="anthropic/claude-3.5-sonnet")).provider == "anthropic"

    def test_provider_is_none_without_model(self):
        assert fallback_classification(structured(500, model=None)).provider is None

    def test_signals_are_code_and_message(self):
        result = fallback_classification(structured(429, message="Rate limit exceeded"))
        assert result.signals == ["HTTP 429", "Rate limit exceeded"]

    def test_is_deterministic(self):
        incident = structured(503)
        assert fallback_classification(incident) == fallback_classification(incident)


# ── Model path ────────────────────────────────────────────────────────────────

class TestClassifierAgent:
    async def test_parses_valid_response(self):
        llm = StubLLM(response=json.dumps({
            "errorCategory": "5xx",
            "faultDomain": "upstream-provider",
            "severity": "high",
            "provider": "anthropic",
            "signals": ["503 from provider", "latency 31s"],
        }))
        result = await ClassifierAgent(llm=llm).classify(structured(503))

        assert result.error_category is ErrorCategory.SERVER_ERROR
        assert result.fault_domain is FaultDomain.UPSTREAM_PROVIDER
        assert result.severity is Severity.HIGH
        assert result.provider == "anthropic"
        assert result.signals == ["503 from provider", "latency 31s"]

    async def test_missing_fields_use_defaults(self):
        result = await ClassifierAgent(llm=StubLLM(response="{}")).classify(structured(503))

        assert result.error_category is ErrorCategory.UNKNOWN
        assert result.fault_domain is FaultDomain.UNKNOWN
        assert result.severity is Severity.MEDIUM
        assert result.provider is None
        assert result.signals == []

    async def test_lenient_enum_spellings(self):
        llm = StubLLM(response=json.dumps({
            "errorCategory": "5XX",
            "faultDomain": "upstream_provider",
            "severity": "Critical",
        }))
        result = await ClassifierAgent(llm=llm).classify(structured(503))
        assert result.error_category is ErrorCategory.SERVER_ERROR
        assert result.fault_domain is FaultDomain.UPSTREAM_PROVIDER
        assert result.severity is Severity.CRITICAL

    async def test_bare_openrouter_maps_to_platform(self):
        llm = StubLLM(response='{"faultDomain": "openrouter"}')
        result = await ClassifierAgent(llm=llm).classify(structured(500))
        assert result.fault_domain is FaultDomain.OPENROUTER_PLATFORM

    async def test_unrecognized_values_fall_to_defaults(self):
        llm = StubLLM(response='{"errorCategory": "weird", "faultDomain": 42, "severity": "extreme"}')
        result = await ClassifierAgent(llm=llm).classify(structured(500))
        assert result.error_category is ErrorCategory.UNKNOWN
        assert result.fault_domain is FaultDomain.UNKNOWN
        assert result.severity is Severity.MEDIUM

    async def test_non_list_signals_become_empty(self):
        llm = StubLLM(response='{"signals": "just one string"}')
        result = await ClassifierAgent(llm=llm).classify(structured(500))
        assert result.signals == []

    async def test_signals_are_capped_at_four(self):
        llm = StubLLM(response=json.dumps({"signals": ["a", "b", "c", "d", "e", "f"]}))
        result = await ClassifierAgent(llm=llm).classify(structured(500))
        assert result.signals == ["a", "b", "c", "d"]

    async def test_fenced_json_is_accepted(self):
        llm = StubLLM(response='```json\n{"errorCategory": "4xx", "faultDomain": "customer"}\n```')
        result = await ClassifierAgent(llm=llm).classify(structured(401))
        assert result.fault_domain is FaultDomain.CUSTOMER

    async def test_prose_incident_is_sent_verbatim(self):
        llm = StubLLM(response="{}")
        text = "Our calls to openai/gpt-4o return 502 intermittently"
        await ClassifierAgent(llm=llm).classify(normalize(text))

        system, user = llm.calls[0]
        assert "INCIDENT DATA" in user
        assert text in user
        assert "ERROR CATEGORY" in system

    async def test_structured_incident_is_sent_as_json_dump(self):
        llm = StubLLM(response="{}")
        await ClassifierAgent(llm=llm).classify(structured(429, message="Rate limit exceeded"))

        _, user = llm.calls[0]
        assert '"code": 429' in user
        assert '"latencyMs": null' in user


# ── Never raises ──────────────────────────────────────────────────────────────

class TestClassifierFallsBack:
    @pytest.mark.parametrize("llm", [
        StubLLM(error=asyncio.TimeoutError()),
        StubLLM(error=ConnectionError("network down")),
        StubLLM(error=LLMEmptyResponseError("empty")),
        StubLLM(response=""),
        StubLLM(response="I think this is an upstream issue."),
        StubLLM(response="[1, 2, 3]"),
        StubLLM(response='{"signals": [1, 2'),
    ], ids=["timeout", "transport", "empty-error", "empty", "prose", "list", "truncated"])
    async def test_returns_rule_table_result(self, llm):
        incident = structured(503)
        result = await ClassifierAgent(llm=llm).classify(incident)

        assert isinstance(result, IncidentClassification)
        assert result == fallback_classification(incident)
