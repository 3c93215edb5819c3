"""Triage runtime — the top-level pipeline orchestrator.

TriageRuntime is the single entry point for the whole system. It is built
once with its collaborators (classifier, explainer, optional history store)
and then analyze() is called once per submitted incident. Each call is fully
independent; the history store is the only state shared between calls.

Pipeline order inside analyze():
    1. Validate the raw input (presence, length, injection patterns)
    2. Normalize it into an IncidentInput
    3. Classify it (model, or rule-table fallback)
    4. Explain it (model, or templated fallback)
    5. Best effort: look up similar past incidents and record this one
    6. Return AnalysisResult

Steps 2–4 run strictly in sequence; the explanation prompt embeds the
classification. Steps 3 and 4 never raise. Step 5 never raises either: any
store failure is logged and the report is returned without history.
"""

import asyncio
import logging

from agents.classifier import ClassifierAgent
from agents.explainer import ExplainerAgent
from core.guard import DEFAULT_MAX_INPUT_LENGTH, validate_input
from core.normalizer import normalize
from history.store import HistoryStore
from schemas.classification import IncidentClassification
from schemas.incident import IncidentInput
from schemas.report import AnalysisResult, IncidentReport

logger = logging.getLogger(__name__)

SIMILAR_INCIDENT_LIMIT = 3


class TriageRuntime:
    """Orchestrates normalize → classify → explain for one incident at a time.

    Attributes:
        _classifier: Classifies normalized incidents.
        _explainer: Writes the report for a classified incident.
        _history: Store for similarity lookups, or None when history is
            disabled. Checked explicitly; a missing store is not an error.
        _max_input_length: Longest input accepted, in characters.
    """

    def __init__(
        self,
        classifier: ClassifierAgent,
        explainer: ExplainerAgent,
        history: HistoryStore | None = None,
        max_input_length: int = DEFAULT_MAX_INPUT_LENGTH,
    ) -> None:
        self._classifier = classifier
        self._explainer = explainer
        self._history = history
        self._max_input_length = max_input_length

    async def analyze(self, raw: str) -> AnalysisResult:
        """Run the full pipeline for one submitted incident description.

        Args:
            raw: The incident text exactly as submitted.

        Returns:
            The normalized incident, its classification and its report.

        Raises:
            InputRejectedError: If raw fails validation. Nothing else runs.
        """
        validate_input(raw, self._max_input_length)

        incident = normalize(raw)
        logger.info(
            "Normalized %s input: code=%d model=%s.",
            incident.input_type.value,
            incident.error.code,
            incident.model or "-",
        )

        classification = await self._classifier.classify(incident)
        logger.info(
            "Classified as %s / %s / %s.",
            classification.error_category.value,
            classification.fault_domain.value,
            classification.severity.value,
        )

        report = await self._explainer.explain(incident, classification)
        report = await self._attach_history(incident, classification, report)

        return AnalysisResult(incident=incident, classification=classification, report=report)

    # ── Private helpers ───────────────────────────────────────────────────────

    async def _attach_history(
        self,
        incident: IncidentInput,
        classification: IncidentClassification,
        report: IncidentReport,
    ) -> IncidentReport:
        """Look up similar incidents and record this one. Never raises.

        The lookup runs before the save so an incident never matches itself.
        The store is synchronous, so both calls run in a worker thread.
        """
        if self._history is None:
            return report

        try:
            similar = await asyncio.to_thread(
                self._history.find_similar, incident.error.message, SIMILAR_INCIDENT_LIMIT,
            )
            await asyncio.to_thread(self._history.save_incident, incident, classification, report)
        except Exception as exc:
            logger.warning("History lookup failed; returning report without history: %s", exc)
            return report

        if not similar:
            return report
        logger.info("Found %d similar incident(s).", len(similar))
        return report.model_copy(update={"similar_incidents": similar})
