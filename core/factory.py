"""Runtime wiring.

The only place that constructs concrete LLM clients and the history store.
The API and the CLI both call build_runtime(); tests build TriageRuntime
directly with stub clients instead.
"""

import logging

from agents.classifier import ClassifierAgent
from agents.explainer import ExplainerAgent
from config import Settings
from core.runtime import TriageRuntime
from history.store import HistoryStore
from llm.openrouter import OpenRouterClient

logger = logging.getLogger(__name__)


def build_runtime(settings: Settings | None = None) -> TriageRuntime:
    """Build a TriageRuntime backed by OpenRouter.

    Args:
        settings: Configuration to use. Read from the environment if omitted.

    Raises:
        KeyError: If OPENROUTER_API_KEY is not set.
    """
    settings = settings or Settings.from_env()
    primary, *secondary = settings.explainer_models

    classifier = ClassifierAgent(llm=OpenRouterClient(
        settings.classifier_model,
        temperature=0,
        timeout=settings.llm_timeout_seconds,
    ))
    explainer = ExplainerAgent(llm=OpenRouterClient(
        primary,
        fallback_models=secondary,
        temperature=0.2,
        timeout=settings.llm_timeout_seconds,
    ))
    history = HistoryStore(settings.database_url) if settings.history_enabled else None

    logger.info(
        "Runtime built: classifier=%s explainer=%s history=%s.",
        settings.classifier_model,
        ",".join(settings.explainer_models),
        "on" if history is not None else "off",
    )
    return TriageRuntime(
        classifier=classifier,
        explainer=explainer,
        history=history,
        max_input_length=settings.max_input_length,
    )
