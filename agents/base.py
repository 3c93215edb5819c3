"""Base agent definition.

Defines the contract shared by the two model-backed pipeline stages, the
classifier and the explainer. Each agent:
- Holds an injected LLMClient and never constructs one itself
- Loads a fixed system prompt from prompts/<prompt_name>.txt
- Parses model output into a pydantic schema via utils.parse
- Never raises to its caller: every model failure resolves to a
  deterministic fallback implemented by the concrete agent
"""

import logging
import pathlib
from abc import ABC, abstractmethod

from llm.base import LLMClient
from utils.parse import SchemaT, parse_llm_json

logger = logging.getLogger(__name__)

PROMPTS_DIR = pathlib.Path(__file__).parent.parent / "prompts"


class BaseAgent(ABC):
    """Abstract base class for the model-backed pipeline stages.

    The LLM client is injected at construction time so that:
    - The classifier and explainer can use different models and temperatures
    - Tests can inject a stub client without touching agent logic
    - Nothing in the pipeline depends on a process-wide client

    Attributes:
        llm: The LLM client this agent sends its prompt to.
        prompt_name: Basename of the system prompt file under prompts/.
            Declared as a class attribute by each subclass.
    """

    prompt_name: str

    def __init__(self, llm: LLMClient) -> None:
        """Initialise the agent with an LLM client and load its system prompt.

        Raises:
            FileNotFoundError: If the prompt file for this agent is missing.
        """
        self.llm = llm
        self._system_prompt = (PROMPTS_DIR / f"{self.prompt_name}.txt").read_text(encoding="utf-8")

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this agent, used as the log prefix."""
        ...

    async def _ask(self, user: str, schema: type[SchemaT]) -> SchemaT:
        """Send user with the agent's system prompt and parse the reply.

        Raises:
            LLMParseError: If the reply cannot be parsed into schema.
            Exception: Whatever the LLM client raises on transport failure.
        """
        raw = await self.llm.complete(system=self._system_prompt, user=user)
        logger.debug("%s: received %d characters from the model.", self.name, len(raw or ""))
        return parse_llm_json(raw, schema)
