"""OpenRouter LLM client.

OpenRouter is a unified proxy that provides access to models from Anthropic,
OpenAI, Google and others through a single OpenAI-compatible API and one API
key. It can also route a request across an ordered list of models, trying the
next one when the first is unavailable.

Required environment variable:
    OPENROUTER_API_KEY: Your OpenRouter API key. Add to .env and never commit.
"""

import os

import openai
from dotenv import load_dotenv

from llm.base import LLMClient, LLMEmptyResponseError

load_dotenv()

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_TIMEOUT_SECONDS = 30.0


class OpenRouterClient(LLMClient):
    """LLMClient implementation backed by OpenRouter.

    Uses the openai SDK pointed at the OpenRouter base URL. Requests are
    always non-streamed. SDK-level retries are disabled: a failed call should
    surface immediately so the caller can switch to its deterministic
    fallback instead of waiting out several attempts.

    Example usage:
        classifier = ClassifierAgent(llm=OpenRouterClient("openai/gpt-4o-mini", temperature=0))
        explainer = ExplainerAgent(llm=OpenRouterClient(
            "anthropic/claude-3.5-sonnet",
            fallback_models=["openai/gpt-4o"],
            temperature=0.2,
        ))

    Attributes:
        model: The primary OpenRouter model identifier.
        fallback_models: Models OpenRouter tries, in order, if the primary
            one fails. Empty for single-model clients.
        temperature: Sampling temperature, or None for the provider default.
        client: The underlying async OpenAI client configured for OpenRouter.
    """

    def __init__(
        self,
        model: str,
        *,
        fallback_models: list[str] | None = None,
        temperature: float | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """Initialize the client for a specific model.

        Args:
            model: Primary OpenRouter model ID string.
            fallback_models: Optional ordered list of secondary models.
            temperature: Sampling temperature passed on every request.
            timeout: Per-request timeout in seconds.

        Raises:
            KeyError: If OPENROUTER_API_KEY is not set in the environment
                or .env file. Fails immediately at construction rather than
                at the first API call.
        """
        self.model = model
        self.fallback_models = list(fallback_models or [])
        self.temperature = temperature
        self.client = openai.AsyncOpenAI(
            base_url=OPENROUTER_BASE_URL,
            api_key=os.environ["OPENROUTER_API_KEY"],
            timeout=timeout,
            max_retries=0,
        )

    async def complete(self, system: str, user: str) -> str:
        """Send a prompt to the configured model(s) via OpenRouter.

        Raises:
            LLMEmptyResponseError: If the response has no choices or the
                first choice has no string content.
            openai.APIError: If the OpenRouter API returns an error response
                or the request times out.
        """
        params = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "stream": False,
        }
        if self.temperature is not None:
            params["temperature"] = self.temperature
        if self.fallback_models:
            params["extra_body"] = {"models": [self.model, *self.fallback_models]}

        response = await self.client.chat.completions.create(**params)

        content = response.choices[0].message.content if response.choices else None
        if not isinstance(content, str) or not content.strip():
            raise LLMEmptyResponseError(f"Empty completion from {self.model}.")
        return content
