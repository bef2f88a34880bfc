"""OpenAI text-completion client used by the filing analysis services."""
import logging
from typing import Optional
from openai import OpenAI
from filing_qa.core.config import settings


logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.1


class OpenAIService:
    """Service for interacting with the OpenAI chat completions API.

    Constructed explicitly and passed to the extractors, so tests can hand in
    any object exposing the same ``complete`` method.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: float = 45.0,
        max_retries: int = 2
    ):
        """
        Args:
            api_key: OpenAI API key
            model: Chat model name
            base_url: Optional OpenAI-compatible endpoint
            timeout: Per-request timeout in seconds
            max_retries: Retries on connection errors, 429 and 5xx; the SDK
                backs off exponentially with jitter
        """
        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries
        )
        self.model = model

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_output_tokens: int,
        temperature: float = DEFAULT_TEMPERATURE
    ) -> str:
        """
        Run a single chat completion and return the stripped text.

        Errors from the API propagate; callers decide on fallbacks.
        """
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt}
            ],
            max_tokens=max_output_tokens,
            temperature=temperature
        )

        content = response.choices[0].message.content if response.choices else None
        logger.debug("OpenAI completion received (%d chars)", len(content or ""))
        return (content or "").strip()


def get_completion_client() -> OpenAIService:
    """FastAPI dependency building a client from settings."""
    return OpenAIService(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        base_url=settings.OPENAI_BASE_URL,
        timeout=settings.OPENAI_TIMEOUT_SECONDS,
        max_retries=settings.OPENAI_MAX_RETRIES
    )
