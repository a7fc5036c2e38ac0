"""Natural-language change summaries via the Gemini generateContent API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import httpx

from .config import config
from .exceptions import ConfigError, SummarizerError
from .utils import SUMMARY_PLACEHOLDER

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

PROMPT_TEMPLATE = (
    "Compare the following code changes:\n\n"
    "Old:\n{old}\n\n"
    "New:\n{new}\n\n"
    "Give a short summary of what was changed."
)


class Summarizer(Protocol):
    """Anything able to describe the difference between two texts."""

    async def summarize(self, old_text: str, new_text: str) -> str: ...


class GeminiSummarizer:
    """Summarizer backed by a Gemini model."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the summarizer.

        Args:
            api_key: Google API key (uses config if not provided)
            model: Model name (uses config if not provided)
            base_url: Generative Language API base URL
            timeout: Request timeout in seconds (uses config if not provided)
            transport: Optional httpx transport, used by tests
        """
        self.api_key = api_key or config.google_api_key
        self.model = model or config.summary_model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else config.timeout
        self._transport = transport

        if not self.api_key:
            raise ConfigError(
                "Google API key not configured. Please set GOOGLE_API_KEY."
            )

        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def summarize(self, old_text: str, new_text: str) -> str:
        """Summarize the change from ``old_text`` to ``new_text``.

        Raises:
            SummarizerError: If the request fails or the answer is empty
        """
        prompt = PROMPT_TEMPLATE.format(old=old_text, new=new_text)
        url = f"{self.base_url}/models/{self.model}:generateContent"
        payload = {"contents": [{"parts": [{"text": prompt}]}]}

        try:
            response = await self._get_client().post(
                url,
                params={"key": self.api_key},
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise SummarizerError(
                f"Summary request failed with status {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise SummarizerError(f"Network error: {e}") from e
        except ValueError as e:
            raise SummarizerError("Invalid JSON response from summarizer") from e

        text = self._extract_text(data)
        if not text:
            raise SummarizerError("Summarizer returned no text")
        return text.strip()

    @staticmethod
    def _extract_text(data: Any) -> str:
        """Concatenate the text parts of the first candidate."""
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            return ""
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class StaticSummarizer:
    """Summarizer returning a fixed text; used when no API key is configured."""

    def __init__(self, text: str = SUMMARY_PLACEHOLDER):
        self.text = text

    async def summarize(self, old_text: str, new_text: str) -> str:
        return self.text


async def summarize_or_placeholder(
    summarizer: Summarizer,
    old_text: str,
    new_text: str,
    timeout: float | None = None,
) -> str:
    """Summarize a change, falling back to the placeholder on any failure.

    Never raises; failures are logged as warnings.

    Args:
        summarizer: Summarizer to call
        old_text: Previous content ("" for new files)
        new_text: Current content ("" for deletions)
        timeout: Optional upper bound in seconds for the call

    Returns:
        The summary text or SUMMARY_PLACEHOLDER
    """
    try:
        return await asyncio.wait_for(
            summarizer.summarize(old_text, new_text), timeout=timeout
        )
    except asyncio.TimeoutError:
        logger.warning(f"Summary timed out after {timeout}s")
    except Exception as e:
        logger.warning(f"Summary error: {e}")
    return SUMMARY_PLACEHOLDER
