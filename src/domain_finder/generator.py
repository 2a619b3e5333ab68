"""
Name generators for the domain finder system.

A name generator turns an application description into raw name
suggestions. Suggestions are untrusted text: they may carry a TLD,
punctuation, or mixed case, and go through the normalizer before use.
"""

import json
import re
from abc import abstractmethod
from typing import Optional, Protocol, Sequence, runtime_checkable

import httpx

from .audit_logger import AuditLogger
from .config import GeneratorConfig
from .enums import GenerationErrorCode
from .exceptions import GenerationError

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

PROMPT_TEMPLATE = """You are a domain name expert specializing in creative, \
brandable names for software products.

Generate {count} domain names for the application described below.
Prefer short, pronounceable names without hyphens.

Application description: {description}

Respond with a JSON array of strings only, for example ["name1", "name2"]."""

# ```json ... ``` fences some models wrap around JSON output
CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

# "1. ", "2) ", "- ", "* " at the start of a line
LIST_MARKER_PATTERN = re.compile(r"^\s*(?:[-*]|\d+[.)])\s*")


@runtime_checkable
class NameGenerator(Protocol):
    """Protocol defining the interface for name generators."""

    @abstractmethod
    async def generate(self, description: str) -> list[str]:
        """
        Produce raw name suggestions for a description.

        Raises:
            GenerationError: If no suggestions can be produced
        """
        ...


def parse_suggestions(text: str) -> list[str]:
    """
    Parse model output into a list of raw suggestions.

    Accepts a JSON array of strings, a ``{"domainNames": [...]}`` object, or
    as a last resort one suggestion per line.

    >>> parse_suggestions('["FitTrack.com", "GymBuddy"]')
    ['FitTrack.com', 'GymBuddy']
    """
    cleaned = CODE_FENCE_PATTERN.sub("", text.strip())
    try:
        data = json.loads(cleaned)
    except ValueError:
        data = None

    if isinstance(data, dict):
        data = data.get("domainNames", data.get("names", data))
    if isinstance(data, list):
        return [item for item in data if isinstance(item, str)]
    if data is not None:
        raise GenerationError(
            code=GenerationErrorCode.PARSE_ERROR.value,
            message="Model output is not a list of names",
            details={"snippet": cleaned[:200]},
        )

    lines = [LIST_MARKER_PATTERN.sub("", line).strip(" \t\"',") for line in cleaned.splitlines()]
    return [line for line in lines if line]


class GeminiNameGenerator:
    """
    Name generator backed by the Google Generative Language REST API.

    Timeouts, transport errors, and 5xx responses are raised as retryable
    GenerationErrors; missing keys and rejected requests are not.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None
        self._logger = logger

    async def __aenter__(self) -> "GeminiNameGenerator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def endpoint(self) -> str:
        return f"{GEMINI_BASE_URL}/models/{self._config.model}:generateContent"

    def build_payload(self, description: str) -> dict:
        prompt = PROMPT_TEMPLATE.format(
            count=self._config.suggestions_per_round,
            description=description.strip(),
        )
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "temperature": 1.0,
            },
        }

    async def generate(self, description: str) -> list[str]:
        if not self._config.api_key:
            raise GenerationError(
                code=GenerationErrorCode.CREDENTIALS_MISSING.value,
                message="No Gemini API key configured (GEMINI_API_KEY)",
            )

        client = self._get_client()
        try:
            response = await client.post(
                self.endpoint,
                headers={"x-goog-api-key": self._config.api_key},
                json=self.build_payload(description),
            )
        except httpx.TimeoutException:
            raise GenerationError(
                code=GenerationErrorCode.TIMEOUT.value,
                message=f"Name generation timed out after {self._config.timeout_seconds}s",
                retryable=True,
            )
        except httpx.HTTPError as e:
            raise GenerationError(
                code=GenerationErrorCode.UPSTREAM_ERROR.value,
                message=f"Name generation request failed: {e}",
                retryable=True,
            )

        if response.status_code >= 400:
            raise GenerationError(
                code=GenerationErrorCode.UPSTREAM_ERROR.value,
                message=f"Name generation returned HTTP {response.status_code}",
                details={"http_status_code": response.status_code},
                retryable=response.status_code == 429 or response.status_code >= 500,
            )

        suggestions = parse_suggestions(self._extract_text(response))
        if not suggestions:
            raise GenerationError(
                code=GenerationErrorCode.EMPTY_RESULT.value,
                message="The model returned no name suggestions",
            )
        if self._logger:
            self._logger.debug(
                "GeminiNameGenerator",
                f"Received {len(suggestions)} suggestion(s)",
                {"model": self._config.model},
            )
        return suggestions

    @staticmethod
    def _extract_text(response: httpx.Response) -> str:
        """Pull the first candidate's text out of a generateContent body."""
        try:
            body = response.json()
            parts = body["candidates"][0]["content"]["parts"]
            return "".join(part.get("text", "") for part in parts)
        except (ValueError, KeyError, IndexError, TypeError, AttributeError):
            raise GenerationError(
                code=GenerationErrorCode.PARSE_ERROR.value,
                message="Unexpected response shape from the generation API",
                details={"snippet": response.text[:200]},
            )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=True,
                timeout=httpx.Timeout(self._config.timeout_seconds),
            )
        return self._client

    async def close(self) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None


class StaticNameGenerator:
    """
    Generator that replays fixed rounds of suggestions.

    Round ``n`` returns ``rounds[n]``; after the last round the final list is
    repeated, which the search controller then sees as no new candidates.
    """

    def __init__(self, rounds: Sequence[Sequence[str]]) -> None:
        if not rounds:
            raise ValueError("StaticNameGenerator needs at least one round")
        self._rounds = [list(r) for r in rounds]
        self.calls = 0

    async def generate(self, description: str) -> list[str]:
        index = min(self.calls, len(self._rounds) - 1)
        self.calls += 1
        suggestions = self._rounds[index]
        if not suggestions:
            raise GenerationError(
                code=GenerationErrorCode.EMPTY_RESULT.value,
                message="No name suggestions for this round",
            )
        return list(suggestions)
