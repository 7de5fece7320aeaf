"""LLM client: HTTP connection to a chat-completion backend.

The session orchestrator injects an LLM object matching the protocol:

    async def send_streaming(system_prompt, turns, on_chunk) -> str
    async def send_once(system_prompt, turns) -> str

send_streaming() forwards text chunks to `on_chunk` as they arrive and
returns the full text; send_once() is used for structured side tasks such as
memory extraction and runs at a lower temperature.

Two implementations are provided:

    HttpLLM   real HTTP client, supports the Anthropic Messages API and the
              Gemini generateContent API. Selected by provider_format.
    EchoLLM   echoes the last turn back. Useful for smoke-testing the
              session wiring without a model.

Tests use stub classes instead.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from typing import Any, Literal, Protocol

import httpx

from solorpg.models import Turn

logger = logging.getLogger(__name__)

ChunkSink = Callable[[str], None]

OPENING_TURN = "Start the adventure."
EXTRACTION_OPENING_TURN = "Please analyze these messages."
EXTRACTION_CLOSING_TURN = "Please provide the analysis."


# ---------------------------------------------------------------------------
# Protocol: every LLM implementation must match these signatures
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def send_streaming(
        self, system_prompt: str, turns: Sequence[Turn], on_chunk: ChunkSink | None = None
    ) -> str: ...

    async def send_once(self, system_prompt: str, turns: Sequence[Turn]) -> str: ...


# ---------------------------------------------------------------------------
# HttpLLM: connects to a real backend
# ---------------------------------------------------------------------------

ProviderFormat = Literal["anthropic", "gemini"]

DEFAULT_BASE_URLS: dict[str, str] = {
    "anthropic": "https://api.anthropic.com",
    "gemini": "https://generativelanguage.googleapis.com",
}
DEFAULT_MODELS: dict[str, str] = {
    "anthropic": "claude-sonnet-4-5-20250929",
    "gemini": "gemini-3-flash-preview",
}
ANTHROPIC_VERSION = "2023-06-01"


class HttpLLM:
    """Async HTTP client for chat-completion backends.

    Supported formats:
      "anthropic"  POST /v1/messages  {"system": ..., "messages": [...]}
                   Stream: SSE content_block_delta / text_delta events
      "gemini"     POST /v1beta/models/{model}:generateContent
                   Stream: :streamGenerateContent?alt=sse

    Args:
        provider_format:      Wire format to use. Defaults to "anthropic".
        api_key:              Provider API key. Required.
        model:                Model identifier; provider default when empty.
        base_url:             Override for the provider endpoint.
        max_tokens:           Output token limit for narration.
        temperature:          Sampling temperature for narration.
        timeout:              HTTP timeout in seconds. Defaults to 120.
        extraction_max_tokens, extraction_temperature:
                              Settings used by send_once().
        transport:            Optional httpx transport (tests).
    """

    def __init__(
        self,
        provider_format: ProviderFormat = "anthropic",
        api_key: str = "",
        model: str = "",
        base_url: str = "",
        max_tokens: int = 2000,
        temperature: float = 0.8,
        timeout: float = 120.0,
        extraction_max_tokens: int = 4000,
        extraction_temperature: float = 0.3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._format = provider_format
        self._api_key = api_key
        self._model = model or DEFAULT_MODELS[provider_format]
        self._base_url = (base_url or DEFAULT_BASE_URLS[provider_format]).rstrip("/")
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout
        self._extraction_max_tokens = extraction_max_tokens
        self._extraction_temperature = extraction_temperature
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        if not self._api_key:
            raise LLMError("API key not configured. Please configure your API key in settings.")
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._format == "gemini":
            headers["x-goog-api-key"] = self._api_key
        else:
            headers["x-api-key"] = self._api_key
            headers["anthropic-version"] = ANTHROPIC_VERSION
        return headers

    def _build_request(
        self,
        system_prompt: str,
        turns: Sequence[Turn],
        *,
        stream: bool,
        max_tokens: int,
        temperature: float,
    ) -> tuple[str, dict[str, Any]]:
        """Return (url, body) for the configured format."""
        if self._format == "gemini":
            action = "streamGenerateContent?alt=sse" if stream else "generateContent"
            url = f"{self._base_url}/v1beta/models/{self._model}:{action}"
            body: dict[str, Any] = {
                "contents": [
                    {"role": "user" if t.role == "user" else "model", "parts": [{"text": t.content}]}
                    for t in turns
                ],
                "systemInstruction": {"parts": [{"text": system_prompt}]},
                "generationConfig": {"maxOutputTokens": max_tokens, "temperature": temperature},
            }
            return url, body

        # anthropic (default)
        url = f"{self._base_url}/v1/messages"
        body = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system_prompt,
            "messages": [{"role": t.role, "content": t.content} for t in turns],
        }
        if stream:
            body["stream"] = True
        return url, body

    def _parse_response(self, data: dict) -> str:
        """Extract the completion text from a non-streaming response body."""
        if self._format == "gemini":
            text = self._gemini_text(data)
            if text is None:
                raise LLMError("Unexpected response format from Gemini backend")
            return text

        content = data.get("content")
        if not isinstance(content, list):
            raise LLMError("Unexpected response format from Anthropic backend")
        return "".join(block.get("text", "") for block in content if block.get("type") == "text")

    @staticmethod
    def _gemini_text(data: dict) -> str | None:
        candidates = data.get("candidates")
        if not candidates:
            return None
        parts = candidates[0].get("content", {}).get("parts")
        if parts is None:
            return None
        return "".join(part.get("text", "") for part in parts)

    def _parse_stream_event(self, data: dict) -> str:
        """Text carried by one SSE event, or "" for bookkeeping events."""
        if self._format == "gemini":
            return self._gemini_text(data) or ""

        if data.get("type") == "error":
            message = data.get("error", {}).get("message", "unknown error")
            raise LLMError(f"Anthropic stream error: {message}")
        if data.get("type") == "content_block_delta":
            delta = data.get("delta", {})
            if delta.get("type") == "text_delta":
                return delta.get("text", "")
        return ""

    def _translate(self, e: httpx.HTTPError) -> LLMError:
        if isinstance(e, httpx.ConnectError):
            return LLMError(f"Cannot connect to LLM backend at {self._base_url}")
        if isinstance(e, httpx.HTTPStatusError):
            return LLMError(f"LLM backend returned HTTP {e.response.status_code}")
        if isinstance(e, httpx.TimeoutException):
            return LLMError(f"LLM backend timed out after {self._timeout}s")
        return LLMError(f"LLM request failed: {e}")

    async def send_streaming(
        self, system_prompt: str, turns: Sequence[Turn], on_chunk: ChunkSink | None = None
    ) -> str:
        turns = list(turns) or [Turn(role="user", content=OPENING_TURN)]
        url, body = self._build_request(
            system_prompt, turns, stream=True,
            max_tokens=self._max_tokens, temperature=self._temperature,
        )
        logger.debug("llm stream url=%s turns=%d system_len=%d", url, len(turns), len(system_prompt))

        parts: list[str] = []
        try:
            async with self._client() as client:
                async with client.stream("POST", url, json=body, headers=self._headers()) as resp:
                    resp.raise_for_status()
                    async for line in resp.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        payload = line[len("data:"):].strip()
                        if not payload or payload == "[DONE]":
                            continue
                        try:
                            event = json.loads(payload)
                        except json.JSONDecodeError:
                            logger.warning("Skipping malformed stream event: %r", payload[:200])
                            continue
                        text = self._parse_stream_event(event)
                        if text:
                            parts.append(text)
                            if on_chunk is not None:
                                on_chunk(text)
        except httpx.HTTPError as e:
            raise self._translate(e) from e

        text = "".join(parts)
        logger.debug("llm stream done len=%d", len(text))
        return text

    async def send_once(self, system_prompt: str, turns: Sequence[Turn]) -> str:
        turns = list(turns)
        if not turns:
            turns = [Turn(role="user", content=OPENING_TURN)]
        if turns[0].role != "user":
            turns.insert(0, Turn(role="user", content=EXTRACTION_OPENING_TURN))
        if turns[-1].role != "user":
            turns.append(Turn(role="user", content=EXTRACTION_CLOSING_TURN))

        url, body = self._build_request(
            system_prompt, turns, stream=False,
            max_tokens=self._extraction_max_tokens, temperature=self._extraction_temperature,
        )
        logger.debug("llm call url=%s turns=%d system_len=%d", url, len(turns), len(system_prompt))

        try:
            async with self._client() as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise self._translate(e) from e

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError("LLM backend returned a non-JSON response") from e
        text = self._parse_response(data)
        logger.debug("llm response len=%d", len(text))
        return text


# ---------------------------------------------------------------------------
# EchoLLM: echoes the last turn; useful for session smoke tests
# ---------------------------------------------------------------------------

class EchoLLM:
    """Returns the last turn's content. No network calls.

    Lets you verify that the session wiring (context assembly, prompt
    building, directive extraction) works end-to-end without a model.
    """

    async def send_streaming(
        self, system_prompt: str, turns: Sequence[Turn], on_chunk: ChunkSink | None = None
    ) -> str:
        text = turns[-1].content if turns else OPENING_TURN
        logger.debug("EchoLLM stream len=%d", len(text))
        if on_chunk is not None:
            on_chunk(text)
        return text

    async def send_once(self, system_prompt: str, turns: Sequence[Turn]) -> str:
        return turns[-1].content if turns else OPENING_TURN


# ---------------------------------------------------------------------------
# LLMError: raised by HttpLLM for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""
