"""
Response Client — Gemini generateContent.

One request per user turn, single attempt, no retry. Whatever happens on
the wire is folded into a ``ResponseResult`` so the session never sees a
raw exception or status line:

  - ``NETWORK``            connection problems, timeouts
  - ``HTTP_STATUS``        any non-2xx answer
  - ``MALFORMED_PAYLOAD``  no ``candidates[0].content.parts[0].text``

Two transports share the contract: ``GeminiRestClient`` posts the JSON
body directly with httpx, ``GeminiSdkClient`` goes through google-genai.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
from google import genai
from google.genai import errors, types

import config

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    NETWORK = "network"
    HTTP_STATUS = "http_status"
    MALFORMED_PAYLOAD = "malformed_payload"


@dataclass(frozen=True)
class ResponseResult:
    """Outcome of one generation call. ``detail`` is for logs only."""

    text: str | None = None
    error: ErrorKind | None = None
    status_code: int | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, text: str) -> "ResponseResult":
        return cls(text=text)

    @classmethod
    def failure(
        cls, kind: ErrorKind, detail: str = "", status_code: int | None = None
    ) -> "ResponseResult":
        return cls(error=kind, status_code=status_code, detail=detail)


# ── Wire Helpers ───────────────────────────────────────────────────────────

def build_request_body(prompt: str, params: dict) -> dict:
    """JSON body for ``POST .../models/{model}:generateContent``."""
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {
            "temperature": params["temperature"],
            "topK": params["topK"],
            "topP": params["topP"],
            "maxOutputTokens": params["maxOutputTokens"],
        },
    }


def extract_text(payload: Any) -> str | None:
    """Return the first candidate's first text part, or None if the path is missing."""
    if not isinstance(payload, dict):
        return None
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    if not isinstance(text, str) or not text.strip():
        return None
    return text


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


# ── Clients ────────────────────────────────────────────────────────────────

class ResponseClient(ABC):
    """Capability handed to a session for turning a prompt into reply text."""

    @abstractmethod
    async def send(
        self, prompt: str, params: dict, timeout: float | None = None
    ) -> ResponseResult:
        ...


class GeminiRestClient(ResponseClient):
    """Calls the Gemini Developer API over plain HTTPS."""

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("A Gemini API key is required for GeminiRestClient.")
        self.api_key = api_key
        self.model = model or config.GEMINI_MODEL
        self.base_url = (base_url or config.GEMINI_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self.base_url}/v1beta/models/{self.model}:generateContent"

    async def send(
        self, prompt: str, params: dict, timeout: float | None = None
    ) -> ResponseResult:
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }
        body = build_request_body(prompt, params)

        try:
            async with httpx.AsyncClient(
                timeout=timeout or self.timeout, transport=self._transport
            ) as client:
                response = await client.post(self.url, json=body, headers=headers)
        except httpx.HTTPError as e:
            return ResponseResult.failure(ErrorKind.NETWORK, _describe(e))

        if not response.is_success:
            return ResponseResult.failure(
                ErrorKind.HTTP_STATUS,
                f"generateContent answered {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            return ResponseResult.failure(ErrorKind.MALFORMED_PAYLOAD, _describe(e))

        text = extract_text(payload)
        if text is None:
            return ResponseResult.failure(
                ErrorKind.MALFORMED_PAYLOAD,
                f"no candidate text in payload: {str(payload)[:200]}",
            )

        logger.debug("[Gemini REST] %d chars from %s", len(text), self.model)
        return ResponseResult.success(text)


class GeminiSdkClient(ResponseClient):
    """Same contract as ``GeminiRestClient`` on top of the google-genai SDK."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        client: Any = None,
    ):
        self.model = model or config.GEMINI_MODEL
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT_SECONDS
        if client is None:
            if not api_key:
                raise ValueError("A Gemini API key is required for GeminiSdkClient.")
            client = genai.Client(api_key=api_key)
        self.client = client

    async def send(
        self, prompt: str, params: dict, timeout: float | None = None
    ) -> ResponseResult:
        generation_config = types.GenerateContentConfig(
            temperature=params["temperature"],
            top_k=params["topK"],
            top_p=params["topP"],
            max_output_tokens=params["maxOutputTokens"],
        )

        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model,
                    contents=prompt,
                    config=generation_config,
                ),
                timeout=timeout or self.timeout,
            )
        except errors.APIError as e:
            return ResponseResult.failure(
                ErrorKind.HTTP_STATUS, f"generateContent answered {e.code}", status_code=e.code
            )
        except (httpx.HTTPError, asyncio.TimeoutError, OSError) as e:
            return ResponseResult.failure(ErrorKind.NETWORK, _describe(e))

        text = self._first_text(response)
        if text is None:
            return ResponseResult.failure(
                ErrorKind.MALFORMED_PAYLOAD, "no candidate text in SDK response"
            )

        logger.debug("[Gemini SDK] %d chars from %s", len(text), self.model)
        return ResponseResult.success(text)

    @staticmethod
    def _first_text(response: Any) -> str | None:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return None
        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) or []
        if not parts:
            return None
        text = getattr(parts[0], "text", None)
        if not isinstance(text, str) or not text.strip():
            return None
        return text


def create_response_client(
    api_key: str | None = None, transport: str | None = None
) -> ResponseClient:
    """
    Build the configured client with the server-side credential.

    Raises:
        ValueError: if no API key is configured or the transport is unknown.
    """
    api_key = api_key or config.GOOGLE_API_KEY
    transport = (transport or config.GEMINI_TRANSPORT).lower()

    if not api_key:
        raise ValueError(
            "Google API key is required. Set GOOGLE_API_KEY in your .env file.\n"
            "Get a key at: https://aistudio.google.com/apikey"
        )

    if transport == "rest":
        return GeminiRestClient(api_key)
    if transport == "sdk":
        return GeminiSdkClient(api_key)
    raise ValueError(f"Unknown GEMINI_TRANSPORT '{transport}' (expected 'rest' or 'sdk').")
