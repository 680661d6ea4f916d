"""LLM clients - HTTP connections to text and image generation backends.

The story collaborator is injected with a text LLM matching the protocol:

    async def __call__(self, stage: str, prompt: str, system: str | None = None) -> str: ...

`stage` identifies the caller ("story_start", "story_turn"). Implementations
may use it for logging or routing; the simplest ignore it.

Image generation uses a second protocol:

    async def __call__(self, prompt: str) -> str | None: ...

returning a `data:<mime>;base64,...` URI, or None when the backend produced
no image.

Provided implementations:

    HttpLLM       - text completion; "gemini", "openai" and "koboldcpp" formats.
    HttpImageLLM  - image generation; "gemini" and "openai" formats.

Both raise LLMError for every connection and protocol failure. Tests use
stub callables (defined in the test helpers) instead.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Protocol

import httpx

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols - every LLM implementation must match one of these signatures
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, stage: str, prompt: str, system: str | None = None) -> str: ...


class ImageLLM(Protocol):
    async def __call__(self, prompt: str) -> str | None: ...


ProviderFormat = Literal["gemini", "openai", "koboldcpp"]
ImageProviderFormat = Literal["gemini", "openai"]

DEFAULT_URLS: dict[str, str] = {
    "gemini": "https://generativelanguage.googleapis.com",
    "openai": "https://api.openai.com",
    "koboldcpp": "http://localhost:5001",
}


# ---------------------------------------------------------------------------
# Shared HTTP plumbing
# ---------------------------------------------------------------------------

class _HttpBackend:
    def __init__(
        self,
        provider_format: str,
        provider_url: str = "",
        api_key: str = "",
        model: str = "",
        timeout: float = 120.0,
    ) -> None:
        self._format = provider_format
        self._base_url = (provider_url or DEFAULT_URLS[provider_format]).rstrip("/")
        self._api_key = api_key
        self._model = model
        self._timeout = timeout

    @property
    def model(self) -> str:
        return self._model

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            if self._format == "gemini":
                headers["x-goog-api-key"] = self._api_key
            else:
                headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _gemini_url(self) -> str:
        return f"{self._base_url}/v1beta/models/{self._model}:generateContent"

    async def _post(self, url: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"LLM backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"LLM backend request failed: {e!r}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError("LLM backend returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise LLMError("Unexpected response format from LLM backend")
        return data


def _gemini_parts(data: dict[str, Any]) -> list[dict[str, Any]]:
    candidates = data.get("candidates") or []
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return []
    content = candidates[0].get("content") or {}
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return []
    return [p for p in parts if isinstance(p, dict)]


# ---------------------------------------------------------------------------
# HttpLLM - text generation
# ---------------------------------------------------------------------------

class HttpLLM(_HttpBackend):
    """Async HTTP client for text-generation backends.

    Supported formats:
      "gemini"     - POST /v1beta/models/{model}:generateContent
                     JSON output requested through responseMimeType.
                     Response: {"candidates": [{"content": {"parts": [{"text": "..."}]}}]}
      "openai"     - POST /v1/chat/completions  {"model": ..., "messages": [...]}
                     JSON output requested through response_format.
                     Response: {"choices": [{"message": {"content": "..."}}]}
      "koboldcpp"  - POST /api/v1/generate  {"prompt": ...}
                     Response: {"results": [{"text": "..."}]}

    Args:
        provider_format: Wire format to use. Defaults to "gemini".
        provider_url:    Base URL of the backend; empty selects the public default.
        api_key:         API key, or empty string if not required.
        model:           Model identifier (ignored by koboldcpp).
        timeout:         HTTP timeout in seconds. Defaults to 120.
    """

    def __init__(
        self,
        provider_format: ProviderFormat = "gemini",
        provider_url: str = "",
        api_key: str = "",
        model: str = "gemini-2.5-flash",
        timeout: float = 120.0,
    ) -> None:
        super().__init__(provider_format, provider_url, api_key, model, timeout)

    def _build_request(self, prompt: str, system: str | None) -> tuple[str, dict]:
        """Return (url, body) for the configured format."""
        if self._format == "gemini":
            body: dict = {
                "contents": [{"role": "user", "parts": [{"text": prompt}]}],
                "generationConfig": {"responseMimeType": "application/json"},
            }
            if system:
                body["systemInstruction"] = {"parts": [{"text": system}]}
            return self._gemini_url(), body

        if self._format == "openai":
            messages = []
            if system:
                messages.append({"role": "system", "content": system})
            messages.append({"role": "user", "content": prompt})
            body = {"messages": messages, "response_format": {"type": "json_object"}}
            if self._model:
                body["model"] = self._model
            return f"{self._base_url}/v1/chat/completions", body

        # koboldcpp
        full_prompt = f"{system}\n\n{prompt}" if system else prompt
        return f"{self._base_url}/api/v1/generate", {"prompt": full_prompt}

    def _parse_response(self, data: dict) -> str:
        """Extract the completion text from the response body."""
        if self._format == "gemini":
            texts = [p["text"] for p in _gemini_parts(data) if "text" in p]
            if not texts:
                raise LLMError("Unexpected response format from Gemini backend")
            return "".join(texts)

        if self._format == "openai":
            choices = data.get("choices")
            if not choices or not isinstance(choices[0].get("message"), dict):
                raise LLMError("Unexpected response format from OpenAI-compatible backend")
            content = choices[0]["message"].get("content")
            if content is None:
                raise LLMError("Unexpected response format from OpenAI-compatible backend")
            return content

        results = data.get("results")
        if not results or "text" not in results[0]:
            raise LLMError("Unexpected response format from KoboldCpp backend")
        return results[0]["text"]

    async def __call__(self, stage: str, prompt: str, system: str | None = None) -> str:
        url, body = self._build_request(prompt, system)
        logger.debug("llm call stage=%s url=%s prompt_len=%d", stage, url, len(prompt))
        data = await self._post(url, body)
        try:
            text = self._parse_response(data)
        except (AttributeError, IndexError, KeyError, TypeError) as e:
            raise LLMError(f"Unexpected response format from LLM backend: {e!r}") from e
        logger.debug("llm response stage=%s len=%d", stage, len(text))
        return text


# ---------------------------------------------------------------------------
# HttpImageLLM - image generation
# ---------------------------------------------------------------------------

class HttpImageLLM(_HttpBackend):
    """Async HTTP client for image-generation backends.

    Supported formats:
      "gemini"  - POST /v1beta/models/{model}:generateContent
                  The first part carrying inlineData is the image.
      "openai"  - POST /v1/images/generations  {"model", "prompt", "response_format": "b64_json"}
                  Response: {"data": [{"b64_json": "..."}]}
    """

    def __init__(
        self,
        provider_format: ImageProviderFormat = "gemini",
        provider_url: str = "",
        api_key: str = "",
        model: str = "gemini-2.5-flash-image",
        timeout: float = 120.0,
    ) -> None:
        super().__init__(provider_format, provider_url, api_key, model, timeout)

    def _build_request(self, prompt: str) -> tuple[str, dict]:
        if self._format == "openai":
            body: dict = {"prompt": prompt, "n": 1, "response_format": "b64_json"}
            if self._model:
                body["model"] = self._model
            return f"{self._base_url}/v1/images/generations", body
        return self._gemini_url(), {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}

    def _parse_response(self, data: dict) -> str | None:
        if self._format == "openai":
            items = data.get("data") or []
            if items and items[0].get("b64_json"):
                return f"data:image/png;base64,{items[0]['b64_json']}"
            return None

        for part in _gemini_parts(data):
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                mime = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                return f"data:{mime};base64,{inline['data']}"
        return None

    async def __call__(self, prompt: str) -> str | None:
        url, body = self._build_request(prompt)
        logger.debug("image call url=%s prompt_len=%d", url, len(prompt))
        data = await self._post(url, body)
        try:
            image = self._parse_response(data)
        except (AttributeError, IndexError, KeyError, TypeError) as e:
            raise LLMError(f"Unexpected response format from image backend: {e!r}") from e
        logger.debug("image response has_image=%s", image is not None)
        return image


# ---------------------------------------------------------------------------
# LLMError - raised by the HTTP clients for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""
