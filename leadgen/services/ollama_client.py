from __future__ import annotations

import logging
from typing import Any

import httpx

from leadgen.config import settings

logger = logging.getLogger(__name__)


class TextGenerationError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class OllamaClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        model: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        resolved_base = (base_url or settings.OLLAMA_BASE_URL or "").strip()
        if not resolved_base:
            raise ValueError("OLLAMA_BASE_URL is required")
        self.base_url = resolved_base.rstrip("/")
        self.model = (model or settings.OLLAMA_MODEL).strip()
        self.timeout_seconds = float(timeout_seconds or settings.OLLAMA_REQUEST_TIMEOUT_SECONDS or 120.0)
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=self.timeout_seconds, transport=self._transport)

    def ping(self) -> None:
        """Raises httpx.HTTPError when the service cannot be reached."""
        with self._client() as client:
            client.get("/api/tags")

    def generate(self, prompt: str, *, response_format: dict[str, Any] | str | None = None) -> str:
        payload: dict[str, Any] = {"model": self.model, "prompt": prompt, "stream": False}
        if response_format is not None:
            payload["format"] = response_format

        try:
            with self._client() as client:
                resp = client.post("/api/generate", json=payload)
        except httpx.HTTPError as exc:
            raise TextGenerationError(f"Failed to generate text: {exc}") from exc

        if resp.status_code >= 400:
            raise TextGenerationError(
                f"Ollama API error: {resp.status_code} - {resp.text[:500]}",
                status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise TextGenerationError("Ollama returned non-JSON payload", status_code=resp.status_code) from exc

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise TextGenerationError("Ollama response did not include a 'response' string", status_code=resp.status_code)
        logger.info("ollama.generated", extra={"model": self.model, "response_chars": len(text)})
        return text
