"""Ollama native API client using httpx.

Provides async chat completion with num_ctx and temperature options, which
Ollama's OpenAI-compatible endpoint does not expose.

Responses are streamed (stream=True): the read timeout then applies to the gap
between chunks rather than to the whole generation.

No retry is attempted here. Correction requests are not assumed to be
idempotent, so a failed call is reported to the caller as-is.
"""

import asyncio
import json
import logging
from dataclasses import dataclass

import httpx

from nippo.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatResponse:
    content: str
    model: str
    total_duration: int | None = None
    eval_count: int | None = None


class OllamaClient:
    """Async client for Ollama's native /api/chat endpoint."""

    def __init__(self, settings: Settings) -> None:
        base_url = settings.llm_base_url.rstrip("/")
        # If configured with OpenAI-compat path, strip /v1 to get Ollama root
        if base_url.endswith("/v1"):
            base_url = base_url[:-3]

        self._base_url = base_url
        self._model = settings.llm_model_name
        self._temperature = settings.llm_temperature
        self._num_ctx = settings.ollama_num_ctx
        self._semaphore = asyncio.Semaphore(settings.llm_max_concurrent)
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=10.0,
                read=settings.llm_timeout,
                write=10.0,
                pool=10.0,
            )
        )

    async def chat(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float | None = None,
        num_ctx: int | None = None,
        num_predict: int | None = None,
    ) -> ChatResponse:
        """Send a streaming chat completion request to Ollama native API.

        Concurrent requests are bounded by ``llm_max_concurrent``. Network
        errors, timeouts and HTTP error statuses propagate as httpx exceptions.
        """
        async with self._semaphore:
            return await self._do_chat(
                messages,
                temperature=temperature,
                num_ctx=num_ctx,
                num_predict=num_predict,
            )

    async def _do_chat(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float | None = None,
        num_ctx: int | None = None,
        num_predict: int | None = None,
    ) -> ChatResponse:
        options: dict = {
            "num_ctx": num_ctx if num_ctx is not None else self._num_ctx,
            "temperature": temperature if temperature is not None else self._temperature,
        }
        if num_predict is not None:
            options["num_predict"] = num_predict

        payload: dict = {
            "model": self._model,
            "messages": messages,
            "stream": True,
            "options": options,
        }

        content_parts: list[str] = []
        model_name = self._model
        total_duration: int | None = None
        eval_count: int | None = None

        async with self._client.stream(
            "POST",
            f"{self._base_url}/api/chat",
            json=payload,
        ) as response:
            response.raise_for_status()
            async for line in response.aiter_lines():
                if not line.strip():
                    continue
                try:
                    chunk = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning("Failed to parse streaming chunk: %s", line[:100])
                    continue
                if "error" in chunk:
                    raise httpx.HTTPError(f"Ollama stream error: {chunk['error']}")
                if "message" in chunk and "content" in chunk["message"]:
                    content_parts.append(chunk["message"]["content"])
                # The final chunk carries the statistics
                if chunk.get("done", False):
                    model_name = chunk.get("model", self._model)
                    total_duration = chunk.get("total_duration")
                    eval_count = chunk.get("eval_count")

        content = "".join(content_parts)
        logger.debug("Ollama streaming response (first 200 chars): %s", content[:200])

        return ChatResponse(
            content=content,
            model=model_name,
            total_duration=total_duration,
            eval_count=eval_count,
        )

    async def is_reachable(self) -> bool:
        """Check if the Ollama server is reachable."""
        try:
            response = await self._client.get(
                f"{self._base_url}/api/tags",
                timeout=httpx.Timeout(5.0),
            )
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        await self._client.aclose()
