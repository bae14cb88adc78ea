"""Adapter around OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import LLMError
from ..logging import get_logger

_AUTO_API_KEY = object()

logger = get_logger("llm")


@dataclass
class LLMRequest:
    """Represents a single chat completion request."""

    prompt: str
    system: Optional[str]
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    base_url: str
    api_key: Optional[str]
    request_timeout: Optional[float]
    stream: bool = False


class LLMRunner:
    """Executes prompts against the configured chat completion endpoint."""

    DEFAULT_MODEL = "gpt-4o-mini"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    ENV_MODEL_KEYS = ("REFORGE_LLM_MODEL", "OPENAI_MODEL")
    ENV_BASE_URL_KEYS = ("REFORGE_LLM_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("REFORGE_LLM_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None = None,
        temperature: Optional[float] = 0.2,
        max_tokens: Optional[int] = None,
        api_key: str | None | object = _AUTO_API_KEY,
        request_timeout: Optional[float] = 300.0,
        runner: Callable[[LLMRequest], str] | None = None,
        streamer: Callable[[LLMRequest], Iterable[str]] | None = None,
    ) -> None:
        self.model = self._resolve_model(model)
        self.base_url = self._resolve_base_url(base_url)
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_key = self._resolve_api_key(api_key)
        self.request_timeout = request_timeout
        self._runner = runner or self._http_runner
        self._streamer = streamer or self._http_streamer

    def run(self, prompt: str, *, system: str | None = None) -> str:
        """Send the prompt and return the complete response text."""
        return self._runner(self._build_request(prompt, system=system, stream=False))

    def stream(self, prompt: str, *, system: str | None = None) -> Iterator[str]:
        """Send the prompt and yield response text chunks as they arrive."""
        request = self._build_request(prompt, system=system, stream=True)
        for chunk in self._streamer(request):
            if chunk:
                yield chunk

    def _build_request(self, prompt: str, *, system: str | None, stream: bool) -> LLMRequest:
        return LLMRequest(
            prompt=prompt,
            system=system,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
            stream=stream,
        )

    @staticmethod
    def _http_runner(request: LLMRequest) -> str:
        http_request = LLMRunner._build_http_request(request)
        try:
            with urlopen(http_request, timeout=request.request_timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:  # pragma: no cover - depends on runtime
            raise LLMRunner._http_failure(exc) from exc
        except URLError as exc:  # pragma: no cover - depends on runtime
            raise LLMError(f"LLM HTTP runner failed: {exc.reason}") from exc

        try:
            response_payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise LLMError("LLM HTTP runner returned invalid JSON") from exc

        content = LLMRunner._extract_content(response_payload)
        if not content:
            raise LLMError("LLM HTTP runner returned an empty response")
        return content.strip()

    @staticmethod
    def _http_streamer(request: LLMRequest) -> Iterator[str]:
        http_request = LLMRunner._build_http_request(request)
        try:
            response = urlopen(http_request, timeout=request.request_timeout)  # type: ignore[arg-type]
        except HTTPError as exc:  # pragma: no cover - depends on runtime
            raise LLMRunner._http_failure(exc) from exc
        except URLError as exc:  # pragma: no cover - depends on runtime
            raise LLMError(f"LLM HTTP streamer failed: {exc.reason}") from exc

        with response:
            yield from LLMRunner._iter_sse_deltas(response)

    @staticmethod
    def _iter_sse_deltas(lines: Iterable[bytes]) -> Iterator[str]:
        """Yield content deltas from a server-sent event stream of completion chunks."""
        for raw_line in lines:
            line = raw_line.decode("utf-8", errors="replace").strip()
            if not line.startswith("data:"):
                continue
            data = line[len("data:") :].strip()
            if data == "[DONE]":
                return
            try:
                payload = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("Skipping undecodable stream event: %s", data[:200])
                continue
            if isinstance(payload, dict) and payload.get("error"):
                raise LLMError(f"LLM stream reported an error: {payload['error']}")
            delta = LLMRunner._extract_delta(payload)
            if delta:
                yield delta

    @staticmethod
    def _build_http_request(request: LLMRequest) -> Request:
        endpoint = f"{request.base_url}/chat/completions"
        payload: dict[str, object] = {
            "model": request.model,
            "messages": LLMRunner._build_messages(request.system, request.prompt),
            "stream": request.stream,
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens

        data = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if request.stream:
            headers["Accept"] = "text/event-stream"
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"
        return Request(endpoint, data=data, headers=headers, method="POST")

    @staticmethod
    def _http_failure(exc: HTTPError) -> LLMError:
        detail = ""
        try:
            detail = exc.read().decode("utf-8", errors="ignore")
        except (AttributeError, OSError):
            pass
        message = detail.strip() or exc.reason
        return LLMError(f"LLM HTTP runner failed with status {exc.code}: {message}")

    @staticmethod
    def _build_messages(system: str | None, prompt: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _extract_content(payload: object) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str):
                return content
        text = first.get("text")
        if isinstance(text, str):
            return text
        return ""

    @staticmethod
    def _extract_delta(payload: object) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        delta = first.get("delta")
        if isinstance(delta, dict):
            content = delta.get("content")
            if isinstance(content, str):
                return content
        text = first.get("text")
        if isinstance(text, str):
            return text
        return ""

    def _resolve_model(self, model: str | None) -> str:
        if model:
            return model
        return self._first_env_value(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL

    def _resolve_base_url(self, base_url: str | None) -> str:
        value = base_url or self._first_env_value(self.ENV_BASE_URL_KEYS) or self.DEFAULT_BASE_URL
        return value.rstrip("/")

    def _resolve_api_key(self, api_key: str | None | object) -> str | None:
        if api_key is _AUTO_API_KEY:
            return self._first_env_value(self.ENV_API_KEY_KEYS)
        return api_key  # type: ignore[return-value]

    @staticmethod
    def _first_env_value(keys: Sequence[str]) -> str | None:
        for key in keys:
            value = os.getenv(key)
            if value:
                return value
        return None


__all__ = ["LLMRequest", "LLMRunner"]
