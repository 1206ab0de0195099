"""HTTP adapter around OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..prompting.builder import PromptMessage

_AUTO_BASE_URL = object()
_AUTO_API_KEY = object()


@dataclass
class LLMRequest:
    """Represents a chat completion request."""

    messages: List[PromptMessage]
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    base_url: str
    api_key: Optional[str]
    request_timeout: Optional[float]
    response_format: Optional[Dict[str, str]] = None


@dataclass
class LLMUsage:
    """Token usage reported by the endpoint."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class LLMResponse:
    """Chat completion output plus the accounting data the linter needs."""

    content: str
    model: str
    usage: Optional[LLMUsage] = None
    cached: bool = False
    raw: Dict[str, object] = field(default_factory=dict)


class LLMRunner:
    """Executes chat prompts against the configured model endpoint."""

    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_MODEL = "gpt-4-turbo-preview"
    ENV_BASE_URL_KEYS = ("RULELINT_LLM_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("RULELINT_LLM_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None | object = _AUTO_BASE_URL,
        temperature: Optional[float] = 0.0,
        max_tokens: Optional[int] = None,
        api_key: str | None | object = _AUTO_API_KEY,
        request_timeout: Optional[float] = 120.0,
        runner: Callable[[LLMRequest], LLMResponse] | None = None,
    ) -> None:
        self.model = model or self.DEFAULT_MODEL
        self.base_url = self._resolve_base_url(base_url)
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_key = self._resolve_api_key(api_key)
        self.request_timeout = request_timeout
        self._runner = runner or self._http_runner

    def get_params(self) -> Dict[str, object]:
        """Return the parameters that shape model output."""
        params: Dict[str, object] = {"model": self.model}
        if self.temperature is not None:
            params["temperature"] = self.temperature
        if self.max_tokens is not None:
            params["max_tokens"] = self.max_tokens
        return params

    def complete(
        self,
        messages: Sequence[PromptMessage],
        *,
        response_format: Mapping[str, str] | None = None,
    ) -> LLMResponse:
        """Send ``messages`` to the model and return its reply."""
        request = LLMRequest(
            messages=list(messages),
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
            response_format=dict(response_format) if response_format else None,
        )
        return self._runner(request)

    @staticmethod
    def _http_runner(request: LLMRequest) -> LLMResponse:
        endpoint = f"{request.base_url}/chat/completions"
        payload: dict[str, object] = {
            "model": request.model,
            "messages": [
                {"role": message.role, "content": message.content}
                for message in request.messages
            ],
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if request.response_format:
            payload["response_format"] = request.response_format

        data = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"

        http_request = Request(endpoint, data=data, headers=headers, method="POST")
        timeout = request.request_timeout or 120.0

        try:
            with urlopen(http_request, timeout=timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
                cache_header = response.headers.get("X-Cache", "") if response.headers else ""
        except HTTPError as exc:  # pragma: no cover - depends on runtime
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            message = detail.strip() or exc.reason
            raise RuntimeError(
                f"LLM request failed with status {exc.code}: {message}"
            ) from exc
        except URLError as exc:  # pragma: no cover - depends on runtime
            raise RuntimeError(f"LLM request failed: {exc.reason}") from exc

        try:
            response_payload = json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise RuntimeError("LLM endpoint returned invalid JSON") from exc
        if not isinstance(response_payload, dict):
            raise RuntimeError("LLM endpoint returned an unexpected payload")

        return LLMResponse(
            content=LLMRunner._extract_content(response_payload),
            model=str(response_payload.get("model") or request.model),
            usage=LLMRunner._extract_usage(response_payload),
            cached=str(cache_header).upper().startswith("HIT"),
            raw=response_payload,
        )

    @staticmethod
    def _extract_content(payload: Mapping[str, object]) -> str:
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
    def _extract_usage(payload: Mapping[str, object]) -> Optional[LLMUsage]:
        usage = payload.get("usage")
        if not isinstance(usage, dict):
            return None

        def _as_int(value: object) -> int:
            return value if isinstance(value, int) and not isinstance(value, bool) else 0

        prompt = _as_int(usage.get("prompt_tokens"))
        completion = _as_int(usage.get("completion_tokens"))
        total = _as_int(usage.get("total_tokens")) or prompt + completion
        return LLMUsage(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total)

    def _resolve_base_url(self, base_url: str | None | object) -> str:
        if base_url is not _AUTO_BASE_URL and base_url:
            return str(base_url).rstrip("/")
        env_value = self._first_env_value(self.ENV_BASE_URL_KEYS)
        return (env_value or self.DEFAULT_BASE_URL).rstrip("/")

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


__all__ = ["LLMRequest", "LLMResponse", "LLMRunner", "LLMUsage"]
