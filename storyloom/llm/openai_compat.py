"""
OpenAI-compatible HTTP client.

Works with any server exposing `/models` and `/chat/completions`:
LM Studio (localhost:1234), Ollama (localhost:11434) or a hosted
endpoint. Requests go through urllib; no SDK is required.
"""

import json
import logging
import os
import urllib.error
import urllib.request

from .base import LLMClient, LLMResponse, Message


logger = logging.getLogger(__name__)


LMSTUDIO_URL = "http://127.0.0.1:1234/v1"
OLLAMA_URL = "http://127.0.0.1:11434/v1"


class OpenAICompatClient(LLMClient):
    """
    Client for OpenAI-compatible chat completion servers.

    Environment overrides:
    - STORYLOOM_LLM_BASE_URL: API root (must include /v1 where the server needs it)
    - STORYLOOM_LLM_API_KEY: Bearer token
    """

    def __init__(
        self,
        base_url: str = LMSTUDIO_URL,
        model: str | None = None,
        timeout: int = 120,
        api_key: str | None = None,
    ):
        """
        Initialize client.

        Args:
            base_url: API base URL
            model: Model name (or None to use the first model the server lists)
            timeout: Request timeout in seconds
            api_key: Bearer token, if the server wants one
        """
        self.base_url = os.environ.get("STORYLOOM_LLM_BASE_URL", base_url).rstrip("/")
        self._model = model
        self.timeout = timeout
        self._api_key = api_key or os.environ.get("STORYLOOM_LLM_API_KEY")

    def _make_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _make_request(
        self,
        endpoint: str,
        data: dict | None = None,
        method: str = "POST",
    ) -> dict:
        """Make HTTP request to the API."""
        url = f"{self.base_url}/{endpoint}"
        req = urllib.request.Request(
            url,
            data=json.dumps(data).encode("utf-8") if data is not None else None,
            headers=self._make_headers(),
            method=method,
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")[:200]
            raise ConnectionError(f"{url} returned HTTP {e.code}: {body}") from e
        except (urllib.error.URLError, TimeoutError) as e:
            raise ConnectionError(f"Cannot connect to {self.base_url}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConnectionError(f"{url} returned invalid JSON: {e}") from e

    def _get_models(self) -> list[str]:
        response = self._make_request("models", method="GET")
        return [m["id"] for m in response.get("data", []) if "id" in m]

    @property
    def model_name(self) -> str:
        if self._model:
            return self._model
        try:
            models = self._get_models()
            if models:
                self._model = models[0]
                return self._model
        except ConnectionError:
            pass
        return "local-model"

    def chat(
        self,
        messages: list[Message],
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> LLMResponse:
        """Send chat completion request."""
        api_messages = []
        if system:
            api_messages.append({"role": "system", "content": system})
        for msg in messages:
            api_messages.append({"role": msg.role, "content": msg.content})

        response = self._make_request(
            "chat/completions",
            {
                "model": self.model_name,
                "messages": api_messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
        )

        try:
            choice = response["choices"][0]
        except (KeyError, IndexError, TypeError) as e:
            raise ConnectionError(f"Unexpected completion payload: {response!r:.200}") from e

        return LLMResponse(
            content=choice.get("message", {}).get("content") or "",
            finish_reason=choice.get("finish_reason") or "stop",
        )

    def is_available(self) -> bool:
        """Check if the server answers and lists at least one model."""
        try:
            return len(self._get_models()) > 0
        except ConnectionError:
            return False
