"""Text generation backends for node enhancement."""

import logging
from typing import Literal

from .base import LLMClient, LLMResponse, Message
from .openai_compat import LMSTUDIO_URL, OLLAMA_URL, OpenAICompatClient

__all__ = [
    "LLMClient",
    "LLMResponse",
    "Message",
    "OpenAICompatClient",
    "MockLLMClient",
    "create_llm_client",
    "BACKEND_URLS",
]


logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Mock Client for Testing
# -----------------------------------------------------------------------------

class MockLLMClient(LLMClient):
    """
    Canned-text backend for tests and offline play.

    Replies cycle through `responses`; with fail=True every chat() raises
    ConnectionError, which exercises the keep-original-text path.
    """

    def __init__(
        self,
        responses: list[str] | None = None,
        model_name: str = "mock-model",
        fail: bool = False,
    ):
        self._replies = responses or ["The scene shifts."]
        self._served = 0
        self._model_name = model_name
        self._fail = fail
        self.calls: list[dict] = []

    @property
    def model_name(self) -> str:
        return self._model_name

    def is_available(self) -> bool:
        return not self._fail

    def chat(
        self,
        messages: list[Message],
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> LLMResponse:
        self.calls.append({
            "messages": messages,
            "system": system,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self._fail:
            raise ConnectionError("Mock backend unavailable")
        reply = self._replies[self._served % len(self._replies)]
        self._served += 1
        return LLMResponse(content=reply)

    def reset(self) -> None:
        self._served = 0
        self.calls.clear()


# -----------------------------------------------------------------------------
# Backend Factory
# -----------------------------------------------------------------------------

BackendType = Literal["none", "lmstudio", "ollama", "openai"]

BACKEND_URLS: dict[str, str] = {
    "lmstudio": LMSTUDIO_URL,
    "ollama": OLLAMA_URL,
    "openai": "https://api.openai.com/v1",
}


def create_llm_client(
    backend: BackendType = "none",
    base_url: str | None = None,
    model: str | None = None,
) -> tuple[str, LLMClient | None]:
    """
    Create an LLM client for the specified backend.

    Args:
        backend: Backend preset, or "none" to disable enhancement
        base_url: Override the preset URL
        model: Model name

    Returns:
        Tuple of (backend_name, client). Client is None when disabled
        or the backend is unknown.
    """
    if backend == "none":
        return ("none", None)

    url = base_url or BACKEND_URLS.get(backend)
    if url is None:
        logger.warning("Unknown LLM backend %r; enhancement disabled", backend)
        return (backend, None)

    client = OpenAICompatClient(base_url=url, model=model)
    if not client.is_available():
        logger.warning("LLM backend %s at %s is not reachable; enhancement disabled", backend, url)
        return (backend, None)
    return (backend, client)
