"""
Text generation client interface.

Node enhancement only needs a single-turn completion, so the contract
is one chat() call plus an availability probe.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal


@dataclass
class Message:
    role: Literal["system", "user", "assistant"]
    content: str


@dataclass
class LLMResponse:
    """Completion text and why generation stopped."""
    content: str
    finish_reason: str = "stop"


class LLMClient(ABC):
    """
    A backend that can rewrite node text.

    Implementations raise ConnectionError for any transport or server
    failure; callers treat that as "keep the original text".
    """

    @property
    @abstractmethod
    def model_name(self) -> str:
        ...

    @abstractmethod
    def chat(
        self,
        messages: list[Message],
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> LLMResponse:
        """
        Run one completion.

        Raises:
            ConnectionError: Backend unreachable or returned an error
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Cheap probe used before enabling enhancement."""
