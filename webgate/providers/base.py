"""
Provider Base - contract shared by every backend the gateway can drive.

A provider is probed once by ``initialize()``; afterwards it either serves
``generate_content``/``start_chat`` or reports why it cannot through
``last_error``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Sequence


@dataclass
class ProviderOutput:
    """Text reply plus optional continuation data."""

    text: str
    metadata: list[str | None] = field(default_factory=list)
    rcid: str | None = None


class ProviderChatSession(ABC):
    """Conversation that keeps its own continuation state between turns."""

    model: str

    @abstractmethod
    async def send_message(self, prompt: str, files: Sequence[str] = ()) -> ProviderOutput:
        ...


class WebModelProvider(ABC):
    """Abstract base for gateway backends."""

    id: str = ""
    label: str = ""

    def __init__(self) -> None:
        self._last_error: str | None = None

    @property
    def last_error(self) -> str | None:
        """Reason the last ``initialize()`` failed, or None."""
        return self._last_error

    @abstractmethod
    def is_enabled(self) -> bool:
        ...

    @abstractmethod
    async def initialize(self) -> bool:
        """Probe the backend. Never raises; failures land in ``last_error``."""
        ...

    @abstractmethod
    async def generate_content(
        self,
        prompt: str,
        model: str,
        files: Sequence[str] = (),
        metadata: Sequence[str | None] | None = None,
    ) -> ProviderOutput:
        ...

    @abstractmethod
    def start_chat(self, model: str) -> ProviderChatSession:
        ...

    async def close(self) -> None:
        """Release network resources."""
        return None


__all__ = ["ProviderOutput", "ProviderChatSession", "WebModelProvider"]
