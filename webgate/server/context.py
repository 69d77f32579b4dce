"""
API context: the mutable dependencies the HTTP layer reads on every request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from webgate.gateway.sessions import SessionSlots, create_session_slots
from webgate.providers.base import WebModelProvider


@dataclass
class ApiContext:
    default_model: str
    active_provider_id: str
    get_provider: Callable[[], WebModelProvider]
    sessions: SessionSlots = field(init=False)
    current_mode: str | None = None

    def __post_init__(self) -> None:
        self.sessions = create_session_slots(self.get_provider)

    def reset_sessions(self) -> None:
        self.sessions = create_session_slots(self.get_provider)


__all__ = ["ApiContext"]
