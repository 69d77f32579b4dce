"""
Provider Registry
=================

Tracks registered providers, probes them, and resolves the primary one.

There is exactly one primary provider (the configured active id). If it is
unknown or unavailable callers get an error naming the reason; no other
provider is tried in its place.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from webgate.core.config import AppConfig
from webgate.core.exceptions import ProviderNotRegisteredError, ProviderUnavailableError

from .base import WebModelProvider
from .gemini_web import GeminiWebProvider
from .openai_web import OpenAIWebProvider
from .webchat.client import CookieSource, SessionFactory

logger = logging.getLogger("webgate.providers")


@dataclass
class ProviderStatus:
    id: str
    label: str
    enabled: bool
    available: bool
    error: str | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ProviderRegistry:
    """Registered providers plus their last probed availability."""

    def __init__(self, active_provider_id: str, config_path: str | Path):
        self.active_provider_id = active_provider_id
        self.config_path = str(config_path)
        self._providers: dict[str, WebModelProvider] = {}
        self._availability: dict[str, bool] = {}

    def register(self, provider: WebModelProvider) -> None:
        self._providers[provider.id] = provider
        self._availability.pop(provider.id, None)

    def get(self, provider_id: str) -> WebModelProvider | None:
        return self._providers.get(provider_id)

    async def initialize_providers(self) -> list[ProviderStatus]:
        """Probe every enabled provider; disabled ones are reported without probing."""
        statuses: list[ProviderStatus] = []

        for provider in self._providers.values():
            enabled = provider.is_enabled()
            if not enabled:
                self._availability[provider.id] = False
                statuses.append(
                    ProviderStatus(
                        id=provider.id,
                        label=provider.label,
                        enabled=False,
                        available=False,
                        error=f"Disabled via config: {self.config_path}",
                    )
                )
                continue

            available = await provider.initialize()
            self._availability[provider.id] = available
            statuses.append(
                ProviderStatus(
                    id=provider.id,
                    label=provider.label,
                    enabled=True,
                    available=available,
                    error=provider.last_error,
                )
            )

        return statuses

    def get_status(self, provider_id: str) -> ProviderStatus | None:
        provider = self._providers.get(provider_id)
        if provider is None:
            return None

        enabled = provider.is_enabled()
        error = provider.last_error
        if not enabled:
            error = f"Disabled via config: {self.config_path}"
        return ProviderStatus(
            id=provider.id,
            label=provider.label,
            enabled=enabled,
            available=self._availability.get(provider_id) is True,
            error=error,
        )

    def get_primary_provider_or_raise(self) -> WebModelProvider:
        provider = self._providers.get(self.active_provider_id)
        if provider is None:
            raise ProviderNotRegisteredError(self.active_provider_id, self.config_path)

        if self._availability.get(provider.id) is not True:
            status = self.get_status(provider.id)
            reason = (status.error if status else None) or "Provider is unavailable."
            raise ProviderUnavailableError(provider.label, reason)

        return provider

    def list_registered(self) -> list[dict[str, str]]:
        return [{"id": p.id, "label": p.label} for p in self._providers.values()]

    def list_statuses(self) -> list[ProviderStatus]:
        return [s for s in (self.get_status(pid) for pid in self._providers) if s is not None]

    def log_provider_matrix(self) -> None:
        for provider in self._providers.values():
            available = self._availability.get(provider.id) is True
            logger.info(
                f"Provider {provider.id} ({provider.label}): "
                f"{'available' if available else 'unavailable'}"
            )

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()


def create_provider_registry(
    config: AppConfig,
    config_path: str | Path,
    session_factory: SessionFactory | None = None,
    cookie_source: CookieSource | None = None,
) -> ProviderRegistry:
    """Registry with the Gemini Web and OpenAI Web providers built from ``config``."""
    registry = ProviderRegistry(config.active_provider, config_path)
    registry.register(
        GeminiWebProvider(
            config.gemini,
            config_path,
            session_factory=session_factory,
            cookie_source=cookie_source,
        )
    )
    registry.register(OpenAIWebProvider(config.openai_web, config_path))
    return registry


__all__ = ["ProviderStatus", "ProviderRegistry", "create_provider_registry"]
