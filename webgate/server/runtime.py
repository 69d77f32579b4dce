"""
Runtime Controller
==================

Owns the provider registry, the API context and the HTTP listener.

Lifecycle: uninitialized -> bootstrapped -> serving(mode) -> stopped.
Both modes serve the same gateway app; the mode is reported in the state
snapshot and on ``GET /``.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import socket
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

import uvicorn
from fastapi import FastAPI

from webgate.core.config import AppConfig, ConfigManager
from webgate.core.exceptions import (
    ListenerStartError,
    ModeUnavailableError,
    NoAvailableModeError,
    UnsupportedModelError,
)
from webgate.gateway.app import create_app
from webgate.gateway.models import is_supported_model_id, list_supported_model_ids
from webgate.providers.base import WebModelProvider
from webgate.providers.registry import ProviderRegistry, create_provider_registry

from .context import ApiContext

logger = logging.getLogger("webgate.runtime")


class RuntimeMode(str, Enum):
    WEBAI = "webai"
    NATIVE_API = "native-api"


@dataclass(frozen=True)
class RuntimeState:
    """Read-only snapshot of the controller."""

    current_mode: RuntimeMode | None
    host: str
    port: int
    webai_available: bool
    native_api_available: bool
    active_provider_id: str
    active_provider_available: bool
    default_model: str


class Listener(Protocol):
    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...


ListenerFactory = Callable[[FastAPI, str, int], Listener]
RegistryFactory = Callable[[AppConfig, Path], ProviderRegistry]


class UvicornListener:
    """``uvicorn.Server`` driven as a task on the current loop over pre-bound sockets."""

    def __init__(self, app: FastAPI, host: str, port: int, log_level: str = "info"):
        self.host = host
        self.port = port
        self.config = uvicorn.Config(
            app, host=host, port=port, log_level=log_level, log_config=None, lifespan="off"
        )
        self.server = uvicorn.Server(self.config)
        self._task: asyncio.Task | None = None

    def _bind(self) -> list[socket.socket]:
        """One socket per address family ``host`` resolves to (``localhost`` may be v4 and v6)."""
        infos = socket.getaddrinfo(self.host, self.port, type=socket.SOCK_STREAM)
        families = {info[0] for info in infos}
        sockets: list[socket.socket] = []
        port = self.port
        seen: set[int] = set()

        try:
            for family, _, _, _, address in infos:
                if family in seen:
                    continue
                seen.add(family)
                try:
                    sock = self._bind_one(family, (address[0], port) + tuple(address[2:]), families)
                except OSError as e:
                    # a host without IPv6 still serves on the families it has
                    if len(families) > 1 and e.errno in (errno.EAFNOSUPPORT, errno.EADDRNOTAVAIL):
                        logger.debug(f"Skipping {address[0]}: {e}")
                        continue
                    raise
                sockets.append(sock)
                # port 0: every family shares the port picked for the first one
                port = sock.getsockname()[1]
        except OSError:
            for sock in sockets:
                sock.close()
            raise

        if not sockets:
            raise OSError(errno.EADDRNOTAVAIL, f"no usable address for {self.host}")
        return sockets

    @staticmethod
    def _bind_one(family: int, address: tuple, families: set[int]) -> socket.socket:
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if family == socket.AF_INET6 and len(families) > 1:
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
            sock.bind(address)
        except OSError:
            sock.close()
            raise
        sock.set_inheritable(True)
        return sock

    async def start(self) -> None:
        sockets = self._bind()
        self._task = asyncio.create_task(self.server.serve(sockets=sockets))
        while not self.server.started:
            if self._task.done():
                self._task.result()
                raise OSError(f"server exited during startup on {self.host}:{self.port}")
            await asyncio.sleep(0.05)

    async def stop(self) -> None:
        if self._task is None:
            return
        self.server.should_exit = True
        task, self._task = self._task, None
        await task


def _uvicorn_listener_factory(app: FastAPI, host: str, port: int) -> Listener:
    return UvicornListener(app, host, port)


class RuntimeController:
    """Bootstraps providers, serves the gateway and switches modes."""

    def __init__(
        self,
        config_manager: ConfigManager,
        registry_factory: RegistryFactory | None = None,
        listener_factory: ListenerFactory | None = None,
    ):
        self.config_manager = config_manager
        self._registry_factory = registry_factory or create_provider_registry
        self._listener_factory = listener_factory or _uvicorn_listener_factory

        config = config_manager.config
        self.registry = self._registry_factory(config, config_manager.path)
        self.context = ApiContext(
            default_model=config.default_model,
            active_provider_id=config.active_provider,
            get_provider=self._get_provider,
        )

        self._listener: Listener | None = None
        self._current_mode: RuntimeMode | None = None
        self._webai_available = False
        self._native_api_available = True
        self._active_provider_available = False

    @property
    def config(self) -> AppConfig:
        return self.config_manager.config

    @property
    def is_serving(self) -> bool:
        return self._listener is not None

    def _get_provider(self) -> WebModelProvider:
        return self.registry.get_primary_provider_or_raise()

    def get_state(self) -> RuntimeState:
        config = self.config
        return RuntimeState(
            current_mode=self._current_mode,
            host=config.server.host,
            port=config.server.port,
            webai_available=self._webai_available,
            native_api_available=self._native_api_available,
            active_provider_id=config.active_provider,
            active_provider_available=self._active_provider_available,
            default_model=self.context.default_model,
        )

    async def bootstrap(self) -> None:
        """Probe providers and derive mode availability. Never raises on provider failure."""
        logger.info("Checking runtime availability...")
        await self.registry.initialize_providers()

        status = self.registry.get_status(self.config.active_provider)
        self._active_provider_available = status is not None and status.available
        self._webai_available = self._active_provider_available

        if status is not None:
            logger.info(
                f"Active provider: {status.label} ({status.id}) -> "
                f"{'available' if status.available else 'unavailable'}"
            )
            if not status.available and status.error:
                logger.warning(f"Provider reason: {status.error}")
        else:
            logger.warning(f"Active provider '{self.config.active_provider}' is not registered")

        self.registry.log_provider_matrix()
        logger.info(f"WebAI mode: {'available' if self._webai_available else 'unavailable'}")
        logger.info(
            f"Native API mode: {'available' if self._native_api_available else 'unavailable'}"
        )

    async def _start_listener(self) -> None:
        if self._listener is not None:
            return

        host, port = self.config.server.host, self.config.server.port
        listener = self._listener_factory(create_app(self.context), host, port)
        try:
            await listener.start()
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                reason = (
                    f"port {port} is already in use. Stop the existing process or change "
                    f"server.port in {self.config_manager.path}."
                )
            else:
                reason = str(e)
            raise ListenerStartError(host, port, reason, cause=e)

        self._listener = listener
        logger.info(f"Server running on http://{host}:{port}")

    async def _stop_listener(self) -> None:
        if self._listener is None:
            return
        listener, self._listener = self._listener, None
        await listener.stop()
        logger.info("Server stopped")

    def _mode_available(self, mode: RuntimeMode) -> bool:
        if mode is RuntimeMode.WEBAI:
            return self._webai_available
        return self._native_api_available

    async def switch_mode(self, mode: RuntimeMode | str) -> None:
        mode = RuntimeMode(mode)
        if self._current_mode is mode:
            return
        if not self._mode_available(mode):
            raise ModeUnavailableError(mode.value)

        await self._start_listener()
        self._current_mode = mode
        self.context.current_mode = mode.value
        logger.info(f"Switched mode to {mode.value}")

    async def start_default_mode(self) -> RuntimeMode:
        preferred = self.config.server.default_mode

        if preferred == RuntimeMode.WEBAI.value and self._webai_available:
            await self.switch_mode(RuntimeMode.WEBAI)
            return RuntimeMode.WEBAI
        if preferred == RuntimeMode.NATIVE_API.value and self._native_api_available:
            await self.switch_mode(RuntimeMode.NATIVE_API)
            return RuntimeMode.NATIVE_API

        for mode in (RuntimeMode.WEBAI, RuntimeMode.NATIVE_API):
            if self._mode_available(mode):
                await self.switch_mode(mode)
                return mode

        raise NoAvailableModeError(str(self.config_manager.path))

    async def reload_configuration(self) -> None:
        """
        Re-read configuration and apply it.

        The listener is stopped, providers and session slots are rebuilt,
        availability is re-probed, and a previously running server resumes
        its mode (or the default mode when that one is gone).
        """
        was_running = self._listener is not None
        previous_mode = self._current_mode

        await self._stop_listener()
        self._current_mode = None
        self.context.current_mode = None

        config = self.config_manager.reload()
        await self.registry.close()
        self.registry = self._registry_factory(config, self.config_manager.path)
        self.context.default_model = config.default_model
        self.context.active_provider_id = config.active_provider
        self.context.reset_sessions()

        await self.bootstrap()

        if not was_running:
            return

        if previous_mode is not None and self._mode_available(previous_mode):
            await self.switch_mode(previous_mode)
            return
        await self.start_default_mode()

    def set_default_model(self, model_id: str) -> None:
        """Persist ``model_id`` as the default model and apply it immediately."""
        if not is_supported_model_id(model_id):
            raise UnsupportedModelError(model_id, list_supported_model_ids())

        saved = self.config_manager.save(replace(self.config, default_model=model_id))
        if saved.default_model != model_id:
            logger.warning(
                f"WEBGATE_DEFAULT_MODEL={saved.default_model} overrides the saved default "
                "after the next reload"
            )
        self.context.default_model = model_id
        logger.info(f"Default model switched to: {model_id}")

    async def shutdown(self) -> None:
        await self._stop_listener()
        self._current_mode = None
        self.context.current_mode = None
        await self.registry.close()


def create_runtime_controller(config_path: str | Path | None = None) -> RuntimeController:
    return RuntimeController(ConfigManager(config_path))


__all__ = [
    "RuntimeMode",
    "RuntimeState",
    "Listener",
    "UvicornListener",
    "RuntimeController",
    "create_runtime_controller",
]
