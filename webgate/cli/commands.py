"""
CLI Commands
============

serve, status, models, set-model and cookies. Output goes through a rich console.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

from rich.console import Console
from rich.table import Table

from webgate.core.exceptions import GatewayError
from webgate.gateway.models import list_supported_model_ids
from webgate.providers.webchat.auth import (
    GEMINI_PROVIDER,
    WebChatAuth,
    invalidate_auth,
    list_accounts,
    load_auth,
    save_auth,
)
from webgate.providers.webchat.constants import COOKIE_1PSID, COOKIE_1PSIDTS
from webgate.server.runtime import RuntimeController, RuntimeState, create_runtime_controller

console = Console()


def _badge(flag: bool) -> str:
    return "[green]available[/green]" if flag else "[red]unavailable[/red]"


def render_status(state: RuntimeState, controller: RuntimeController) -> None:
    table = Table(title="Web Model Gateway", show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    mode = state.current_mode.value if state.current_mode else "-"
    table.add_row("Mode", mode)
    table.add_row("Listen", f"http://{state.host}:{state.port}")
    table.add_row("Default model", state.default_model)
    table.add_row("Active provider", state.active_provider_id)
    table.add_row("WebAI mode", _badge(state.webai_available))
    table.add_row("Native API mode", _badge(state.native_api_available))
    table.add_row("Config", str(controller.config_manager.path))
    console.print(table)

    providers = Table(title="Providers")
    providers.add_column("ID")
    providers.add_column("Label")
    providers.add_column("Enabled")
    providers.add_column("Status")
    providers.add_column("Reason")
    for status in controller.registry.list_statuses():
        providers.add_row(
            status.id,
            status.label,
            "yes" if status.enabled else "no",
            _badge(status.available),
            status.error or "",
        )
    console.print(providers)


def render_guide(state: RuntimeState) -> None:
    base = f"http://{state.host}:{state.port}"
    console.print(f"\n[bold]Gateway listening on {base}[/bold]")
    console.print(f"  OpenAI base URL : {base}/v1")
    console.print(f"  Google base URL : {base}/v1beta")
    console.print(f"  Native endpoints: {base}/gemini, {base}/gemini-chat, {base}/translate")
    console.print("[dim]Press Ctrl+C to stop.[/dim]\n")


async def _serve(args: Any) -> None:
    controller = create_runtime_controller(args.config)
    try:
        await controller.bootstrap()
        if args.mode:
            await controller.switch_mode(args.mode)
        else:
            await controller.start_default_mode()
        state = controller.get_state()
        render_status(state, controller)
        render_guide(state)
        await asyncio.Event().wait()
    finally:
        await controller.shutdown()


def cmd_serve(args: Any) -> int:
    """Bootstrap, start the requested (or default) mode and serve until interrupted."""
    try:
        asyncio.run(_serve(args))
    except KeyboardInterrupt:
        console.print("[dim]Shutting down.[/dim]")
    except GatewayError as e:
        console.print(f"[red]{e.message}[/red]")
        return 1
    return 0


async def _status(args: Any) -> RuntimeState:
    controller = create_runtime_controller(args.config)
    try:
        await controller.bootstrap()
        state = controller.get_state()
        render_status(state, controller)
        return state
    finally:
        await controller.shutdown()


def cmd_status(args: Any) -> int:
    try:
        asyncio.run(_status(args))
    except GatewayError as e:
        console.print(f"[red]{e.message}[/red]")
        return 1
    return 0


def cmd_models(args: Any) -> int:
    current = create_runtime_controller(args.config).context.default_model
    for model_id in list_supported_model_ids():
        marker = " [green](current)[/green]" if model_id == current else ""
        console.print(f"  {model_id}{marker}")
    return 0


def cmd_set_model(args: Any) -> int:
    controller = create_runtime_controller(args.config)
    current = controller.context.default_model
    if args.model == current:
        console.print(f"[dim]Model unchanged: {current}[/dim]")
        return 0
    try:
        controller.set_default_model(args.model)
    except GatewayError as e:
        console.print(f"[red]Model switch failed: {e.message}[/red]")
        return 1
    console.print(f"[green]Default model switched to: {args.model}[/green]")
    return 0


def cmd_cookies(args: Any) -> int:
    """Manage the cached Gemini login used when ``gemini.allow_browser_cookies`` is on."""
    action = getattr(args, "action", None) or "list"

    if action == "set":
        return _set_cookies(args)
    if action == "clear":
        return _clear_cookies(args)
    return _list_cookies()


def _set_cookies(args: Any) -> int:
    if not args.psid or not args.psidts:
        console.print("[red]Both --psid and --psidts are required.[/red]")
        return 1
    now = time.time()
    auth = WebChatAuth(
        provider=GEMINI_PROVIDER,
        cookies={COOKIE_1PSID: args.psid, COOKIE_1PSIDTS: args.psidts},
        account_label=args.account,
        captured_at=now,
        expires_at=now + args.expires_days * 86400 if args.expires_days else 0.0,
    )
    path = save_auth(auth)
    console.print(f"[green]Saved cookies for account '{args.account}' to {path}[/green]")
    return 0


def _clear_cookies(args: Any) -> int:
    if invalidate_auth(GEMINI_PROVIDER, args.account):
        console.print(f"[green]Removed cached cookies for account '{args.account}'[/green]")
        return 0
    console.print(f"[yellow]No cached cookies for account '{args.account}'[/yellow]")
    return 1


def _list_cookies() -> int:
    accounts = list_accounts(GEMINI_PROVIDER)
    if not accounts:
        console.print("[dim]No cached Gemini logins.[/dim]")
        return 0

    table = Table(title="Cached Gemini logins")
    table.add_column("Account")
    table.add_column("Captured")
    table.add_column("Status")
    for account in accounts:
        auth = load_auth(GEMINI_PROVIDER, account)
        if auth is None:
            table.add_row(account, "-", "[red]expired or unreadable[/red]")
            continue
        captured = time.strftime("%Y-%m-%d %H:%M", time.localtime(auth.captured_at))
        table.add_row(account, captured, "[green]valid[/green]")
    console.print(table)
    return 0


__all__ = [
    "cmd_serve",
    "cmd_status",
    "cmd_models",
    "cmd_set_model",
    "cmd_cookies",
    "render_status",
]
