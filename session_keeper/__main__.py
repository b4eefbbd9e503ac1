"""Entry point: python -m session_keeper."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from session_keeper.config import KeeperConfig, load_config, update_config_file_async
from session_keeper.errors import ConfigError, StorageWriteFailedError
from session_keeper.logging_config import setup_logging
from session_keeper.paths import KeeperPaths, resolve_paths
from session_keeper.session import SessionConfig, SessionConfigManager
from session_keeper.storage import build_store

logger = logging.getLogger(__name__)

_console = Console()


def _build_manager(config: KeeperConfig, paths: KeeperPaths) -> SessionConfigManager:
    return SessionConfigManager(
        build_store(config, paths),
        config.session_duration_seconds,
        key=config.storage.key,
        namespace=config.storage.namespace,
    )


def _format_expiry(expires_at: int) -> str:
    return datetime.fromtimestamp(expires_at / 1000, tz=UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


def _print_session(title: str, session: SessionConfig, config: KeeperConfig) -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold", min_width=14)
    table.add_column()
    table.add_row("Session id", session.session_id)
    table.add_row("Expires", _format_expiry(session.expires_at))
    state = "[green]valid[/green]" if session.is_valid() else "[red]expired[/red]"
    table.add_row("State", state)
    table.add_row("Duration", f"{config.session_duration_seconds / 86400:.2f} days")
    table.add_row("Namespace", f"{config.storage.namespace} ({config.storage.backend})")
    _console.print(Panel(table, title=f"[bold]{title}[/bold]", border_style="blue", padding=(1, 1)))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _cmd_status(manager: SessionConfigManager, config: KeeperConfig) -> None:
    """Show the current session without persisting the renewed expiry."""
    session = await manager.get_config()
    _print_session("Session", session, config)


async def _cmd_renew(manager: SessionConfigManager, config: KeeperConfig) -> None:
    session = await manager.get_config()
    await manager.save_config(session)
    _print_session("Session renewed", session, config)


async def _cmd_reset(manager: SessionConfigManager, config: KeeperConfig) -> None:
    session = await manager.get_config(reset=True)
    _print_session("Session reset", session, config)


async def _cmd_clear(manager: SessionConfigManager, config: KeeperConfig) -> None:
    previous = await manager.get_session_id()
    session = await manager.clear_session()
    _console.print(f"[dim]Previous session {previous} invalidated.[/dim]")
    _print_session("Session cleared", session, config)


async def _cmd_duration(
    manager: SessionConfigManager,
    config: KeeperConfig,
    paths: KeeperPaths,
    seconds: int,
) -> None:
    session = await manager.update_session_duration(seconds)
    await update_config_file_async(paths.config_path, session_duration_seconds=seconds)
    updated = config.model_copy(update={"session_duration_seconds": seconds})
    _print_session("Session duration updated", session, updated)


def _print_usage() -> None:
    _console.print()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold green", min_width=32)
    table.add_column()
    table.add_row("session-keeper [status]", "Show the current session")
    table.add_row("session-keeper renew", "Persist the renewed expiry")
    table.add_row("session-keeper reset", "Start over with a new session")
    table.add_row("session-keeper clear", "Rotate the session id")
    table.add_row("session-keeper duration <seconds>", "Change the session duration")
    table.add_row("session-keeper help", "Show this help")
    table.add_row("  -v, --verbose", "Debug logging")
    _console.print(
        Panel(table, title="[bold]session-keeper[/bold]", border_style="blue", padding=(1, 0)),
    )
    _console.print()


def _parse_seconds(args: list[str]) -> int | None:
    """Extract the positive integer after 'duration' from CLI args."""
    positional = [a for a in args if not a.startswith("-")]
    try:
        idx = positional.index("duration")
        seconds = int(positional[idx + 1])
    except (ValueError, IndexError):
        return None
    return seconds if seconds > 0 else None


async def _run(
    action: str,
    seconds: int | None,
    config: KeeperConfig,
    paths: KeeperPaths,
) -> None:
    commands: dict[str, Callable[[SessionConfigManager], Awaitable[None]]] = {
        "status": lambda m: _cmd_status(m, config),
        "renew": lambda m: _cmd_renew(m, config),
        "reset": lambda m: _cmd_reset(m, config),
        "clear": lambda m: _cmd_clear(m, config),
    }
    if seconds is not None:
        commands["duration"] = lambda m: _cmd_duration(m, config, paths, seconds)

    async with _build_manager(config, paths) as manager:
        await manager.wait_ready()
        await commands[action](manager)


_COMMANDS = frozenset({"status", "renew", "reset", "clear", "duration", "help"})


def main() -> None:
    """CLI entry point."""
    args = sys.argv[1:]
    positional = [a for a in args if not a.startswith("-")]
    verbose = "--verbose" in args or "-v" in args

    if "--help" in args or "-h" in args:
        positional.insert(0, "help")

    action = positional[0] if positional else "status"
    if action not in _COMMANDS:
        _console.print(f"[bold red]Unknown command: {action}[/bold red]")
        _print_usage()
        sys.exit(1)
    if action == "help":
        _print_usage()
        return

    seconds = None
    if action == "duration":
        seconds = _parse_seconds(args)
        if seconds is None:
            _console.print("[bold red]Usage: session-keeper duration <seconds>[/bold red]")
            sys.exit(1)

    paths = resolve_paths()
    setup_logging(verbose=verbose)
    try:
        config = load_config(paths)
    except ConfigError as exc:
        _console.print(f"[bold red]{exc}[/bold red]")
        sys.exit(1)
    config_level = getattr(logging, config.log_level.upper(), logging.INFO)
    setup_logging(config_level, verbose, paths=paths, namespace=config.storage.namespace)

    try:
        asyncio.run(_run(action, seconds, config, paths))
    except StorageWriteFailedError as exc:
        logger.exception("Session change was not persisted")
        _console.print(f"[bold red]Session change was not persisted: {exc}[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
