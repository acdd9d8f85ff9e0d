"""
Shared plumbing for CLI commands: running coroutines, opening a guarded
session store, and reporting errors.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncIterator, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel

from conectalead.cli.session import load_session
from conectalead.errors import AccessDenied, AuthError, GatewayError, ValidationError
from conectalead.gateway import create_backend
from conectalead.guard import AccessGuard, GuardDecision, Route, restricted_screen
from conectalead.services.session import SessionController
from conectalead.settings import get_settings
from conectalead.store import AppStore

console = Console()
guard = AccessGuard()


def run(coro):
    """Run a command coroutine, turning known errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except AuthError as e:
        rprint(f"[red]Authentication failed: {e}[/red]")
        raise typer.Exit(1)
    except ValidationError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except AccessDenied as e:
        rprint(f"[red]Access denied: {e}[/red]")
        raise typer.Exit(1)
    except GatewayError as e:
        rprint(f"[red]Backend error: {e}[/red]")
        if e.code:
            rprint(f"  Code: {e.code}")
        raise typer.Exit(1)


def show_restricted(store: AppStore) -> None:
    screen = restricted_screen(store.settings)
    console.print(
        Panel(
            f"{screen.message}\n\nSuporte: {screen.support_url}",
            title=screen.title,
            border_style="red",
        )
    )


def enforce(decision: GuardDecision, store: AppStore) -> None:
    """Exit unless the guard lets the screen render."""
    if decision.allowed:
        return
    if decision.target == Route.EXPIRED:
        show_restricted(store)
    elif decision.target == Route.LOGIN:
        rprint("[red]Not signed in. Run 'conectalead login' first.[/red]")
    else:
        rprint(f"[red]Access denied: {decision.reason}[/red]")
    raise typer.Exit(1)


@asynccontextmanager
async def open_store(route: Route) -> AsyncIterator[AppStore]:
    """
    Build the backend, restore the saved session and check the route.

    The backend is closed when the block exits.
    """
    settings = get_settings()
    backend = create_backend(settings)
    store = AppStore(backend, settings)
    try:
        saved = load_session(settings)
        if saved is not None:
            await SessionController(store).restore(saved)
        else:
            await store.resolve_identity()
        enforce(guard.check(route, store), store)
        yield store
    finally:
        await backend.close()


def as_date(value: Optional[datetime]) -> Optional[date]:
    """typer parses dates as datetimes."""
    return value.date() if value else None
