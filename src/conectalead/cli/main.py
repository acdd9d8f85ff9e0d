"""
ConectaLead CLI

Session:
- init-db: Create the self-hosted schema (optionally an admin account)
- login / logout / whoami

Client screens:
- dashboard, board, lead, column, label, followup, report
- profile, preferences, webhook, whatsapp, support

Administration commands live under `conectalead admin`.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from rich import print as rprint
from rich.table import Table

from conectalead.cli.admin import admin_app
from conectalead.cli.context import as_date, console, open_store, run, show_restricted
from conectalead.cli.session import clear_session, load_session, save_session
from conectalead.contracts.enums import ColumnColor, FollowupStatus, Role, WhatsAppSessionStatus
from conectalead.errors import AuthError
from conectalead.export import format_date, write_csv
from conectalead.gateway import create_backend
from conectalead.guard import ROUTE_TITLES, Route
from conectalead.kanban import BoardService
from conectalead.logging import setup_logging
from conectalead.services import (
    DashboardController,
    FollowupsController,
    ProfileController,
    ReportsController,
    SessionController,
    WebhookController,
)
from conectalead.services.followups import BulkLeadFilter
from conectalead.services.preferences import DefaultView, PreferencesStore
from conectalead.services.reports import REPORT_FILENAME, ReportFilters
from conectalead.services.support import support_links
from conectalead.services.whatsapp import ConnectionMonitor, WorkflowClient, session_name
from conectalead.settings import get_settings
from conectalead.store import AppStore, SessionState

app = typer.Typer(
    name="conectalead",
    help="ConectaLead lead management CLI",
)
lead_app = typer.Typer(help="Leads on the Kanban board")
column_app = typer.Typer(help="Kanban columns")
label_app = typer.Typer(help="Lead labels")
followup_app = typer.Typer(help="Scheduled WhatsApp follow-ups")
profile_app = typer.Typer(help="Company profile and password")
preferences_app = typer.Typer(help="Local display preferences")
whatsapp_app = typer.Typer(help="WhatsApp session connection")

app.add_typer(lead_app, name="lead")
app.add_typer(column_app, name="column")
app.add_typer(label_app, name="label")
app.add_typer(followup_app, name="followup")
app.add_typer(profile_app, name="profile")
app.add_typer(preferences_app, name="preferences")
app.add_typer(whatsapp_app, name="whatsapp")
app.add_typer(admin_app, name="admin")

DATE_FORMATS = ["%Y-%m-%d"]
DATETIME_FORMATS = ["%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M:%S"]


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    setup_logging("DEBUG" if verbose else None)


# =============================================================================
# Session
# =============================================================================


@app.command()
def init_db(
    admin_email: Optional[str] = typer.Option(None, help="Create an administrator account"),
    admin_password: Optional[str] = typer.Option(None, help="Password for the administrator account"),
):
    """
    Create the database schema of the self-hosted backend.

    With --admin-email and --admin-password an administrator account is
    created as well.
    """
    settings = get_settings()
    if settings.BACKEND != "sql":
        rprint("[red]init-db only applies to the self-hosted (sql) backend[/red]")
        raise typer.Exit(1)

    async def _init():
        backend = create_backend(settings)
        try:
            if admin_email:
                if not admin_password:
                    rprint("[red]--admin-password is required with --admin-email[/red]")
                    raise typer.Exit(1)
                try:
                    identity = await backend.auth.sign_up(admin_email, admin_password, Role.ADMIN)
                    rprint(f"[green]Created administrator {identity.email}[/green]")
                except AuthError as e:
                    if e.code != "user_already_exists":
                        raise
                    rprint(f"[yellow]Account already exists: {admin_email}[/yellow]")
        finally:
            await backend.close()

    run(_init())
    rprint(f"[green]Database ready:[/green] {settings.DATABASE_URL}")


@app.command()
def login(
    email: str = typer.Option(..., prompt=True, help="Account email"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Account password"),
):
    """Sign in and remember the session."""
    settings = get_settings()

    async def _login():
        backend = create_backend(settings)
        store = AppStore(backend, settings)
        try:
            state = await SessionController(store).login(email, password)
            if backend.auth.session is not None:
                save_session(backend.auth.session, settings)
            return store, state
        finally:
            await backend.close()

    store, state = run(_login())

    if state == SessionState.ADMIN:
        rprint(f"[green]Signed in as administrator {store.user.email}[/green]")
    elif state == SessionState.TENANT_BOUND:
        rprint(f"[green]Signed in as {store.user.email}[/green] ({store.client.name})")
        if store.client.status and store.client.status.is_restricted:
            show_restricted(store)
    else:
        rprint("[yellow]Signed in, but no client is bound to this account[/yellow]")


@app.command()
def logout():
    """Sign out and forget the saved session."""
    settings = get_settings()

    async def _logout():
        saved = load_session(settings)
        if saved is None:
            return False
        backend = create_backend(settings)
        store = AppStore(backend, settings)
        try:
            await backend.auth.restore_session(saved)
            await SessionController(store).logout()
        finally:
            await backend.close()
        return True

    signed_in = run(_logout())
    clear_session(settings)
    if signed_in:
        rprint("[green]Signed out[/green]")
    else:
        rprint("[yellow]No saved session[/yellow]")


@app.command()
def whoami():
    """Show the signed-in account and its client."""

    async def _whoami():
        async with open_store(Route.LOGIN) as store:
            if store.user is None:
                rprint("[yellow]Not signed in[/yellow]")
                return
            rprint(f"Email: {store.user.email}")
            rprint(f"Role: {'admin' if store.is_admin else 'client'}")
            if store.client:
                rprint(f"Client: {store.client.name} ({store.client.id})")
                rprint(f"Status: {store.client.status.value if store.client.status else '-'}")
                rprint(f"Expires: {format_date(store.client.expiration_date) or '-'}")

    run(_whoami())


# =============================================================================
# Dashboard
# =============================================================================


@app.command()
def dashboard():
    """Pipeline summary (clients) or account overview (administrators)."""

    async def _dashboard():
        async with open_store(Route.DASHBOARD) as store:
            controller = DashboardController(store)
            if store.is_admin:
                stats = await controller.admin_stats()
                table = Table(title=ROUTE_TITLES[Route.ADMIN])
                table.add_column("Clientes")
                table.add_column("Ativos")
                table.add_column("Inativos")
                table.add_column("Vencidos")
                table.add_row(
                    str(stats.total_clients),
                    str(stats.active_clients),
                    str(stats.inactive_clients),
                    str(stats.expired_clients),
                )
                console.print(table)
                for plan, count in sorted(stats.plan_distribution.items()):
                    rprint(f"  {plan}: {count}")
                return

            stats = await controller.client_stats()
            table = Table(title=f"{ROUTE_TITLES[Route.DASHBOARD]} - {store.client.name}")
            table.add_column("Total de Leads")
            table.add_column("Qualificados")
            table.add_column("Follow-ups")
            table.add_column("Cancelados")
            table.add_row(
                str(stats.total_leads),
                str(stats.qualified_leads),
                str(stats.followup_leads),
                str(stats.canceled_leads),
            )
            console.print(table)
            rprint(stats.motivational_message)

            if stats.upcoming_followups:
                upcoming = Table(title="Próximos Follow-ups")
                upcoming.add_column("Lead")
                upcoming.add_column("Agendado para")
                upcoming.add_column("Mensagem")
                for followup in stats.upcoming_followups:
                    upcoming.add_row(
                        followup.lead.name if followup.lead else "-",
                        followup.scheduled_for.strftime("%d/%m/%Y %H:%M"),
                        followup.message_template,
                    )
                console.print(upcoming)

    run(_dashboard())


# =============================================================================
# Kanban board
# =============================================================================


def _print_board(store: AppStore, read_only: bool) -> None:
    suffix = " (somente leitura)" if read_only else ""
    for column in store.columns:
        table = Table(title=f"{column.name} [{len(column.leads)}]{suffix}", title_justify="left")
        table.add_column("ID", style="dim")
        table.add_column("Nome")
        table.add_column("Telefone")
        table.add_column("Interesse")
        table.add_column("Etiquetas")
        table.add_column("Follow-up")
        for lead in column.leads:
            table.add_row(
                lead.id,
                lead.name,
                lead.phone or "",
                lead.interest or "",
                ", ".join(label.name for label in lead.labels),
                "sim" if lead.has_followup else "",
            )
        rprint(f"[dim]column {column.id} ({column.color.value})[/dim]")
        console.print(table)


@app.command()
def board(
    client: Optional[str] = typer.Option(None, "--client", help="Client ID (administrators, read-only)"),
):
    """Show the Kanban board."""
    route = Route.ADMIN_KANBAN if client else Route.KANBAN

    async def _board():
        async with open_store(route) as store:
            read_only = store.is_admin
            service = BoardService(store, read_only=read_only)
            await service.load(client)
            if not store.columns:
                rprint("[yellow]No columns on this board[/yellow]")
                return
            _print_board(store, read_only)

    run(_board())


async def _writable_board(store: AppStore) -> BoardService:
    service = BoardService(store, read_only=store.is_admin)
    await service.load()
    return service


@lead_app.command("add")
def lead_add(
    column_id: str = typer.Argument(..., help="Column ID"),
    name: str = typer.Option(..., help="Lead name"),
    phone: str = typer.Option(..., help="Phone with area code"),
    interest: Optional[str] = typer.Option(None, help="Interest"),
    notes: Optional[str] = typer.Option(None, help="Notes"),
):
    """Add a lead to a column."""

    async def _add():
        async with open_store(Route.KANBAN) as store:
            service = await _writable_board(store)
            lead = await service.add_lead(column_id, name, phone, interest, notes)
            rprint(f"[green]Lead created:[/green] {lead.name} ({lead.id})")

    run(_add())


@lead_app.command("edit")
def lead_edit(
    lead_id: str = typer.Argument(..., help="Lead ID"),
    name: Optional[str] = typer.Option(None),
    phone: Optional[str] = typer.Option(None),
    interest: Optional[str] = typer.Option(None),
    notes: Optional[str] = typer.Option(None),
):
    """Edit a lead."""

    async def _edit():
        async with open_store(Route.KANBAN) as store:
            service = await _writable_board(store)
            lead = await service.update_lead(lead_id, name=name, phone=phone, interest=interest, notes=notes)
            if lead is None:
                rprint(f"[red]Lead not found: {lead_id}[/red]")
                raise typer.Exit(1)
            rprint(f"[green]Lead updated:[/green] {lead.name}")

    run(_edit())


@lead_app.command("delete")
def lead_delete(
    lead_id: str = typer.Argument(..., help="Lead ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """Delete a lead."""
    if not force and not typer.confirm(f"Delete lead {lead_id}?"):
        rprint("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)

    async def _delete():
        async with open_store(Route.KANBAN) as store:
            service = await _writable_board(store)
            await service.delete_lead(lead_id)
            rprint("[green]Lead deleted[/green]")

    run(_delete())


@lead_app.command("move")
def lead_move(
    lead_id: str = typer.Argument(..., help="Lead ID"),
    column_id: str = typer.Argument(..., help="Target column ID"),
):
    """Move a lead to another column."""

    async def _move():
        async with open_store(Route.KANBAN) as store:
            service = await _writable_board(store)
            lead = await service.move_lead(lead_id, column_id)
            if lead is None:
                rprint(f"[red]Lead not found: {lead_id}[/red]")
                raise typer.Exit(1)
            rprint(f"[green]Lead moved:[/green] {lead.name}")

    run(_move())


@column_app.command("add")
def column_add(
    name: str = typer.Argument(..., help="Column name"),
    color: ColumnColor = typer.Option(ColumnColor.BLUE, help="Column color"),
):
    """Append a column to the board."""

    async def _add():
        async with open_store(Route.KANBAN) as store:
            service = await _writable_board(store)
            column = await service.add_column(name, color)
            rprint(f"[green]Column created:[/green] {column.name} ({column.id})")

    run(_add())


@column_app.command("rename")
def column_rename(
    column_id: str = typer.Argument(..., help="Column ID"),
    name: str = typer.Argument(..., help="New name"),
    color: Optional[ColumnColor] = typer.Option(None, help="New color"),
):
    """Rename (and optionally recolor) a column."""

    async def _rename():
        async with open_store(Route.KANBAN) as store:
            service = await _writable_board(store)
            await service.rename_column(column_id, name)
            if color is not None:
                await service.set_column_color(column_id, color)
            rprint("[green]Column updated[/green]")

    run(_rename())


@column_app.command("delete")
def column_delete(
    column_id: str = typer.Argument(..., help="Column ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """Delete a column; its leads move to the first remaining column."""
    if not force and not typer.confirm(f"Delete column {column_id}?"):
        rprint("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)

    async def _delete():
        async with open_store(Route.KANBAN) as store:
            service = await _writable_board(store)
            moved = await service.delete_column(column_id)
            rprint(f"[green]Column deleted[/green] ({moved} leads moved)")

    run(_delete())


@column_app.command("reorder")
def column_reorder(
    column_ids: List[str] = typer.Argument(..., help="Column IDs in the new order"),
):
    """Set the left-to-right order of the columns."""

    async def _reorder():
        async with open_store(Route.KANBAN) as store:
            service = await _writable_board(store)
            await service.reorder_columns(column_ids)
            rprint("[green]Columns reordered[/green]")

    run(_reorder())


@label_app.command("list")
def label_list():
    """List the client's labels."""

    async def _list():
        async with open_store(Route.KANBAN) as store:
            service = await _writable_board(store)
            labels = await service.list_labels()
            if not labels:
                rprint("[yellow]No labels[/yellow]")
                return
            table = Table(title="Etiquetas")
            table.add_column("ID", style="dim")
            table.add_column("Nome")
            table.add_column("Cor")
            for label in labels:
                table.add_row(label.id, label.name, label.color)
            console.print(table)

    run(_list())


@label_app.command("add")
def label_add(
    name: str = typer.Argument(..., help="Label name"),
    color: ColumnColor = typer.Option(ColumnColor.BLUE, help="Label color"),
):
    """Create a label."""

    async def _add():
        async with open_store(Route.KANBAN) as store:
            service = await _writable_board(store)
            label = await service.create_label(name, color.value)
            rprint(f"[green]Label created:[/green] {label.name} ({label.id})")

    run(_add())


@label_app.command("delete")
def label_delete(label_id: str = typer.Argument(..., help="Label ID")):
    """Delete a label and remove it from every lead."""

    async def _delete():
        async with open_store(Route.KANBAN) as store:
            service = await _writable_board(store)
            await service.delete_label(label_id)
            rprint("[green]Label deleted[/green]")

    run(_delete())


@label_app.command("assign")
def label_assign(
    lead_id: str = typer.Argument(..., help="Lead ID"),
    label_id: str = typer.Argument(..., help="Label ID"),
):
    """Attach a label to a lead."""

    async def _assign():
        async with open_store(Route.KANBAN) as store:
            service = await _writable_board(store)
            label = next((lb for lb in await service.list_labels() if lb.id == label_id), None)
            if label is None:
                rprint(f"[red]Label not found: {label_id}[/red]")
                raise typer.Exit(1)
            await service.assign_label(lead_id, label)
            rprint(f"[green]Label '{label.name}' assigned[/green]")

    run(_assign())


@label_app.command("remove")
def label_remove(
    lead_id: str = typer.Argument(..., help="Lead ID"),
    label_id: str = typer.Argument(..., help="Label ID"),
):
    """Detach a label from a lead."""

    async def _remove():
        async with open_store(Route.KANBAN) as store:
            service = await _writable_board(store)
            await service.remove_label(lead_id, label_id)
            rprint("[green]Label removed[/green]")

    run(_remove())


# =============================================================================
# Follow-ups
# =============================================================================


@followup_app.command("list")
def followup_list(
    status: Optional[FollowupStatus] = typer.Option(None, help="Only this status"),
):
    """List follow-ups ordered by schedule."""

    async def _list():
        async with open_store(Route.FOLLOWUPS) as store:
            followups = await FollowupsController(store).list_followups(status)
            if not followups:
                rprint("[yellow]No follow-ups[/yellow]")
                return
            table = Table(title=ROUTE_TITLES[Route.FOLLOWUPS])
            table.add_column("ID", style="dim")
            table.add_column("Lead")
            table.add_column("Telefone")
            table.add_column("Agendado para")
            table.add_column("Status")
            table.add_column("Mensagem")
            for followup in followups:
                table.add_row(
                    followup.id,
                    followup.lead.name if followup.lead else "-",
                    (followup.lead.phone if followup.lead else None) or "",
                    followup.scheduled_for.strftime("%d/%m/%Y %H:%M"),
                    followup.status.value,
                    followup.message_template,
                )
            console.print(table)

    run(_list())


@followup_app.command("add")
def followup_add(
    lead_id: str = typer.Argument(..., help="Lead ID"),
    message: str = typer.Option(..., help="Message to send"),
    at: datetime = typer.Option(..., formats=DATETIME_FORMATS, help="Send at (YYYY-MM-DD HH:MM)"),
):
    """Schedule a follow-up for one lead."""

    async def _add():
        async with open_store(Route.FOLLOWUPS) as store:
            followup = await FollowupsController(store).create(lead_id, message, at)
            rprint(f"[green]Follow-up scheduled:[/green] {followup.id}")

    run(_add())


@followup_app.command("bulk")
def followup_bulk(
    message: str = typer.Option(..., help="Message to send"),
    at: datetime = typer.Option(..., formats=DATETIME_FORMATS, help="Send at (YYYY-MM-DD HH:MM)"),
    lead: Optional[List[str]] = typer.Option(None, "--lead", help="Lead ID (repeatable)"),
    search: str = typer.Option("", help="Select leads whose name contains this"),
    column_id: Optional[str] = typer.Option(None, "--column", help="Select leads of this column"),
    created_after: Optional[datetime] = typer.Option(None, formats=DATE_FORMATS, help="Created on/after"),
):
    """Schedule the same follow-up for several leads."""

    async def _bulk():
        async with open_store(Route.FOLLOWUPS) as store:
            controller = FollowupsController(store)
            lead_ids = list(lead or [])
            if not lead_ids:
                lead_filter = BulkLeadFilter(search=search, column_id=column_id, created_after=as_date(created_after))
                _, leads = await controller.bulk_candidates(lead_filter)
                lead_ids = [item.id for item in leads]
            followups = await controller.bulk_create(lead_ids, message, at)
            rprint(f"[green]Scheduled {len(followups)} follow-ups[/green]")

    run(_bulk())


@followup_app.command("edit")
def followup_edit(
    followup_id: str = typer.Argument(..., help="Follow-up ID"),
    message: str = typer.Option(..., help="Message to send"),
    at: datetime = typer.Option(..., formats=DATETIME_FORMATS, help="Send at (YYYY-MM-DD HH:MM)"),
):
    """Change message and schedule of a follow-up."""

    async def _edit():
        async with open_store(Route.FOLLOWUPS) as store:
            followup = await FollowupsController(store).update(followup_id, message, at)
            if followup is None:
                rprint(f"[red]Follow-up not found: {followup_id}[/red]")
                raise typer.Exit(1)
            rprint("[green]Follow-up updated[/green]")

    run(_edit())


@followup_app.command("cancel")
def followup_cancel(followup_id: str = typer.Argument(..., help="Follow-up ID")):
    """Cancel a scheduled follow-up."""

    async def _cancel():
        async with open_store(Route.FOLLOWUPS) as store:
            followup = await FollowupsController(store).cancel(followup_id)
            if followup is None:
                rprint(f"[red]Follow-up not found: {followup_id}[/red]")
                raise typer.Exit(1)
            rprint("[green]Follow-up cancelled[/green]")

    run(_cancel())


# =============================================================================
# Reports
# =============================================================================


@app.command()
def report(
    search: str = typer.Option("", help="Lead name contains"),
    column: str = typer.Option("", help="Column name contains"),
    start: Optional[datetime] = typer.Option(None, formats=DATE_FORMATS, help="Created on/after"),
    end: Optional[datetime] = typer.Option(None, formats=DATE_FORMATS, help="Created on/before"),
    csv: Optional[Path] = typer.Option(None, "--csv", help=f"Write CSV (e.g. {REPORT_FILENAME})"),
):
    """Lead report, optionally exported to CSV."""
    filters = ReportFilters(search=search, column=column, start_date=as_date(start), end_date=as_date(end))

    async def _report():
        async with open_store(Route.REPORTS) as store:
            controller = ReportsController(store)
            if csv is not None:
                path = write_csv(csv, await controller.export_csv(filters))
                rprint(f"[green]Report written to {path}[/green]")
                return

            rows = await controller.filtered(filters)
            table = Table(title=f"{ROUTE_TITLES[Route.REPORTS]} ({len(rows)})")
            for header in ("Nome", "Telefone", "Coluna", "Data de Criação", "Interesse"):
                table.add_column(header)
            for row in rows:
                table.add_row(
                    row.lead.name,
                    row.lead.phone or "",
                    row.column_name,
                    format_date(row.lead.created_at),
                    row.lead.interest or "",
                )
            console.print(table)

    run(_report())


# =============================================================================
# Profile and preferences
# =============================================================================


@profile_app.command("show")
def profile_show():
    """Show company name and login email."""

    async def _show():
        async with open_store(Route.PROFILE) as store:
            rprint(f"Empresa: {store.client.name}")
            rprint(f"Email: {store.client.email or store.user.email}")

    run(_show())


@profile_app.command("rename")
def profile_rename(name: str = typer.Argument(..., help="New company name")):
    """Change the company name."""

    async def _rename():
        async with open_store(Route.PROFILE) as store:
            client = await ProfileController(store).rename(name)
            rprint(f"[green]Company name updated:[/green] {client.name if client else name}")

    run(_rename())


@profile_app.command("password")
def profile_password(
    new_password: str = typer.Option(..., prompt=True, hide_input=True, help="New password"),
    confirm_password: str = typer.Option(..., prompt=True, hide_input=True, help="Repeat the new password"),
):
    """Change the account password."""

    async def _password():
        async with open_store(Route.PROFILE) as store:
            await ProfileController(store).change_password(new_password, confirm_password)
            rprint("[green]Password updated[/green]")

    run(_password())


@profile_app.command("reset")
def profile_reset():
    """Send a password reset email to the account address."""

    async def _reset():
        async with open_store(Route.PROFILE) as store:
            email = await ProfileController(store).request_password_reset()
            rprint(f"[green]Reset email sent to {email}[/green]")

    run(_reset())


def _preferences_store() -> PreferencesStore:
    return PreferencesStore(get_settings().PREFERENCES_DIR)


@preferences_app.command("show")
def preferences_show():
    """Show display preferences."""

    async def _show():
        async with open_store(Route.PREFERENCES) as store:
            return _preferences_store().load(store.client.id)

    prefs = run(_show())
    rprint(f"Default view: {prefs.default_view.value}")
    rprint(f"Show canceled leads: {prefs.show_canceled_leads}")
    rprint(f"Auto refresh (minutes): {prefs.auto_refresh_interval}")


@preferences_app.command("set")
def preferences_set(
    default_view: Optional[DefaultView] = typer.Option(None, help="Default board view"),
    show_canceled_leads: Optional[bool] = typer.Option(None, help="Show canceled leads"),
    auto_refresh_interval: Optional[int] = typer.Option(None, help="Minutes between refreshes (1-60)"),
):
    """Change display preferences."""

    async def _set():
        async with open_store(Route.PREFERENCES) as store:
            return _preferences_store().update(
                store.client.id,
                default_view=default_view,
                show_canceled_leads=show_canceled_leads,
                auto_refresh_interval=auto_refresh_interval,
            )

    run(_set())
    rprint("[green]Preferences saved[/green]")


# =============================================================================
# Integrations and support
# =============================================================================


@app.command()
def webhook():
    """Show the inbound lead webhook and its status."""

    async def _webhook():
        async with open_store(Route.WEBHOOK) as store:
            return WebhookController(store).info()

    info = run(_webhook())
    rprint(f"URL: {info.url or '[dim]not configured[/dim]'}")
    rprint(f"Status: {info.status_label}")
    rprint("Fields:")
    for name, description in info.fields.items():
        rprint(f"  {name}: {description}")
    rprint(f"Example: {info.example_payload}")


@whatsapp_app.command("status")
def whatsapp_status():
    """Check the WhatsApp session status."""

    async def _status():
        async with open_store(Route.WHATSAPP) as store:
            settings = store.settings
            client = WorkflowClient(settings.WORKFLOW_BASE_URL, timeout=settings.HTTP_TIMEOUT)
            try:
                monitor = ConnectionMonitor(client, session_name(store.client.id))
                return await monitor.check()
            finally:
                await client.close()

    status = run(_status())
    color = "green" if status == WhatsAppSessionStatus.CONNECTED else "yellow"
    rprint(f"[{color}]WhatsApp: {status.value}[/{color}]")


@whatsapp_app.command("connect")
def whatsapp_connect(
    qr_file: Optional[Path] = typer.Option(None, help="Write the QR code data to this file"),
    timeout: float = typer.Option(120.0, help="Seconds to wait for the phone to connect"),
):
    """Request a QR code and wait until the phone is paired."""

    async def _connect():
        async with open_store(Route.WHATSAPP) as store:
            settings = store.settings
            client = WorkflowClient(settings.WORKFLOW_BASE_URL, timeout=settings.HTTP_TIMEOUT)
            monitor = ConnectionMonitor(
                client,
                session_name(store.client.id),
                interval=settings.WHATSAPP_POLL_SECONDS,
            )
            try:
                if await monitor.check() == WhatsAppSessionStatus.CONNECTED:
                    rprint("[green]WhatsApp is already connected[/green]")
                    return True

                qr_code = await monitor.refresh_qr_code()
                if qr_file is not None:
                    qr_file.write_text(qr_code, encoding="utf-8")
                    rprint(f"QR code written to {qr_file}")
                else:
                    rprint(qr_code)
                rprint("Scan the QR code with WhatsApp on your phone...")

                return await monitor.wait_until_connected(timeout)
            finally:
                await client.close()

    if run(_connect()):
        rprint("[green]WhatsApp connected[/green]")
    else:
        rprint("[yellow]Timed out waiting for the phone; run the command again for a new QR code[/yellow]")
        raise typer.Exit(1)


@app.command()
def support():
    """Support contacts."""

    async def _support():
        async with open_store(Route.SUPPORT) as store:
            return support_links(store.client.name if store.client else None, store.settings)

    links = run(_support())
    rprint(f"Telefone: {links.phone}")
    rprint(f"Email: {links.email}")
    rprint(f"WhatsApp: {links.whatsapp_url}")
    rprint(f"Mail: {links.mailto_url}")


if __name__ == "__main__":
    app()
