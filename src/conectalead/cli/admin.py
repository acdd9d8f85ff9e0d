"""
Administration commands (`conectalead admin ...`).

Every command here requires an administrator session.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.table import Table

from conectalead.cli.context import as_date, console, open_store, run
from conectalead.contracts.enums import ClientStatus, PaymentStatus, PlanType
from conectalead.export import format_currency, format_date, write_csv
from conectalead.guard import Route
from conectalead.services import (
    AutomationController,
    ClientsController,
    ForecastController,
    PaymentsController,
    RecurrenceController,
)
from conectalead.services.automation import AutomationFilters, is_near_due_date
from conectalead.services.clients import ClientFilters, ClientUpdate, NewClient
from conectalead.services.forecast import forecast_filename
from conectalead.services.payments import (
    STATUS_LABELS,
    ClientBillingFilters,
    LedgerFilters,
    brasilia_today,
    client_payment_status,
    display_status,
    format_reference_month,
)
from conectalead.services.recurrence import RECURRENCE_FILENAME, RecurrenceFilters

admin_app = typer.Typer(help="Administration (administrators only)")

DATE_FORMATS = ["%Y-%m-%d"]


# =============================================================================
# Clients
# =============================================================================


@admin_app.command()
def clients(
    search: str = typer.Option("", help="Name or email contains"),
    plan: Optional[PlanType] = typer.Option(None, help="Only this plan"),
    status: Optional[ClientStatus] = typer.Option(None, help="Only this status"),
):
    """List client accounts."""

    async def _clients():
        async with open_store(Route.ADMIN_CLIENTS) as store:
            return await ClientsController(store).list_clients(ClientFilters(search, plan, status))

    rows = run(_clients())
    if not rows:
        rprint("[yellow]No clients found[/yellow]")
        return

    table = Table(title=f"Clientes ({len(rows)})")
    table.add_column("ID", style="dim")
    table.add_column("Nome")
    table.add_column("Email")
    table.add_column("WhatsApp")
    table.add_column("Plano")
    table.add_column("Status")
    table.add_column("Vencimento")
    for client in rows:
        status_text = client.status.value if client.status else "-"
        if client.status and client.status.is_restricted:
            status_text = f"[red]{status_text}[/red]"
        table.add_row(
            client.id,
            client.name,
            client.email or "",
            client.whatsapp or "",
            client.plan_type.value if client.plan_type else "",
            status_text,
            format_date(client.expiration_date),
        )
    console.print(table)


@admin_app.command()
def add_client(
    name: str = typer.Option(..., help="Company name"),
    email: str = typer.Option(..., help="Login email"),
    whatsapp: str = typer.Option(..., help="WhatsApp number"),
    expiration_date: datetime = typer.Option(..., formats=DATE_FORMATS, help="Access expires on"),
    plan: PlanType = typer.Option(PlanType.MENSAL, help="Plan"),
    status: ClientStatus = typer.Option(ClientStatus.ATIVO, help="Initial status"),
    cnpj: Optional[str] = typer.Option(None, help="CNPJ"),
    initial_fee: float = typer.Option(0.0, help="Setup fee"),
    monthly_fee: float = typer.Option(0.0, help="Monthly fee"),
):
    """
    Provision a client account.

    Creates the login, the client record and the default board, then
    sends a password reset email so the client picks a password.
    """
    form = NewClient(
        name=name,
        email=email,
        whatsapp=whatsapp,
        expiration_date=as_date(expiration_date),
        plan_type=plan,
        status=status,
        cnpj=cnpj,
        initial_fee=initial_fee,
        monthly_fee=monthly_fee,
    )

    async def _add():
        async with open_store(Route.ADMIN_CLIENTS) as store:
            return await ClientsController(store).provision(form)

    client = run(_add())
    rprint("[green]Successfully created client:[/green]")
    rprint(f"  ID: {client.id}")
    rprint(f"  Name: {client.name}")
    rprint(f"  Email: {client.email}")
    rprint(f"  Password reset email sent to {client.email}")


@admin_app.command()
def edit_client(
    client_id: str = typer.Argument(..., help="Client ID"),
    name: Optional[str] = typer.Option(None),
    email: Optional[str] = typer.Option(None),
    whatsapp: Optional[str] = typer.Option(None),
    cnpj: Optional[str] = typer.Option(None),
    plan: Optional[PlanType] = typer.Option(None),
    status: Optional[ClientStatus] = typer.Option(None),
    monthly_fee: Optional[float] = typer.Option(None),
    expiration_date: Optional[datetime] = typer.Option(None, formats=DATE_FORMATS),
    billing_base_date: Optional[datetime] = typer.Option(None, formats=DATE_FORMATS),
    billing_message: Optional[str] = typer.Option(None),
    recalculate_payments: bool = typer.Option(
        False, "--recalculate-payments", help="Apply fee and base date to pending payments"
    ),
):
    """Edit a client account."""
    values = {
        "name": name,
        "email": email,
        "whatsapp": whatsapp,
        "cnpj": cnpj,
        "plan_type": plan,
        "status": status,
        "monthly_fee": monthly_fee,
        "expiration_date": as_date(expiration_date),
        "billing_base_date": as_date(billing_base_date),
        "billing_message": billing_message,
    }
    update = ClientUpdate(**{k: v for k, v in values.items() if v is not None})

    async def _edit():
        async with open_store(Route.ADMIN_CLIENTS) as store:
            return await ClientsController(store).edit(client_id, update, recalculate_payments)

    client = run(_edit())
    if client is None:
        rprint(f"[red]Client not found: {client_id}[/red]")
        raise typer.Exit(1)
    rprint(f"[green]Client updated:[/green] {client.name}")


@admin_app.command()
def toggle_status(client_id: str = typer.Argument(..., help="Client ID")):
    """Switch a client between ativo and inativo."""

    async def _toggle():
        async with open_store(Route.ADMIN_CLIENTS) as store:
            return await ClientsController(store).toggle_status(client_id)

    client = run(_toggle())
    rprint(f"[green]{client.name} is now {client.status.value}[/green]")


@admin_app.command()
def delete_client(
    client_id: str = typer.Argument(..., help="Client ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """
    Delete a client and all of its data.

    Leads, follow-ups, labels, columns and payments are removed with it.
    This cannot be undone.
    """
    if not force:
        confirm = typer.confirm(f"Delete client {client_id} and all of its data?")
        if not confirm:
            rprint("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    async def _delete():
        async with open_store(Route.ADMIN_CLIENTS) as store:
            await ClientsController(store).delete(client_id)

    run(_delete())
    rprint("[green]Client deleted[/green]")


# =============================================================================
# Payments
# =============================================================================


@admin_app.command()
def payments(
    search: str = typer.Option("", help="Client name contains"),
    status: Optional[ClientStatus] = typer.Option(None, help="Client status"),
    payment: Optional[PaymentStatus] = typer.Option(None, help="Payment status"),
):
    """Billing status of every client with this month's figures."""
    filters = ClientBillingFilters(search=search, status=status, payment=payment)
    today = brasilia_today()

    async def _payments():
        async with open_store(Route.ADMIN_PAYMENTS) as store:
            return await PaymentsController(store).billing_clients(filters, today)

    rows, stats = run(_payments())

    rprint(f"Recebido no mês: {format_currency(stats.received)}")
    rprint(f"Pendente no mês: {format_currency(stats.pending)}")
    rprint(f"Próximo mês: {format_currency(stats.next_month)}")

    table = Table(title="Controle de Pagamentos")
    table.add_column("ID", style="dim")
    table.add_column("Cliente")
    table.add_column("Mensalidade")
    table.add_column("Vencimento")
    table.add_column("Último Pagamento")
    table.add_column("Pagamento")
    for client in rows:
        table.add_row(
            client.id,
            client.name,
            format_currency(client.monthly_fee),
            format_date(client.next_due_date),
            format_date(client.last_payment_date),
            STATUS_LABELS[client_payment_status(client, today)],
        )
    console.print(table)


@admin_app.command()
def confirm_payment(
    client_id: str = typer.Argument(..., help="Client ID"),
    reference_month: Optional[datetime] = typer.Option(
        None, formats=["%Y-%m"], help="Reference month (YYYY-MM, default: current)"
    ),
    payment_date: Optional[datetime] = typer.Option(
        None, formats=DATE_FORMATS, help="Payment date (default: today)"
    ),
):
    """Record a client's payment and reactivate the account."""
    today = brasilia_today()
    reference = as_date(reference_month) or today.replace(day=1)
    paid_on = as_date(payment_date) or today

    async def _confirm():
        async with open_store(Route.ADMIN_PAYMENTS) as store:
            return await PaymentsController(store).confirm_payment(client_id, reference, paid_on)

    payment = run(_confirm())
    early = " (antecipado)" if payment.paid_early else ""
    rprint(
        f"[green]Payment confirmed:[/green] {format_currency(payment.amount)} "
        f"for {format_reference_month(reference)}{early}"
    )


@admin_app.command()
def unmark_payment(client_id: str = typer.Argument(..., help="Client ID")):
    """Undo a payment confirmation."""

    async def _unmark():
        async with open_store(Route.ADMIN_PAYMENTS) as store:
            await PaymentsController(store).unmark_payment(client_id)

    run(_unmark())
    rprint("[green]Payment unmarked; client is pending[/green]")


@admin_app.command()
def ledger(
    month: Optional[str] = typer.Option(None, help="Reference month YYYY-MM (default: current)"),
    all_months: bool = typer.Option(False, "--all", help="Every month"),
    search: str = typer.Option("", help="Client name contains"),
    status: Optional[PaymentStatus] = typer.Option(None, help="Stored payment status"),
):
    """Payments grouped by reference month."""
    filters = None
    if all_months or month or search or status:
        filters = LedgerFilters(search=search, status=status, month=None if all_months else month)

    async def _ledger():
        async with open_store(Route.ADMIN_PAYMENTS) as store:
            return await PaymentsController(store).ledger(filters)

    groups = run(_ledger())
    if not groups:
        rprint("[yellow]No payments found[/yellow]")
        return

    today = brasilia_today()
    for group in groups:
        table = Table(title=f"{group.month} - {format_currency(group.total)}", title_justify="left")
        table.add_column("Cliente")
        table.add_column("Valor")
        table.add_column("Vencimento")
        table.add_column("Pago em")
        table.add_column("Status")
        for item in group.payments:
            table.add_row(
                item.client.name if item.client else item.client_id,
                format_currency(item.amount),
                format_date(item.due_date),
                format_date(item.payment_date),
                STATUS_LABELS[display_status(item, today)],
            )
        console.print(table)


# =============================================================================
# Reports
# =============================================================================


@admin_app.command()
def recurrence(
    search: str = typer.Option("", help="Client name contains"),
    status: Optional[ClientStatus] = typer.Option(None),
    plan: Optional[PlanType] = typer.Option(None),
    sort_by: str = typer.Option("months", help="months or payments"),
    csv: Optional[Path] = typer.Option(None, "--csv", help=f"Write CSV (e.g. {RECURRENCE_FILENAME})"),
):
    """Client recurrence report."""
    filters = RecurrenceFilters(search=search, status=status, plan_type=plan, sort_by=sort_by)

    async def _recurrence():
        async with open_store(Route.ADMIN_RECURRENCE) as store:
            controller = RecurrenceController(store)
            if csv is not None:
                return await controller.export_csv(filters)
            return await controller.report(filters)

    result = run(_recurrence())
    if csv is not None:
        path = write_csv(csv, result)
        rprint(f"[green]Report written to {path}[/green]")
        return

    table = Table(title="Relatório de Recorrência")
    for header in ("Cliente", "Pagamentos", "Primeiro", "Último", "Meses", "Status", "Plano"):
        table.add_column(header)
    for row in result:
        table.add_row(
            row.client.name,
            str(row.total_payments),
            format_date(row.first_payment),
            format_date(row.last_payment),
            str(row.months_active),
            row.client.status.value if row.client.status else "",
            row.client.plan_type.value if row.client.plan_type else "",
        )
    console.print(table)


@admin_app.command()
def forecast(
    month: Optional[str] = typer.Option(None, help="Month YYYY-MM (default: current)"),
    csv: bool = typer.Option(False, "--csv", help="Write previsao-<month>.csv"),
):
    """Expected receipts per day of a month."""

    async def _forecast():
        async with open_store(Route.ADMIN_FORECAST) as store:
            return await ForecastController(store).forecast(month)

    result = run(_forecast())
    if csv:
        path = write_csv(forecast_filename(result.month), result.to_csv())
        rprint(f"[green]Forecast written to {path}[/green]")
        return

    table = Table(title=f"Previsão {result.month}: {format_currency(result.total)}")
    table.add_column("Data")
    table.add_column("Clientes")
    table.add_column("Total")
    for day in result.days:
        table.add_row(format_date(day.day), ", ".join(day.clients), format_currency(day.total))
    console.print(table)


# =============================================================================
# Billing automation
# =============================================================================


@admin_app.command()
def automation(
    search: str = typer.Option("", help="Name or WhatsApp contains"),
    plan: Optional[PlanType] = typer.Option(None),
    enabled: str = typer.Option("all", help="all, enabled or disabled"),
):
    """Per-client billing reminder settings."""
    filters = AutomationFilters(search=search, plan_type=plan, automation=enabled)

    async def _automation():
        async with open_store(Route.ADMIN_AUTOMATION) as store:
            return await AutomationController(store).list_clients(filters)

    rows = run(_automation())
    table = Table(title="Automação de Cobranças")
    table.add_column("ID", style="dim")
    table.add_column("Cliente")
    table.add_column("WhatsApp")
    table.add_column("Dia")
    table.add_column("Automação")
    for client in rows:
        day = str(client.billing_day) if client.billing_day else "-"
        if is_near_due_date(client.billing_day):
            day = f"[yellow]{day}[/yellow]"
        table.add_row(
            client.id,
            client.name,
            client.whatsapp or "",
            day,
            "ativa" if client.billing_automation_enabled else "inativa",
        )
    console.print(table)


@admin_app.command()
def automation_toggle(client_id: str = typer.Argument(..., help="Client ID")):
    """Enable or disable billing reminders for a client."""

    async def _toggle():
        async with open_store(Route.ADMIN_AUTOMATION) as store:
            return await AutomationController(store).toggle_automation(client_id)

    client = run(_toggle())
    state = "enabled" if client.billing_automation_enabled else "disabled"
    rprint(f"[green]Billing reminders {state} for {client.name}[/green]")


@admin_app.command()
def automation_set(
    client_id: str = typer.Argument(..., help="Client ID"),
    billing_day: Optional[int] = typer.Option(None, help="Day of month (1-31)"),
    message: Optional[str] = typer.Option(None, help="Reminder message"),
    whatsapp: Optional[str] = typer.Option(None, help="WhatsApp number"),
):
    """Save a client's billing day, message and number."""

    async def _set():
        async with open_store(Route.ADMIN_AUTOMATION) as store:
            return await AutomationController(store).save_client_settings(client_id, billing_day, message, whatsapp)

    client = run(_set())
    if client is None:
        rprint("[yellow]Nothing to update[/yellow]")
        return
    rprint(f"[green]Settings saved for {client.name}[/green]")


@admin_app.command()
def settings(
    message: Optional[str] = typer.Option(None, help="Default reminder message"),
    days_before: Optional[int] = typer.Option(None, help="Days before due date (1-30)"),
    send_on_due_date: Optional[bool] = typer.Option(None, help="Also send on the due date"),
):
    """Show or change the global billing settings."""

    async def _settings():
        async with open_store(Route.ADMIN_SETTINGS) as store:
            controller = AutomationController(store)
            current = await controller.get_settings()
            if message is None and days_before is None and send_on_due_date is None:
                return current, False
            saved = await controller.save_settings(
                message if message is not None else current.default_message,
                days_before if days_before is not None else current.days_before,
                send_on_due_date if send_on_due_date is not None else current.send_on_due_date,
            )
            return saved, True

    result, changed = run(_settings())
    if changed:
        rprint("[green]Settings saved[/green]")
    rprint(f"Default message: {result.default_message or '-'}")
    rprint(f"Days before: {result.days_before}")
    rprint(f"Send on due date: {result.send_on_due_date}")
