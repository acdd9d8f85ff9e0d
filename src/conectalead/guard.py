"""
Route/Access Guard

Decides per navigation whether to render a screen or redirect:
- no identity              -> /login
- admin                    -> render (status checks bypassed)
- admin screen, non-admin  -> /dashboard
- tenant inactive/expired  -> /expired (support link and sign-out only)
- no tenant bound          -> /login
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
from urllib.parse import quote

from conectalead.settings import Settings, get_settings

if TYPE_CHECKING:
    from conectalead.store import AppStore


class Route(str, Enum):
    """Screens of the application."""

    LOGIN = "/login"
    DASHBOARD = "/dashboard"
    KANBAN = "/kanban"
    FOLLOWUPS = "/followups"
    REPORTS = "/reports"
    PREFERENCES = "/preferences"
    PROFILE = "/profile"
    SUPPORT = "/support"
    WEBHOOK = "/webhook"
    WHATSAPP = "/whatsapp"
    EXPIRED = "/expired"
    ADMIN = "/admin"
    ADMIN_KANBAN = "/admin/kanban"
    ADMIN_CLIENTS = "/admin/clients"
    ADMIN_PAYMENTS = "/admin/payments"
    ADMIN_RECURRENCE = "/admin/recurrence"
    ADMIN_FORECAST = "/admin/forecast"
    ADMIN_AUTOMATION = "/admin/automation"
    ADMIN_SETTINGS = "/admin/settings"

    @property
    def admin_only(self) -> bool:
        return self.value.startswith("/admin")

    @property
    def public(self) -> bool:
        return self in (Route.LOGIN, Route.EXPIRED)


ROUTE_TITLES = {
    Route.DASHBOARD: "Dashboard",
    Route.KANBAN: "Kanban de Leads",
    Route.FOLLOWUPS: "Follow-up",
    Route.REPORTS: "Relatórios",
    Route.PREFERENCES: "Minhas Preferências",
    Route.PROFILE: "Perfil",
    Route.SUPPORT: "Suporte",
    Route.WEBHOOK: "Webhook",
    Route.WHATSAPP: "Conectar WhatsApp",
    Route.ADMIN: "Administração",
}


class GuardAction(str, Enum):
    WAIT = "wait"
    RENDER = "render"
    REDIRECT = "redirect"


@dataclass
class GuardDecision:
    action: GuardAction
    target: Route | None = None
    reason: str | None = None

    @property
    def allowed(self) -> bool:
        return self.action == GuardAction.RENDER


@dataclass
class RestrictedScreen:
    """Content of the access-restricted screen."""

    title: str
    message: str
    support_url: str


class AccessGuard:
    """Navigation gate over the store's session state."""

    def check(self, route: Route, store: "AppStore") -> GuardDecision:
        if store.is_loading:
            return GuardDecision(GuardAction.WAIT)

        if route == Route.LOGIN:
            return GuardDecision(GuardAction.RENDER)

        if store.user is None:
            return GuardDecision(GuardAction.REDIRECT, Route.LOGIN, "not signed in")

        if store.is_admin:
            return GuardDecision(GuardAction.RENDER)

        if route.admin_only:
            return GuardDecision(GuardAction.REDIRECT, Route.DASHBOARD, "admin only")

        status = store.client_status
        if status is not None and status.is_restricted:
            if route == Route.EXPIRED:
                return GuardDecision(GuardAction.RENDER)
            return GuardDecision(GuardAction.REDIRECT, Route.EXPIRED, f"client status {status.value}")

        if store.client is None:
            return GuardDecision(GuardAction.REDIRECT, Route.LOGIN, "no client bound to account")

        return GuardDecision(GuardAction.RENDER)


def restricted_screen(settings: Settings | None = None) -> RestrictedScreen:
    settings = settings or get_settings()
    text = "Olá! Preciso de ajuda para reativar meu acesso ao ConectaLead."
    return RestrictedScreen(
        title="Acesso Restrito",
        message=(
            "Seu acesso está temporariamente suspenso. "
            "Entre em contato com o suporte para regularizar sua conta."
        ),
        support_url=f"https://wa.me/{settings.SUPPORT_WHATSAPP}?text={quote(text)}",
    )
