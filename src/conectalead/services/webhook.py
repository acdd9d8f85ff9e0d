"""
Inbound lead webhook information.

The endpoint itself belongs to the external automation tool; this only
shows the client where to post leads and the integration status.
"""

from dataclasses import dataclass, field

from conectalead.contracts.enums import WebhookStatus
from conectalead.services.base import Controller

WEBHOOK_FIELDS = {
    "name": "Nome do lead",
    "phone": "Telefone com DDD",
    "interest": "Interesse do lead",
}

STATUS_LABELS = {
    WebhookStatus.ATIVO: "Ativo",
    WebhookStatus.AGUARDANDO: "Aguardando",
    WebhookStatus.ERRO: "Erro",
}


@dataclass
class WebhookInfo:
    url: str | None
    status: WebhookStatus
    fields: dict[str, str] = field(default_factory=lambda: dict(WEBHOOK_FIELDS))

    @property
    def status_label(self) -> str:
        return STATUS_LABELS[self.status]

    @property
    def example_payload(self) -> dict[str, str]:
        return {"name": "João Silva", "phone": "11999999999", "interest": "Plano mensal"}


class WebhookController(Controller):
    def info(self) -> WebhookInfo:
        client = self.require_client()
        return WebhookInfo(url=client.webhook_url, status=client.webhook_status or WebhookStatus.AGUARDANDO)
