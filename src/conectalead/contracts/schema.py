"""
Table names and foreign-key relations.

Relations drive nested selection (embeds): a many-to-one relation embeds
a single object, a one-to-many relation embeds a list.
"""

from dataclasses import dataclass

CLIENTS = "clients"
COLUMNS = "columns"
LEADS = "leads"
LABELS = "labels"
LEAD_LABELS = "lead_labels"
FOLLOWUPS = "followups"
PAYMENTS = "payments"
BILLING_SETTINGS = "billing_settings"

TABLES = (CLIENTS, COLUMNS, LEADS, LABELS, LEAD_LABELS, FOLLOWUPS, PAYMENTS, BILLING_SETTINGS)


@dataclass(frozen=True)
class Relation:
    """Join from a parent table to a related table."""

    parent: str
    child: str
    parent_key: str
    child_key: str
    many: bool


RELATIONS: dict[tuple[str, str], Relation] = {
    (LEADS, COLUMNS): Relation(LEADS, COLUMNS, "column_id", "id", many=False),
    (LEADS, FOLLOWUPS): Relation(LEADS, FOLLOWUPS, "id", "lead_id", many=True),
    (LEADS, LEAD_LABELS): Relation(LEADS, LEAD_LABELS, "id", "lead_id", many=True),
    (FOLLOWUPS, LEADS): Relation(FOLLOWUPS, LEADS, "lead_id", "id", many=False),
    (LEAD_LABELS, LABELS): Relation(LEAD_LABELS, LABELS, "label_id", "id", many=False),
    (PAYMENTS, CLIENTS): Relation(PAYMENTS, CLIENTS, "client_id", "id", many=False),
    (CLIENTS, PAYMENTS): Relation(CLIENTS, PAYMENTS, "id", "client_id", many=True),
    (CLIENTS, COLUMNS): Relation(CLIENTS, COLUMNS, "id", "client_id", many=True),
    (CLIENTS, LEADS): Relation(CLIENTS, LEADS, "id", "client_id", many=True),
}


def get_relation(parent: str, child: str) -> Relation:
    """Look up the relation between two tables."""
    try:
        return RELATIONS[(parent, child)]
    except KeyError:
        raise KeyError(f"No relation between '{parent}' and '{child}'") from None
