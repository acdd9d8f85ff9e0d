"""
REST Gateway

Gateway for the hosted backend-as-a-service table API (PostgREST).

Query mapping:
- filters:  ?column=op.value   (in.(a,b), is.null, ilike.*x*)
- embeds:   ?select=*,table!inner(cols)  with  ?table.column=op.value
- order:    ?order=column.asc,column.desc
- writes return rows via "Prefer: return=representation"

Row-level authorization is enforced by the backend using the bearer
token of the signed-in account.
"""

import logging
from typing import Any, Callable

import httpx

from conectalead.gateway.base import Embed, Filter, Gateway, Order, Row
from conectalead.gateway.rest.http import SupabaseHttp, jsonable

logger = logging.getLogger(__name__)


def format_value(value: Any) -> str:
    value = jsonable(value)
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def format_filter(f: Filter) -> str:
    """Render a filter as a PostgREST operator expression."""
    if f.op == "in":
        items = ",".join(_quote_list_item(format_value(v)) for v in f.value)
        return f"in.({items})"
    if f.op == "ilike":
        return f"ilike.{str(f.value).replace('%', '*')}"
    return f"{f.op}.{format_value(f.value)}"


def _quote_list_item(item: str) -> str:
    if any(c in item for c in ',()"'):
        escaped = item.replace('"', '\\"')
        return f'"{escaped}"'
    return item


def format_select(columns: str, embeds: list[Embed] | None) -> str:
    parts = [columns]
    for embed in embeds or []:
        name = f"{embed.alias}:{embed.table}" if embed.alias else embed.table
        hint = "!inner" if embed.inner else ""
        parts.append(f"{name}{hint}({embed.columns})")
    return ",".join(parts)


class RestGateway(SupabaseHttp, Gateway):
    """
    Gateway for the hosted table API.

    token_provider returns the current access token; the anon key is
    used when nobody is signed in.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        token_provider: Callable[[], str | None] | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(base_url, api_key, timeout=timeout, transport=transport)
        self.token_provider = token_provider

    def _headers(self, write: bool = False) -> dict[str, str]:
        token = (self.token_provider() if self.token_provider else None) or self.api_key
        headers = {"Authorization": f"Bearer {token}"}
        if write:
            headers["Prefer"] = "return=representation"
        return headers

    def _filter_params(self, filters: list[Filter] | None, prefix: str = "") -> list[tuple[str, str]]:
        return [(f"{prefix}{f.column}", format_filter(f)) for f in filters or []]

    async def select(
        self,
        table: str,
        filters: list[Filter] | None = None,
        order: list[Order] | None = None,
        embeds: list[Embed] | None = None,
        limit: int | None = None,
        columns: str = "*",
    ) -> list[Row]:
        params = [("select", format_select(columns, embeds))]
        params += self._filter_params(filters)
        for embed in embeds or []:
            params += self._filter_params(list(embed.filters), prefix=f"{embed.key}.")
        if order:
            params.append(("order", ",".join(f"{o.column}.{'asc' if o.ascending else 'desc'}" for o in order)))
        if limit is not None:
            params.append(("limit", str(limit)))

        data = await self._make_request("GET", f"/rest/v1/{table}", params=params, headers=self._headers())
        return data or []

    async def insert(self, table: str, rows: Row | list[Row]) -> list[Row]:
        rows = [rows] if isinstance(rows, dict) else list(rows)
        if not rows:
            return []
        data = await self._make_request(
            "POST", f"/rest/v1/{table}", json_data=rows, headers=self._headers(write=True)
        )
        return data or []

    async def update(self, table: str, patch: Row, filters: list[Filter]) -> list[Row]:
        self._require_filters("update", table, filters)
        data = await self._make_request(
            "PATCH",
            f"/rest/v1/{table}",
            params=self._filter_params(filters),
            json_data=patch,
            headers=self._headers(write=True),
        )
        return data or []

    async def delete(self, table: str, filters: list[Filter]) -> list[Row]:
        self._require_filters("delete", table, filters)
        data = await self._make_request(
            "DELETE",
            f"/rest/v1/{table}",
            params=self._filter_params(filters),
            headers=self._headers(write=True),
        )
        return data or []
