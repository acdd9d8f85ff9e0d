"""
HTTP plumbing shared by the REST gateway and the REST auth service.
"""

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any

import httpx

from conectalead.errors import GatewayError

logger = logging.getLogger(__name__)


def jsonable(value: Any) -> Any:
    """Convert dates, enums and containers into JSON-ready values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value


class SupabaseHttp:
    """
    Base for clients of the hosted backend.

    Subclasses share one lazily created httpx.AsyncClient.
    """

    error_class: type[GatewayError] = GatewayError

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            base_url: Project URL (e.g., "https://xyz.supabase.co")
            api_key: Public anon key
            timeout: HTTP request timeout
            transport: Custom transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                headers={
                    "Content-Type": "application/json",
                    "apikey": self.api_key,
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _make_request(
        self,
        method: str,
        path: str,
        params: list[tuple[str, str]] | dict[str, str] | None = None,
        json_data: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Make an API request; returns decoded JSON or None for empty bodies."""
        client = await self._get_client()
        url = f"{self.base_url}{path}"

        try:
            response = await client.request(
                method.upper(),
                url,
                params=params,
                json=jsonable(json_data) if json_data is not None else None,
                headers=headers,
            )
        except httpx.RequestError as e:
            logger.error(f"HTTP request failed: {e}")
            raise self.error_class(
                message=f"HTTP request failed: {e}",
                code="HTTP_ERROR",
                retryable=True,
            ) from e

        try:
            data = response.json() if response.content else None
        except ValueError:
            data = None

        if response.status_code >= 400:
            body = data if isinstance(data, dict) else {}
            error = (
                body.get("message")
                or body.get("msg")
                or body.get("error_description")
                or body.get("error")
                or response.text
                or "Unknown error"
            )
            raise self.error_class(
                message=str(error),
                code=str(body.get("code") or body.get("error_code") or response.status_code),
                details=body,
                retryable=response.status_code >= 500,
            )

        return data
