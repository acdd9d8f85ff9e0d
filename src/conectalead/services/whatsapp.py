"""
WhatsApp session connection.

The WhatsApp session of each client is managed by the external workflow
engine; this module asks it for a QR code and polls the session status
until the phone is connected.

Endpoints (GET, relative to WORKFLOW_BASE_URL):
- /gerar-qrcode?session=client_<id>   -> {"qrcode": "...", "error": "..."}
- /status-sessao?session=client_<id>  -> {"status": "pending|connected|disconnected", "error": "..."}
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from conectalead.contracts.enums import WhatsAppSessionStatus
from conectalead.errors import GatewayError

logger = logging.getLogger(__name__)


def session_name(client_id: str) -> str:
    return f"client_{client_id}"


class WorkflowClient:
    """HTTP client for the workflow engine's WhatsApp session webhooks."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            base_url: Webhook base URL (e.g., "https://n8n.example.com/webhook")
            timeout: HTTP request timeout
            transport: Custom transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self.transport)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _make_request(self, endpoint: str, session: str) -> dict[str, Any]:
        client = await self._get_client()
        url = f"{self.base_url}{endpoint}"

        try:
            response = await client.get(url, params={"session": session})
        except httpx.RequestError as e:
            logger.error(f"HTTP request failed: {e}")
            raise GatewayError(message=f"HTTP request failed: {e}", code="HTTP_ERROR", retryable=True) from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code >= 400 or data.get("error"):
            raise GatewayError(
                message=str(data.get("error") or data.get("message") or f"HTTP {response.status_code}"),
                code=str(response.status_code),
                details=data,
                retryable=response.status_code >= 500,
            )
        return data

    async def get_qr_code(self, session: str) -> str:
        """QR code image data (or URL) to pair the phone."""
        data = await self._make_request("/gerar-qrcode", session)
        qrcode = data.get("qrcode")
        if not qrcode:
            raise GatewayError("Workflow returned no QR code", code="NO_QRCODE", details=data)
        return qrcode

    async def get_status(self, session: str) -> WhatsAppSessionStatus:
        data = await self._make_request("/status-sessao", session)
        try:
            return WhatsAppSessionStatus(data.get("status"))
        except ValueError:
            raise GatewayError(f"Unknown session status: {data.get('status')}", code="BAD_STATUS", details=data)


StatusCallback = Callable[[WhatsAppSessionStatus], Awaitable[None] | None]


class ConnectionMonitor:
    """
    Tracks the connection state of one session.

    status starts as LOADING, becomes PENDING once a QR code is shown, and
    follows the polled status afterwards. A failed status check counts
    as DISCONNECTED. Polling runs until stop() is called.
    """

    def __init__(
        self,
        client: WorkflowClient,
        session: str,
        interval: float = 5.0,
        on_change: StatusCallback | None = None,
    ):
        self.client = client
        self.session = session
        self.interval = interval
        self.on_change = on_change
        self.status = WhatsAppSessionStatus.LOADING
        self.qr_code: str | None = None
        self._task: asyncio.Task | None = None

    async def _set_status(self, status: WhatsAppSessionStatus) -> None:
        if status == self.status:
            return
        previous, self.status = self.status, status
        if status == WhatsAppSessionStatus.CONNECTED:
            logger.info(f"WhatsApp session {self.session} connected")
        else:
            logger.debug(f"WhatsApp session {self.session}: {previous.value} -> {status.value}")
        if self.on_change is not None:
            result = self.on_change(status)
            if asyncio.iscoroutine(result):
                await result

    async def refresh_qr_code(self) -> str:
        """Request a new QR code; raises GatewayError on failure."""
        self.qr_code = await self.client.get_qr_code(self.session)
        await self._set_status(WhatsAppSessionStatus.PENDING)
        return self.qr_code

    async def check(self) -> WhatsAppSessionStatus:
        """One status poll."""
        try:
            status = await self.client.get_status(self.session)
        except GatewayError as e:
            logger.error(f"Error checking WhatsApp status: {e}")
            status = WhatsAppSessionStatus.DISCONNECTED
        await self._set_status(status)
        return status

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.check()

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._poll())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def wait_until_connected(self, timeout: float | None = None) -> bool:
        """Poll until connected or timeout; returns whether it connected."""
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while True:
            if await self.check() == WhatsAppSessionStatus.CONNECTED:
                return True
            if deadline is not None and loop.time() + self.interval > deadline:
                return False
            await asyncio.sleep(self.interval)
