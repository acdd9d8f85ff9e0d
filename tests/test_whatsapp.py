"""
Tests for the WhatsApp session client and connection monitor.
"""

import httpx
import pytest

from conectalead.contracts.enums import WhatsAppSessionStatus
from conectalead.errors import GatewayError
from conectalead.services.whatsapp import ConnectionMonitor, WorkflowClient, session_name

BASE_URL = "https://n8n.example.com/webhook/"


def workflow(statuses: list[str], qrcode: str = "data:image/png;base64,AAA"):
    """WorkflowClient whose status endpoint answers statuses in order (last one repeats)."""
    calls: list[httpx.Request] = []
    remaining = list(statuses)

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path.endswith("/gerar-qrcode"):
            return httpx.Response(200, json={"qrcode": qrcode})
        status = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if status == "error":
            return httpx.Response(502, json={"error": "session not found"})
        return httpx.Response(200, json={"status": status})

    return WorkflowClient(BASE_URL, transport=httpx.MockTransport(handler)), calls


class TestWorkflowClient:
    """Tests for the workflow engine endpoints."""

    def test_session_name(self):
        assert session_name("abc") == "client_abc"

    @pytest.mark.asyncio
    async def test_qr_code(self):
        client, calls = workflow(["pending"])

        qrcode = await client.get_qr_code("client_1")
        await client.close()

        assert qrcode == "data:image/png;base64,AAA"
        assert str(calls[0].url) == "https://n8n.example.com/webhook/gerar-qrcode?session=client_1"

    @pytest.mark.asyncio
    async def test_status(self):
        client, calls = workflow(["connected"])

        assert await client.get_status("client_1") == WhatsAppSessionStatus.CONNECTED
        assert calls[0].url.params["session"] == "client_1"
        await client.close()

    @pytest.mark.asyncio
    async def test_error_key_raises(self):
        def handler(request):
            return httpx.Response(200, json={"error": "Instância desconectada"})

        client = WorkflowClient(BASE_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(GatewayError) as exc_info:
            await client.get_qr_code("client_1")

        assert str(exc_info.value) == "Instância desconectada"
        assert exc_info.value.retryable is False
        await client.close()

    @pytest.mark.asyncio
    async def test_server_error_is_retryable(self):
        client, _ = workflow(["error"])

        with pytest.raises(GatewayError) as exc_info:
            await client.get_status("client_1")

        assert exc_info.value.code == "502"
        assert exc_info.value.retryable is True
        await client.close()

    @pytest.mark.asyncio
    async def test_unknown_status(self):
        client, _ = workflow(["booting"])

        with pytest.raises(GatewayError):
            await client.get_status("client_1")
        await client.close()

    @pytest.mark.asyncio
    async def test_missing_qr_code(self):
        client, _ = workflow(["pending"], qrcode="")

        with pytest.raises(GatewayError):
            await client.get_qr_code("client_1")
        await client.close()


class TestConnectionMonitor:
    """Tests for status tracking and polling."""

    @pytest.mark.asyncio
    async def test_qr_code_sets_pending(self):
        client, _ = workflow(["pending"])
        monitor = ConnectionMonitor(client, "client_1")

        assert monitor.status == WhatsAppSessionStatus.LOADING
        await monitor.refresh_qr_code()

        assert monitor.status == WhatsAppSessionStatus.PENDING
        assert monitor.qr_code.startswith("data:image")
        await client.close()

    @pytest.mark.asyncio
    async def test_failed_check_is_disconnected(self):
        client, _ = workflow(["error"])
        monitor = ConnectionMonitor(client, "client_1")

        assert await monitor.check() == WhatsAppSessionStatus.DISCONNECTED
        assert monitor.status == WhatsAppSessionStatus.DISCONNECTED
        await client.close()

    @pytest.mark.asyncio
    async def test_wait_until_connected(self):
        client, calls = workflow(["pending", "pending", "connected"])
        changes = []
        monitor = ConnectionMonitor(client, "client_1", interval=0, on_change=changes.append)

        assert await monitor.wait_until_connected(timeout=5) is True
        assert len(calls) == 3
        assert changes == [WhatsAppSessionStatus.PENDING, WhatsAppSessionStatus.CONNECTED]
        await client.close()

    @pytest.mark.asyncio
    async def test_wait_times_out(self):
        client, _ = workflow(["pending"])
        monitor = ConnectionMonitor(client, "client_1", interval=0.01)

        assert await monitor.wait_until_connected(timeout=0.05) is False
        assert monitor.status == WhatsAppSessionStatus.PENDING
        await client.close()

    @pytest.mark.asyncio
    async def test_async_callback(self):
        client, _ = workflow(["connected"])
        seen = []

        async def record(status):
            seen.append(status)

        monitor = ConnectionMonitor(client, "client_1", on_change=record)
        await monitor.check()

        assert seen == [WhatsAppSessionStatus.CONNECTED]
        await client.close()

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        client, _ = workflow(["pending"])
        monitor = ConnectionMonitor(client, "client_1", interval=0.01)

        monitor.start()
        assert monitor.running
        await monitor.stop()

        assert not monitor.running
        await client.close()
