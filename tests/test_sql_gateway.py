"""
Tests for the SQL gateway: filters, ordering, embeds and write guards.
"""

import asyncio
import threading
import time
from datetime import date

import pytest
import pytest_asyncio

from conectalead.contracts import schema
from conectalead.errors import GatewayError
from conectalead.gateway import Embed, Order, eq, gt, gte, ilike, in_, is_, lt, lte, neq


@pytest.fixture
def client_rows():
    return [
        {"id": "c1", "name": "Alfa Ltda", "status": "ativo", "monthly_fee": 100.0, "next_due_date": date(2024, 3, 10)},
        {"id": "c2", "name": "Beta SA", "status": "inativo", "monthly_fee": 200.0, "next_due_date": date(2024, 3, 20)},
        {"id": "c3", "name": "Gama ME", "status": "ativo", "monthly_fee": 300.0, "next_due_date": None},
    ]


class TestSelect:
    """Tests for reads."""

    @pytest.mark.asyncio
    async def test_operators(self, gateway, client_rows):
        await gateway.insert(schema.CLIENTS, client_rows)

        async def names(*filters):
            rows = await gateway.select(schema.CLIENTS, list(filters), order=[Order("name")])
            return [r["name"] for r in rows]

        assert await names(eq("status", "ativo")) == ["Alfa Ltda", "Gama ME"]
        assert await names(neq("status", "ativo")) == ["Beta SA"]
        assert await names(gt("monthly_fee", 100)) == ["Beta SA", "Gama ME"]
        assert await names(gte("monthly_fee", 200), lt("monthly_fee", 300)) == ["Beta SA"]
        assert await names(lte("next_due_date", "2024-03-15")) == ["Alfa Ltda"]
        assert await names(in_("id", ["c1", "c3"])) == ["Alfa Ltda", "Gama ME"]
        assert await names(ilike("name", "%beta%")) == ["Beta SA"]
        assert await names(is_("next_due_date", None)) == ["Gama ME"]

    @pytest.mark.asyncio
    async def test_order_and_limit(self, gateway, client_rows):
        await gateway.insert(schema.CLIENTS, client_rows)

        rows = await gateway.select(schema.CLIENTS, order=[Order("monthly_fee", ascending=False)], limit=2)

        assert [r["id"] for r in rows] == ["c3", "c2"]

    @pytest.mark.asyncio
    async def test_column_projection(self, gateway, client_rows):
        await gateway.insert(schema.CLIENTS, client_rows)

        row = await gateway.select_one(schema.CLIENTS, [eq("id", "c1")], columns="id,name")

        assert row == {"id": "c1", "name": "Alfa Ltda"}

    @pytest.mark.asyncio
    async def test_unknown_column(self, gateway):
        with pytest.raises(GatewayError) as exc:
            await gateway.select(schema.CLIENTS, [eq("nope", 1)])
        assert exc.value.code == "UNKNOWN_COLUMN"


class TestEmbeds:
    """Tests for nested selections."""

    @pytest_asyncio.fixture
    async def board(self, gateway):
        await gateway.insert(schema.CLIENTS, [{"id": "t1", "name": "T1"}, {"id": "t2", "name": "T2"}])
        await gateway.insert(
            schema.COLUMNS,
            [
                {"id": "col1", "name": "Novos", "order": 1, "client_id": "t1"},
                {"id": "col2", "name": "Qualificado", "order": 2, "client_id": "t1"},
                {"id": "col3", "name": "Novos", "order": 1, "client_id": "t2"},
            ],
        )
        await gateway.insert(
            schema.LEADS,
            [
                {"id": "l1", "name": "Ana", "column_id": "col1", "client_id": "t1"},
                {"id": "l2", "name": "Bruno", "column_id": "col2", "client_id": "t1"},
                {"id": "l3", "name": "Zeca", "column_id": "col3", "client_id": "t2"},
            ],
        )

    @pytest.mark.asyncio
    async def test_many_to_one(self, gateway, board):
        rows = await gateway.select(schema.LEADS, [eq("client_id", "t1")], order=[Order("name")], embeds=[Embed(schema.COLUMNS)])

        assert [r[schema.COLUMNS]["name"] for r in rows] == ["Novos", "Qualificado"]

    @pytest.mark.asyncio
    async def test_inner_embed_filters_parents(self, gateway, board):
        await gateway.insert(
            schema.FOLLOWUPS,
            [
                {"lead_id": "l1", "message_template": "Oi", "scheduled_for": "2024-03-01T10:00:00Z", "status": "scheduled"},
                {"lead_id": "l3", "message_template": "Oi", "scheduled_for": "2024-03-01T11:00:00Z", "status": "scheduled"},
            ],
        )

        rows = await gateway.select(
            schema.FOLLOWUPS,
            order=[Order("scheduled_for")],
            embeds=[Embed(schema.LEADS, columns="name,phone", inner=True, filters=(eq("client_id", "t1"),))],
        )

        assert len(rows) == 1
        assert rows[0][schema.LEADS] == {"name": "Ana", "phone": None}

    @pytest.mark.asyncio
    async def test_one_to_many(self, gateway, board):
        await gateway.insert(
            schema.PAYMENTS,
            [
                {"client_id": "t1", "amount": 100, "status": "paid"},
                {"client_id": "t1", "amount": 100, "status": "pending"},
            ],
        )

        rows = await gateway.select(schema.CLIENTS, order=[Order("name")], embeds=[Embed(schema.PAYMENTS, columns="amount,status")])

        assert len(rows[0][schema.PAYMENTS]) == 2
        assert rows[1][schema.PAYMENTS] == []


class TestWrites:
    """Tests for insert/update/delete."""

    @pytest.mark.asyncio
    async def test_insert_generates_id(self, gateway):
        rows = await gateway.insert(schema.CLIENTS, {"name": "Sem ID"})

        assert rows[0]["id"]
        assert rows[0]["created_at"] is not None

    @pytest.mark.asyncio
    async def test_update_returns_rows(self, gateway, client_rows):
        await gateway.insert(schema.CLIENTS, client_rows)

        rows = await gateway.update(schema.CLIENTS, {"status": "vencido"}, [eq("status", "ativo")])

        assert sorted(r["id"] for r in rows) == ["c1", "c3"]
        assert all(r["status"] == "vencido" for r in rows)

    @pytest.mark.asyncio
    async def test_delete_returns_rows(self, gateway, client_rows):
        await gateway.insert(schema.CLIENTS, client_rows)

        deleted = await gateway.delete(schema.CLIENTS, [eq("id", "c2")])

        assert [r["id"] for r in deleted] == ["c2"]
        assert await gateway.select_one(schema.CLIENTS, [eq("id", "c2")]) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["update", "delete"])
    async def test_refuses_unfiltered_writes(self, gateway, operation):
        with pytest.raises(GatewayError) as exc:
            if operation == "update":
                await gateway.update(schema.CLIENTS, {"status": "inativo"}, [])
            else:
                await gateway.delete(schema.CLIENTS, [])
        assert exc.value.code == "MISSING_FILTER"


class TestEventLoop:
    """Tests for running database work off the event loop."""

    @pytest.mark.asyncio
    async def test_queries_run_on_worker_thread(self, gateway, client_rows, monkeypatch):
        await gateway.insert(schema.CLIENTS, client_rows)
        threads = []
        fetch = gateway._fetch

        def slow_fetch(*args, **kwargs):
            threads.append(threading.current_thread())
            time.sleep(0.2)
            return fetch(*args, **kwargs)

        monkeypatch.setattr(gateway, "_fetch", slow_fetch)
        ticks = 0

        async def heartbeat():
            nonlocal ticks
            while True:
                await asyncio.sleep(0.01)
                ticks += 1

        beat = asyncio.create_task(heartbeat())
        try:
            rows = await gateway.select(schema.CLIENTS)
        finally:
            beat.cancel()

        assert len(rows) == 3
        assert threads and all(t is not threading.main_thread() for t in threads)
        assert ticks >= 5

    @pytest.mark.asyncio
    async def test_concurrent_calls(self, gateway):
        await asyncio.gather(*(gateway.insert(schema.CLIENTS, {"name": f"Cliente {i}"}) for i in range(10)))

        counts = await asyncio.gather(*(gateway.select(schema.CLIENTS, columns="id") for _ in range(5)))

        assert [len(rows) for rows in counts] == [10] * 5
