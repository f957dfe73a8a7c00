"""Tests for the projection repositories against in-memory SQLite."""

from __future__ import annotations

import pytest

from marketplace_escrow.domain.enums import ItemState
from marketplace_escrow.domain.event_log import EventLog
from marketplace_escrow.domain.models import ItemRecord
from marketplace_escrow.infrastructure.database.repositories import (
    EventRepository,
    ItemRepository,
)

REGISTRY = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
ESCROW_A = "0xa16E02E87b7454126E5E10d957A927A7F5B5d2be"
ESCROW_B = "0xB7A5bd0345EF1Cc5E66bf61BdeC17D2461fBd968"
BIG_PRICE = 2**200


class TestItemRepository:
    @pytest.mark.asyncio
    async def test_upsert_inserts_then_updates_state(self, db_session) -> None:
        repo = ItemRepository(db_session)
        record = ItemRecord(index=0, title="Ring", price=BIG_PRICE, escrow_address=ESCROW_A)

        row = await repo.upsert(REGISTRY, record)
        assert row.state == 0
        assert row.price_amount == BIG_PRICE

        record.state = ItemState.PAID
        await repo.upsert(REGISTRY, record)

        rows = await repo.list_by_registry(REGISTRY)
        assert len(rows) == 1
        assert rows[0].state == 1
        assert rows[0].price == str(BIG_PRICE)

    @pytest.mark.asyncio
    async def test_list_by_state_and_order(self, db_session) -> None:
        repo = ItemRepository(db_session)
        await repo.upsert(
            REGISTRY,
            ItemRecord(index=1, title="Cloak", price=2, escrow_address=ESCROW_B, state=ItemState.PAID),
        )
        await repo.upsert(REGISTRY, ItemRecord(index=0, title="Ring", price=1, escrow_address=ESCROW_A))

        assert [r.item_index for r in await repo.list_by_registry(REGISTRY)] == [0, 1]
        paid = await repo.list_by_registry(REGISTRY, ItemState.PAID)
        assert [r.title for r in paid] == ["Cloak"]

    @pytest.mark.asyncio
    async def test_get_by_escrow_and_missing(self, db_session) -> None:
        repo = ItemRepository(db_session)
        await repo.upsert(REGISTRY, ItemRecord(index=0, title="Ring", price=1, escrow_address=ESCROW_A))

        row = await repo.get_by_escrow(ESCROW_A)
        assert row is not None
        assert row.item_index == 0
        assert await repo.get(REGISTRY, 5) is None


    @pytest.mark.asyncio
    async def test_upsert_never_moves_state_backwards(self, db_session) -> None:
        repo = ItemRepository(db_session)
        paid = ItemRecord(
            index=0, title="Ring", price=1, escrow_address=ESCROW_A, state=ItemState.PAID
        )
        await repo.upsert(REGISTRY, paid)

        stale = ItemRecord(index=0, title="Ring", price=1, escrow_address=ESCROW_A)
        row = await repo.upsert(REGISTRY, stale)
        assert row.state == ItemState.PAID

    @pytest.mark.asyncio
    async def test_clear(self, db_session) -> None:
        repo = ItemRepository(db_session)
        await repo.upsert(REGISTRY, ItemRecord(index=0, title="Ring", price=1, escrow_address=ESCROW_A))
        assert await repo.clear() == 1
        assert await repo.list_by_registry(REGISTRY) == []


class TestEventRepository:
    @pytest.mark.asyncio
    async def test_latest_sequence_empty(self, db_session) -> None:
        assert await EventRepository(db_session).latest_sequence() == -1

    @pytest.mark.asyncio
    async def test_record_and_query(self, db_session) -> None:
        log = EventLog()
        log.append(ESCROW_A, 0, ItemState.CREATED, "Ring", REGISTRY)
        log.append(ESCROW_B, 1, ItemState.CREATED, "Cloak", REGISTRY)
        log.append(ESCROW_A, 0, ItemState.PAID, "Ring", REGISTRY)

        repo = EventRepository(db_session)
        for evt in log:
            await repo.record(evt)

        assert await repo.latest_sequence() == 2
        assert [r.sequence for r in await repo.query()] == [0, 1, 2]
        assert [r.new_state for r in await repo.query(escrow_address=ESCROW_A)] == [0, 1]
        assert [r.escrow_address for r in await repo.query(index=1)] == [ESCROW_B]
        assert [r.sequence for r in await repo.query(new_state=ItemState.CREATED)] == [0, 1]
        assert [r.sequence for r in await repo.query(since=0)] == [1, 2]
        assert await repo.query(escrow_address=ESCROW_B, new_state=ItemState.PAID) == []

    @pytest.mark.asyncio
    async def test_recording_an_event_twice_is_a_no_op(self, db_session) -> None:
        log = EventLog()
        evt = log.append(ESCROW_A, 0, ItemState.CREATED, "Ring", REGISTRY)

        repo = EventRepository(db_session)
        assert await repo.record(evt) is True
        assert await repo.record(evt) is False
        assert [r.sequence for r in await repo.query()] == [0]

    @pytest.mark.asyncio
    async def test_clear(self, db_session) -> None:
        log = EventLog()
        log.append(ESCROW_A, 0, ItemState.CREATED, "Ring", REGISTRY)
        repo = EventRepository(db_session)
        for evt in log:
            await repo.record(evt)

        assert await repo.clear() == 1
        assert await repo.latest_sequence() == -1
