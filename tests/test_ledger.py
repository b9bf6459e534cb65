import asyncio

import aiosqlite
import pytest

from gambabot.errors import StoreError


@pytest.mark.asyncio
async def test_balance_is_sum_of_deltas(ledger):
    assert await ledger.balance_of("u1") == 0

    await ledger.record("u1", "AutomaticGrant", 50)
    await ledger.record("u1", "Roulette", -20)
    await ledger.record("u2", "Roulette", 5)

    assert await ledger.balance_of("u1") == 30
    assert await ledger.balance_of("u2") == 5

    entries = await ledger.entries_for("u1")
    assert [(e.game, e.delta) for e in entries] == [("AutomaticGrant", 50), ("Roulette", -20)]
    assert entries[0].id < entries[1].id


@pytest.mark.asyncio
async def test_concurrent_credits_are_not_lost(ledger):
    await asyncio.gather(*(ledger.record("u1", "Test", 1) for _ in range(25)))
    assert await ledger.balance_of("u1") == 25


@pytest.mark.asyncio
async def test_record_many_is_atomic(ledger, db):
    await ledger.record_many([("a", "GivePoints", -10), ("b", "GivePoints", 10)])
    assert await ledger.balance_of("a") == -10
    assert await ledger.balance_of("b") == 10

    await db.conn.execute(
        "CREATE TRIGGER no_c BEFORE INSERT ON ledger WHEN NEW.user_id = 'c' "
        "BEGIN SELECT RAISE(ABORT, 'nope'); END"
    )
    with pytest.raises(StoreError):
        await ledger.record_many([("a", "GivePoints", 5), ("c", "GivePoints", -5)])
    assert await ledger.balance_of("a") == -10


@pytest.mark.asyncio
async def test_failed_commit_is_rolled_back(ledger, db, monkeypatch):
    conn = db.conn
    execute = conn.execute
    failures = []

    def failing_commit(sql, *args, **kwargs):
        if sql == "COMMIT" and not failures:
            failures.append(sql)

            async def fail():
                raise aiosqlite.OperationalError("disk I/O error")

            return fail()
        return execute(sql, *args, **kwargs)

    monkeypatch.setattr(conn, "execute", failing_commit)

    with pytest.raises(StoreError):
        await ledger.record_many([("u1", "Roulette", 10)])
    assert failures == ["COMMIT"]
    assert not conn.in_transaction

    # the connection is usable again and the failed write is gone
    await ledger.record_many([("u1", "Roulette", 5)])
    assert await ledger.balance_of("u1") == 5
