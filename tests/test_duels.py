import asyncio

import pytest

from gambabot.errors import DuelInvariantError
from gambabot.gamba import DUEL_PENDING_SECONDS, DuelService, Proposal


@pytest.fixture
def service(duel_repo, ledger, coin, clock):
    return DuelService(duel_repo, ledger, coin, clock=clock)


async def fund(ledger, **balances):
    for user_id, amount in balances.items():
        await ledger.record(user_id, "Test", amount)


@pytest.mark.asyncio
async def test_accept_settles_for_challenger(service, ledger, duel_repo):
    await fund(ledger, u1=50, u2=50)
    service.coin.results = [True]

    result = await service.propose("u1", "u2", 25)
    assert result.outcome is Proposal.STARTED

    settlement = await service.accept("u2")
    assert settlement.challenger_won
    assert settlement.winner_id == "u1" and settlement.loser_id == "u2"
    assert await ledger.balance_of("u1") == 75
    assert await ledger.balance_of("u2") == 25

    duel = await duel_repo.by_id(result.duel.id)
    assert not duel.pending and duel.accepted and duel.won
    assert duel.resolved_at is not None


@pytest.mark.asyncio
async def test_accept_settles_for_target(service, ledger):
    await fund(ledger, u1=50, u2=50)
    service.coin.results = [False]

    await service.propose("u1", "u2", 10)
    settlement = await service.accept("u2")
    assert settlement.winner_id == "u2"
    assert await ledger.balance_of("u1") == 40
    assert await ledger.balance_of("u2") == 60
    # points are conserved
    assert await ledger.balance_of("u1") + await ledger.balance_of("u2") == 100


@pytest.mark.asyncio
async def test_one_pending_duel_per_user(service, ledger):
    await fund(ledger, u1=50, u2=50, u3=50)
    assert (await service.propose("u1", "u2", 10)).outcome is Proposal.STARTED
    assert (await service.propose("u1", "u3", 10)).outcome is Proposal.CHALLENGER_BUSY
    assert (await service.propose("u3", "u2", 10)).outcome is Proposal.TARGET_BUSY
    assert (await service.propose("u3", "u1", 10)).outcome is Proposal.TARGET_BUSY


@pytest.mark.asyncio
async def test_proposal_rejections(service, ledger):
    await fund(ledger, u1=20, u2=5)
    assert (await service.propose("u1", "u1", 5)).outcome is Proposal.SELF
    assert (await service.propose("u1", "u2", 0)).outcome is Proposal.TOO_SMALL
    assert (await service.propose("u1", "u2", -3)).outcome is Proposal.NEGATIVE

    short = await service.propose("u1", "u2", 30)
    assert short.outcome is Proposal.CHALLENGER_SHORT and short.balance == 20

    short = await service.propose("u1", "u2", 10)
    assert short.outcome is Proposal.TARGET_SHORT and short.balance == 5


@pytest.mark.asyncio
async def test_expired_duel_cannot_be_accepted(service, ledger, duel_repo, clock):
    await fund(ledger, u1=50, u2=50)
    result = await service.propose("u1", "u2", 25)

    clock.advance(DUEL_PENDING_SECONDS)
    assert await service.accept("u2") is None
    assert await ledger.balance_of("u1") == 50
    assert await ledger.balance_of("u2") == 50

    duel = await duel_repo.by_id(result.duel.id)
    assert not duel.pending and not duel.accepted

    # both users are free again
    assert (await service.propose("u2", "u1", 5)).outcome is Proposal.STARTED


@pytest.mark.asyncio
async def test_decline(service, ledger, duel_repo):
    await fund(ledger, u1=50, u2=50)
    result = await service.propose("u1", "u2", 25)

    # only the target can answer
    assert await service.decline("u1") is None

    declined = await service.decline("u2")
    assert declined.id == result.duel.id
    assert not declined.pending and not declined.accepted
    assert await service.accept("u2") is None
    assert await ledger.balance_of("u1") == 50


@pytest.mark.asyncio
async def test_concurrent_accepts_settle_once(service, ledger):
    await fund(ledger, u1=50, u2=50)
    await service.propose("u1", "u2", 25)

    results = await asyncio.gather(*(service.accept("u2") for _ in range(3)))
    assert sum(1 for r in results if r is not None) == 1
    assert await ledger.balance_of("u1") + await ledger.balance_of("u2") == 100


@pytest.mark.asyncio
async def test_sweep_expires_stale_duels(service, ledger, duel_repo, clock):
    await fund(ledger, u1=50, u2=50)
    await service.propose("u1", "u2", 5)
    assert await service.expire_stale() == 0

    clock.advance(DUEL_PENDING_SECONDS + 1)
    assert await service.expire_stale() == 1
    assert await duel_repo.pending_involving("u1", 0) == []


@pytest.mark.asyncio
async def test_store_rejects_second_pending_duel(duel_repo):
    await duel_repo.create("u1", "u2", 10)
    with pytest.raises(DuelInvariantError):
        await duel_repo.create("u2", "u3", 10)
    assert await duel_repo.pending_involving("u3", 0) == []
