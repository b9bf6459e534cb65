import pytest

from gambabot.commands.gamba import parse_wager
from gambabot.permission import Permission


@pytest.fixture
def say(services, make_msg):
    async def _say(text, user="alice", **kwargs):
        msg = make_msg(text, user=user, **kwargs)
        await services.users.remember(msg.user_id, msg.user)
        return [r.text for r in await services.dispatcher.handle(msg)]

    return _say


async def fund(services, **balances):
    for user, amount in balances.items():
        await services.users.remember(f"id-{user}", user)
        await services.ledger.record(f"id-{user}", "Test", amount)


def test_parse_wager():
    assert parse_wager("all", 50) == 50
    assert parse_wager("50%", 45) == 22
    assert parse_wager(" 12 ", 0) == 12
    assert parse_wager("lots", 50) is None
    assert parse_wager("%", 50) is None


@pytest.mark.asyncio
async def test_points(services, say):
    await fund(services, alice=30, bob=7)
    assert await say("$points") == ["GAMBA alice has 30 points"]
    assert await say("$p @bob") == ["GAMBA bob has 7 points"]
    assert await say("$points carol") == ["carol has never been seen by gambabot"]


@pytest.mark.asyncio
async def test_roulette_win_records_one_entry(services, say, coin):
    await fund(services, alice=50)
    coin.results = [True]

    assert await say("$roulette 10") == [
        "GAMBA alice won 10 points in roulette and now has 60 points!"
    ]
    assert await services.ledger.balance_of("id-alice") == 60
    entries = await services.ledger.entries_for("id-alice")
    assert [(e.game, e.delta) for e in entries[1:]] == [("Roulette", 10)]


@pytest.mark.asyncio
async def test_roulette_loss_all_and_percent(services, say, coin, clock):
    await fund(services, alice=50)
    coin.results = [False, True]

    assert await say("$r 50%") == [
        "GAMBA alice lost 25 points in roulette and now has 25 points!"
    ]
    # user cooldown
    assert await say("$r all") == []
    clock.advance(5)
    assert await say("$r all") == [
        "GAMBA alice won 25 points in roulette and now has 50 points!"
    ]


@pytest.mark.asyncio
async def test_roulette_rejections(services, say, clock, coin):
    await fund(services, alice=5)
    assert await say("$roulette") == ["Usage: $roulette <amount|percent%|all>"]
    clock.advance(5)
    assert await say("$roulette 0") == ["You must roulette at least 1 point."]
    clock.advance(5)
    assert await say("$roulette 6") == [
        "alice: You don't have enough points for that (current: 5)"
    ]
    clock.advance(5)
    assert await say("$roulette -5") == ["nice try forsenCD"]
    assert coin.flips == 0
    assert await services.ledger.balance_of("id-alice") == 5


@pytest.mark.asyncio
async def test_givepoints(services, say):
    await fund(services, alice=50, bob=0)
    assert await say("$givepoints bob 10") == ["alice gave 10 points to bob FeelsOkayMan <3"]
    assert await services.ledger.balance_of("id-alice") == 40
    assert await services.ledger.balance_of("id-bob") == 10

    assert await say("$gp alice 5") == ["You can't give points to yourself Pepega"]
    assert await say("$gp bob 100") == [
        "You can't give more points than you have (you have 40 points)"
    ]
    assert await say("$gp carol 1") == ["carol has never been seen by gambabot"]
    assert await say("$gp bob") == ["Usage: $givepoints <user> <amount>"]


@pytest.mark.asyncio
async def test_duel_flow(services, say, coin):
    await fund(services, alice=50, bob=50, carol=50)
    coin.results = [True]

    assert await say("$duel @bob 25") == [
        "@bob, alice has started a duel for 25 points! "
        "Type $accept or $decline in the next 30 seconds!"
    ]
    assert await say("$duel carol 5", user="carol") == ["You can't duel yourself Pepega"]
    assert await say("$accept", user="carol") == ["There are no duels pending against you."]
    assert await say("$accept", user="bob") == ["alice won the duel with bob and wins 25 points!"]

    assert await services.ledger.balance_of("id-alice") == 75
    assert await services.ledger.balance_of("id-bob") == 25


@pytest.mark.asyncio
async def test_duel_rejections(services, say, clock):
    await fund(services, alice=50, bob=50, carol=10)

    assert await say("$duel bob 0") == ["You must duel at least 1 point."]
    clock.advance(5)
    assert await say("$duel bob 60") == [
        "You don't have enough points for that duel (you have 50 points)"
    ]
    clock.advance(5)
    assert await say("$duel carol 20") == [
        "carol don't have enough points for that duel (they have 10 points)"
    ]
    clock.advance(5)
    assert await say("$duel bob 10")
    clock.advance(5)
    assert await say("$duel carol 5") == ["You already have a duel pending."]
    assert await say("$duel bob 5", user="carol") == ["That chatter already has a duel pending."]
    assert await say("$duel", user="carol") == []  # user cooldown
    clock.advance(5)
    assert await say("$duel", user="carol") == ["Usage: $duel <user> <amount>"]


@pytest.mark.asyncio
async def test_decline(services, say):
    await fund(services, alice=50, bob=50)
    await say("$duel bob 10")
    assert await say("$decline", user="bob") == ["Declined duel."]
    assert await say("$decline", user="bob") == ["There are no duels pending against you."]
    assert await services.ledger.balance_of("id-alice") == 50


@pytest.mark.asyncio
async def test_builtins(services, say):
    assert await say("$about") == [
        "Beep boop, this is gambabot running in chan with prefix $."
    ]
    assert await say("!prefix", prefix="!") == ["This channel's prefix is !"]
    assert await say("$echo hello there") == []
    assert await say("$echo hello there", permission=Permission.MOD) == ["hello there"]
