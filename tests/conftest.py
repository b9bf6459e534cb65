import pytest
import pytest_asyncio

from gambabot.bootstrap import bootstrap
from gambabot.config import BotConfig
from gambabot.database import Database
from gambabot.database.repositories import CooldownStore, DuelRepository, Ledger, UserRepository
from gambabot.message import IncomingMessage
from gambabot.permission import Permission


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FixedCoin:
    """Returns queued results in order, then `default`."""

    def __init__(self, *results, default=True):
        self.results = list(results)
        self.default = default
        self.flips = 0

    def flip(self):
        self.flips += 1
        if self.results:
            return self.results.pop(0)
        return self.default


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def coin():
    return FixedCoin()


@pytest.fixture
def config(tmp_path):
    return BotConfig(
        client_id="cid",
        access_token="token",
        bot_user_id="42",
        bot_login="gambabot",
        initial_channels=("chan",),
        database_path=str(tmp_path / "bot.db"),
        log_directory=str(tmp_path / "logs"),
    )


@pytest_asyncio.fixture
async def db(tmp_path):
    database = Database(tmp_path / "test.db")
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
def users(db, clock):
    return UserRepository(db, clock)


@pytest.fixture
def ledger(db, clock):
    return Ledger(db, clock)


@pytest.fixture
def duel_repo(db, clock):
    return DuelRepository(db, clock)


@pytest.fixture
def cooldowns(db, clock):
    return CooldownStore(db, clock)


@pytest_asyncio.fixture
async def services(config, db, coin, clock):
    return await bootstrap(config, db=db, coin=coin, clock=clock)


@pytest.fixture
def make_msg():
    def _make(text, user="alice", user_id=None, channel="chan", prefix="$",
              permission=Permission.NORMAL):
        return IncomingMessage(
            text=text,
            channel=channel,
            user=user,
            user_id=user_id or f"id-{user}",
            prefix=prefix,
            permission=permission,
        )

    return _make


@pytest.fixture
def env_setup(monkeypatch, tmp_path):
    # Keep tests isolated from your real env
    for key in (
        "INITIAL_CHANNELS",
        "PREFIX",
        "CHANNEL_PREFIXES",
        "OWNERS",
        "DATABASE_PATH",
        "GRANT_INTERVAL_SECONDS",
        "GRANT_AMOUNT",
        "GRANT_INACTIVE_AMOUNT",
        "DUEL_SWEEP_SECONDS",
        "TWITCH_BOT_LOGIN",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("TWITCH_CLIENT_ID", "cid")
    monkeypatch.setenv("TWITCH_ACCESS_TOKEN", "token")
    monkeypatch.setenv("TWITCH_BOT_ID", "123")
    monkeypatch.setenv("LOG_DIRECTORY", str(tmp_path / "logs"))
    yield
