# gambabot/app.py
from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import Awaitable, Callable, List

from gambabot.bootstrap import Services, bootstrap
from gambabot.config import BotConfig, load_config
from gambabot.eventsub_bot import EventSubChatBot
from gambabot.gamba import run_expiry_sweep
from gambabot.handlers import handle_chat_message
from gambabot.message import IncomingMessage
from gambabot.services import LogWriter, setup_logging
from gambabot.twitch_api import TwitchApi

logger = logging.getLogger(__name__)


def _make_command_bridge(
    api: TwitchApi, services: Services
) -> Callable[[IncomingMessage], Awaitable[None]]:
    """Create a coroutine that hands adapter messages to the command handler.

    Args:
        api: Helix wrapper used to deliver replies.
        services: Shared dispatcher and repositories.

    Returns:
        Coroutine function accepting an IncomingMessage.
    """

    async def _bridge(msg: IncomingMessage) -> None:
        await handle_chat_message(
            msg,
            dispatcher=services.dispatcher,
            users=services.users,
            send=api.send,
        )

    return _bridge


def build_bot(config: BotConfig, services: Services) -> EventSubChatBot:
    """Construct and wire the EventSubChatBot from config and shared services."""
    api = TwitchApi(
        client_id=config.client_id,
        access_token=config.access_token,
        bot_user_id=config.bot_user_id,
    )
    # lurkers in any joined channel get the inactive grant
    services.granter.chatters = api.current_chatter_ids
    return EventSubChatBot(
        api=api,
        channel_logins=list(config.initial_channels),
        on_message=_make_command_bridge(api, services),
        prefix_for=config.prefix_for,
        owners=config.owners,
        transcript=LogWriter(config.log_directory),
    )


def start_background_tasks(config: BotConfig, services: Services) -> List[asyncio.Task]:
    """Start the point granter and (unless disabled) the duel expiry sweep."""
    tasks = [asyncio.create_task(services.granter.run(), name="point-granter")]
    if config.duel_sweep_interval > 0:
        tasks.append(
            asyncio.create_task(
                run_expiry_sweep(services.duels, config.duel_sweep_interval),
                name="duel-sweep",
            )
        )
    return tasks


async def _run_with_signals(coro: Awaitable[None]) -> None:
    """Run a coroutine until completion, handling Ctrl+C/SIGTERM gracefully."""
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _request_stop(*_: object) -> None:
        stop_event.set()

    with contextlib.ExitStack() as stack:
        for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
            if sig is None:
                continue
            try:
                loop.add_signal_handler(sig, _request_stop)
                stack.callback(loop.remove_signal_handler, sig)
            except NotImplementedError:
                # Windows event loops do not support signal handlers
                pass

        task = asyncio.create_task(coro)
        waiter = asyncio.create_task(stop_event.wait())

        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)

        waiter.cancel()
        if stop_event.is_set():
            logger.info("Stop requested, shutting down")
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        else:
            # surface exceptions from the bot
            task.result()


async def _main(config: BotConfig) -> None:
    services = await bootstrap(config)
    bot = build_bot(config, services)
    background = start_background_tasks(config, services)
    try:
        await _run_with_signals(bot.start())
    finally:
        for t in background:
            t.cancel()
        await asyncio.gather(*background, return_exceptions=True)
        await bot.stop()
        await services.close()


def run() -> None:
    """Entry point used by main.py."""
    config = load_config()
    setup_logging(config.log_level)
    try:
        asyncio.run(_main(config))
    except KeyboardInterrupt:
        pass
    except Exception:
        logger.exception("Unhandled exception during run()")
        raise
