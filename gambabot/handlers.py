from __future__ import annotations

import logging
from typing import Callable, List

from gambabot.commands import Dispatcher
from gambabot.database.repositories import UserRepository
from gambabot.errors import StoreError
from gambabot.message import IncomingMessage, OutgoingMessage

logger = logging.getLogger(__name__)

# send: (reply) -> None, e.g. TwitchApi.send


async def handle_chat_message(
    msg: IncomingMessage,
    dispatcher: Dispatcher,
    users: UserRepository,
    send: Callable[[OutgoingMessage], None],
) -> List[OutgoingMessage]:
    """Record the chatter, dispatch a command, and send any replies.

    Args:
        msg: Message built by the platform adapter.
        dispatcher: Dispatcher that runs the matching command.
        users: Repository the chatter is recorded in before dispatch.
        send: Callable used to deliver each reply.

    Returns:
        The replies produced (sent or not).

    Notes:
        - Exceptions from command handlers are logged and produce no chat
          output, so the socket loop keeps running and chat stays quiet.
        - A failed send is logged; later replies are still attempted.
    """
    if not msg.text:
        return []

    try:
        await users.remember(msg.user_id, msg.user)
    except StoreError:
        logger.exception(f"Failed to record chatter {msg.user} ({msg.user_id})")

    try:
        replies = await dispatcher.handle(msg)
    except Exception:
        logger.exception(f"[{msg.channel}] Command failed for {msg.user}: {msg.text!r}")
        return []

    for reply in replies:
        try:
            send(reply)
        except Exception:
            logger.exception(f"[{reply.channel}] Failed to send message")
    return replies
