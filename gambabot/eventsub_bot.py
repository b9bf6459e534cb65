from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Iterable, Optional, Set

import requests
import websockets

from gambabot.message import IncomingMessage
from gambabot.permission import Permission
from gambabot.services.logger import LogWriter
from gambabot.twitch_api import HELIX, TwitchApi

WS_URL = "wss://eventsub.wss.twitch.tv/ws"

logger = logging.getLogger(__name__)

# EventSub badge set_id -> permission level
BADGE_PERMISSIONS: Dict[str, Permission] = {
    "broadcaster": Permission.ADMIN,
    "moderator": Permission.MOD,
    "vip": Permission.VIP,
    "founder": Permission.ABOVE_NORMAL,
    "subscriber": Permission.ABOVE_NORMAL,
}

MessageCallback = Callable[[IncomingMessage], Awaitable[None]]


def permission_from_badges(
    badges: Iterable[dict], login: str, owners: Iterable[str] = ()
) -> Permission:
    """Return the highest permission granted by a chatter's badges.

    Logins listed in `owners` are always OWNER.
    """
    if login.lower() in {o.lower() for o in owners}:
        return Permission.OWNER
    level = Permission.NORMAL
    for badge in badges or ():
        level = max(level, BADGE_PERMISSIONS.get(badge.get("set_id", ""), Permission.NORMAL))
    return level


def _parse_timestamp(raw: Optional[str]) -> datetime:
    if raw:
        try:
            # Twitch sends nanosecond precision; fromisoformat wants at most micro
            head, _, frac = raw.rstrip("Z").partition(".")
            stamp = f"{head}.{frac[:6]}" if frac else head
            return datetime.fromisoformat(stamp).replace(tzinfo=timezone.utc)
        except ValueError:
            logger.debug(f"Unparsable message timestamp {raw!r}")
    return datetime.now(timezone.utc)


class EventSubChatBot:
    """Twitch bot that listens via EventSub WebSocket and hands messages to a callback.

    Responsibilities:
        - Resolve channel logins → broadcaster IDs (through TwitchApi).
        - Maintain a WebSocket session for EventSub notifications.
        - Subscribe to `channel.chat.message` per configured channel.
        - Turn each chat event into an IncomingMessage, write it to the
          transcript, and run the callback on its own task.
    """

    def __init__(
        self,
        api: TwitchApi,
        channel_logins: list[str],
        on_message: Optional[MessageCallback] = None,
        prefix_for: Callable[[str], str] = lambda _channel: "$",
        owners: Iterable[str] = (),
        transcript: Optional[LogWriter] = None,
    ):
        self.api = api
        self.channel_logins = [c.lower() for c in channel_logins]
        self.on_message = on_message
        self.prefix_for = prefix_for
        self.owners = tuple(o.lower() for o in owners)
        self.transcript = transcript

        self._ws = None
        self._session_id: Optional[str] = None
        self._sub_ids: Dict[str, str] = {}  # login -> subscription id
        self._tasks: Set[asyncio.Task] = set()

    @property
    def bot_user_id(self) -> str:
        return self.api.bot_user_id

    # ---------------- lifecycle ----------------

    async def start(self) -> None:
        """Resolve channels, connect WebSocket, subscribe, and process events."""
        self.api.resolve_logins(self.channel_logins)
        if not self.api.channel_ids:
            raise RuntimeError("No valid channels to subscribe to.")
        logger.info(f"Resolved channels: {self.api.channel_ids}")
        await self._run_ws_loop()

    async def stop(self) -> None:
        """Close the websocket if open and wait for in-flight messages."""
        if self._ws:
            await self._ws.close()
            self._ws = None
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # ---------------- websocket loop ----------------

    async def _run_ws_loop(self) -> None:
        async with websockets.connect(WS_URL, ping_interval=None) as ws:
            self._ws = ws

            # Expect WELCOME
            frame = json.loads(await ws.recv())
            if frame.get("metadata", {}).get("message_type") != "session_welcome":
                raise RuntimeError(f"Unexpected first message: {frame}")
            self._session_id = frame["payload"]["session"]["id"]
            keepalive = frame["payload"]["session"]["keepalive_timeout_seconds"]
            logger.info(f"WS connected. session={self._session_id} keepalive={keepalive}s")

            # Subscribe per channel (best effort)
            for login in list(self.api.channel_ids):
                try:
                    self._subscribe_chat_for(login)
                except requests.RequestException:
                    logger.exception(f"Subscribe failed for #{login}")

            while True:
                await self._handle_frame(json.loads(await ws.recv()))

    async def _handle_frame(self, frame: dict) -> None:
        mtype = frame.get("metadata", {}).get("message_type")
        if mtype == "session_keepalive":
            return
        if mtype == "revocation":
            logger.warning(
                f"Subscription revoked: {frame.get('payload', {}).get('subscription')}"
            )
            return
        if mtype != "notification":
            return

        if frame["payload"]["subscription"]["type"] == "channel.chat.message":
            self._on_chat_message(frame["payload"]["event"])

    # ---------------- events ----------------

    def to_message(self, event: dict) -> Optional[IncomingMessage]:
        """Build an IncomingMessage from a `channel.chat.message` event.

        Returns None (and logs) when the event is missing fields.
        """
        try:
            channel_login = event["broadcaster_user_login"].lower()
            user_login = event["chatter_user_login"].lower()
            user_id = str(event["chatter_user_id"])
            text = event["message"]["text"]
        except KeyError as e:
            logger.warning(f"Missing key in chat event: {e!s}. Event: {event}")
            return None

        return IncomingMessage(
            text=text,
            channel=channel_login,
            user=user_login,
            user_id=user_id,
            prefix=self.prefix_for(channel_login),
            permission=permission_from_badges(event.get("badges", []), user_login, self.owners),
            timestamp=_parse_timestamp(event.get("message_timestamp")),
        )

    def _on_chat_message(self, event: dict) -> Optional[asyncio.Task]:
        """Handle a single `channel.chat.message` event without blocking the loop."""
        msg = self.to_message(event)
        if msg is None:
            return None

        logger.info(f"[{msg.channel}] {msg.user}: {msg.text}")
        if self.transcript is not None:
            try:
                self.transcript.log_message(
                    msg.channel, msg.user, msg.text, when=msg.timestamp
                )
            except OSError:
                logger.exception("Failed to write chat transcript")

        # the bot's own replies come back as chat events too
        if msg.user_id == self.bot_user_id:
            return None
        if self.on_message is None:
            return None

        task = asyncio.create_task(self.on_message(msg))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ---------------- REST helpers ----------------

    def _subscribe_chat_for(self, login: str) -> None:
        """Create EventSub subscription for `channel.chat.message` for one channel."""
        bid = self.api.channel_ids.get(login)
        if not bid:
            return
        payload = {
            "type": "channel.chat.message",
            "version": "1",
            "condition": {
                "broadcaster_user_id": str(bid),
                "user_id": self.bot_user_id,
            },
            "transport": {"method": "websocket", "session_id": self._session_id},
        }
        r = requests.post(
            f"{HELIX}/eventsub/subscriptions",
            headers=self.api.headers,
            data=json.dumps(payload),
            timeout=15,
        )
        if r.status_code >= 400:
            logger.error(f"SUBSCRIBE ERROR {login} {r.status_code}: {r.text}")
            r.raise_for_status()
        self._sub_ids[login] = r.json()["data"][0]["id"]
        logger.info(f"Subscribed to #{login} ({bid})")
