# gambabot/twitch_api.py
from __future__ import annotations

import logging
from typing import Dict, List

import requests

from gambabot.message import OutgoingMessage

HELIX = "https://api.twitch.tv/helix"

# Helix rejects chat messages longer than this
MAX_MESSAGE_LENGTH = 500

logger = logging.getLogger(__name__)


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split `text` into chunks of at most `limit` characters, preferring spaces."""
    text = text.strip()
    chunks: List[str] = []
    while len(text) > limit:
        cut = text.rfind(" ", 0, limit + 1)
        if cut <= 0:
            cut = limit
        chunks.append(text[:cut].rstrip())
        text = text[cut:].lstrip()
    if text:
        chunks.append(text)
    return chunks


class TwitchApi:
    """Lightweight wrapper for the Twitch Helix REST endpoints the bot uses.

    Features:
        • Resolve channel logins → broadcaster IDs
        • List the chatters present in each channel
        • Send chat messages, splitting overlong replies

    Notes:
        - The access token must include the `user:read:chat` and `user:write:chat` scopes.
        - Methods raise `requests.HTTPError` for non-2xx responses, except
          `current_chatter_ids`, which skips channels it cannot read.
    """

    def __init__(self, client_id: str, access_token: str, bot_user_id: str):
        """Initialize a Twitch API helper.

        Args:
            client_id: Twitch app client ID.
            access_token: OAuth user token (may start with 'oauth:').
            bot_user_id: User ID messages are sent as.
        """
        self.client_id = client_id
        self.access_token = access_token.removeprefix("oauth:")
        self.bot_user_id = str(bot_user_id)
        self._headers = {
            "Client-Id": self.client_id,
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        # login -> broadcaster user id, filled by resolve_logins()
        self.channel_ids: Dict[str, str] = {}

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    # ------------------- User Resolution -------------------

    def resolve_logins(self, logins: list[str]) -> dict[str, str]:
        """Resolve Twitch login names to their numeric user IDs and remember them.

        Args:
            logins: List of Twitch login names.

        Returns:
            Dictionary mapping login → user_id for the logins Twitch knows.
        """
        if not logins:
            return {}
        params = [("login", login) for login in logins]
        r = requests.get(
            f"{HELIX}/users", headers=self._headers, params=params, timeout=15
        )
        r.raise_for_status()
        data = r.json().get("data", [])
        resolved = {u["login"].lower(): u["id"] for u in data}
        self.channel_ids.update(resolved)

        missing = [login for login in logins if login.lower() not in resolved]
        if missing:
            logger.warning(f"Could not resolve these logins: {missing}")
        return resolved

    # ------------------- Chatters -------------------

    def get_chatters(self, broadcaster_id: str) -> dict[str, str]:
        """List everyone currently connected to a channel's chat.

        Requires the `moderator:read:chatters` scope and the bot to be a
        moderator (or the broadcaster) in that channel.

        Returns:
            Dictionary mapping user_id → login, across every page.
        """
        chatters: dict[str, str] = {}
        params = {
            "broadcaster_id": str(broadcaster_id),
            "moderator_id": self.bot_user_id,
            "first": 1000,
        }
        while True:
            r = requests.get(
                f"{HELIX}/chat/chatters", headers=self._headers, params=params, timeout=15
            )
            r.raise_for_status()
            body = r.json()
            for c in body.get("data", []):
                chatters[c["user_id"]] = c["user_login"].lower()
            cursor = body.get("pagination", {}).get("cursor")
            if not cursor:
                return chatters
            params["after"] = cursor

    def current_chatter_ids(self) -> list[str]:
        """User IDs of everyone in any resolved channel.

        Channels whose chatter list cannot be fetched are logged and skipped.
        """
        ids: set[str] = set()
        for login, broadcaster_id in self.channel_ids.items():
            try:
                ids.update(self.get_chatters(broadcaster_id))
            except requests.RequestException as e:
                logger.warning(f"Could not fetch chatters for #{login}: {e}")
        return sorted(ids)

    # ------------------- Chat Messages -------------------

    def send_message(self, broadcaster_id: str, message: str) -> dict:
        """Send one chat message via Helix.

        Args:
            broadcaster_id: Channel owner’s user ID.
            message: Message text to send (at most MAX_MESSAGE_LENGTH characters).

        Returns:
            Parsed JSON response from Twitch.

        Raises:
            requests.HTTPError: If Twitch returns a non-2xx status.
        """
        payload = {
            "broadcaster_id": str(broadcaster_id),
            "sender_id": self.bot_user_id,
            "message": message,
        }
        r = requests.post(
            f"{HELIX}/chat/messages", headers=self._headers, json=payload, timeout=15
        )
        if r.status_code >= 400:
            logger.error(f"SEND ERROR {r.status_code}: {r.text}")
        r.raise_for_status()
        return r.json()

    def send(self, message: OutgoingMessage) -> None:
        """Deliver a reply to its channel, split into as many messages as needed.

        Raises:
            KeyError: If the channel was never resolved.
            requests.HTTPError: If Twitch rejects a message.
        """
        broadcaster_id = self.channel_ids.get(message.channel.lower())
        if broadcaster_id is None:
            raise KeyError(f"Unknown channel: {message.channel}")
        for chunk in split_message(message.text):
            self.send_message(broadcaster_id, chunk)
