"""
In-memory registry of ticket sessions keyed by channel.

Sessions are not durable: a restart forgets every step. Channels whose name
still looks like a ticket are picked up again by the controller.

Turns on the same channel must not interleave (the step update is a
read-modify-write across an await on the model), so the registry also hands
out one ``asyncio.Lock`` per channel. Different channels never share a lock.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Iterator, Union

from eticket.datatypes.discord_datatypes import ChannelID
from eticket.datatypes.ticket_datatypes import TicketSession
from eticket.util.logger import get_logger

logger = get_logger("session_registry")

ChannelKey = Union[ChannelID, int, str]


class SessionRegistry:
    """channel id -> TicketSession, plus per-channel turn locks."""

    def __init__(self) -> None:
        self._sessions: Dict[ChannelID, TicketSession] = {}
        self._locks: Dict[ChannelID, asyncio.Lock] = {}

    def get(self, channel_id: ChannelKey) -> TicketSession | None:
        return self._sessions.get(ChannelID(channel_id))

    def put(self, channel_id: ChannelKey, session: TicketSession) -> None:
        key = ChannelID(channel_id)
        if key != session.channel_id:
            raise ValueError(f"Session for channel {session.channel_id} stored under {key}")
        if key in self._sessions:
            logger.debug("[SESSIONS] Replacing session for channel %s", key)
        self._sessions[key] = session

    def delete(self, channel_id: ChannelKey) -> TicketSession | None:
        """Remove a session and its lock; missing entries are ignored."""
        key = ChannelID(channel_id)
        session = self._sessions.pop(key, None)
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]
        if session is not None:
            logger.debug("[SESSIONS] Removed session for channel %s", key)
        return session

    def lock(self, channel_id: ChannelKey) -> asyncio.Lock:
        """Return the turn lock for a channel, creating it on first use."""
        key = ChannelID(channel_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def sessions(self) -> Iterator[TicketSession]:
        return iter(list(self._sessions.values()))

    def __contains__(self, channel_id: object) -> bool:
        try:
            return ChannelID(channel_id) in self._sessions  # type: ignore[arg-type]
        except ValueError:
            return False

    def __len__(self) -> int:
        return len(self._sessions)
