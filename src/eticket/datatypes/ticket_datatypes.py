"""
Data structures for ticket sessions, the staff roster and per-turn context.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from eticket.datatypes.discord_datatypes import ChannelID, UserID

INITIAL_STEP = "init"
# Step assumed for ticket channels that exist on Discord but not in the registry
RECOVERED_STEP = "conversation"


class TicketState(Enum):
    OPEN = "open"
    CLOSING = "closing"


@dataclass(slots=True)
class TicketSession:
    """Conversation state of one ticket channel.

    Attributes:
        channel_id: Ticket channel; the registry key.
        step: Free-form label of the current conversation phase.
        reason: Stated purpose of the ticket, if known.
        state: OPEN while the conversation runs, CLOSING once deletion is scheduled.
        opener_id: Member who opened the ticket.
        ephemeral: True for sessions rebuilt from the channel name after a
            restart; those are never stored while OPEN.
    """

    channel_id: ChannelID
    step: str = INITIAL_STEP
    reason: str | None = None
    state: TicketState = TicketState.OPEN
    opener_id: UserID | None = None
    ephemeral: bool = False

    @property
    def is_open(self) -> bool:
        return self.state is TicketState.OPEN

    @property
    def is_closing(self) -> bool:
        return self.state is TicketState.CLOSING


@dataclass(frozen=True, slots=True)
class StaffEntry:
    """A non-owner identity allowed to use privileged commands."""

    id: UserID
    display_name: str

    @property
    def mention(self) -> str:
        return self.id.mention


@dataclass(frozen=True, slots=True)
class ChannelInfo:
    id: ChannelID
    name: str
    type: str


@dataclass(frozen=True, slots=True)
class TranscriptLine:
    author_id: UserID
    author_name: str
    content: str
    is_bot: bool = False


@dataclass(frozen=True, slots=True)
class ConversationContext:
    """Everything the model sees for one turn, rebuilt from scratch every turn.

    ``staff`` and ``channels`` are sorted by id so the serialised prompt is
    deterministic; ``transcript`` is chronological, oldest first.
    """

    step: str
    owner_id: UserID | None
    author_id: UserID
    latest_message: str
    staff: Tuple[StaffEntry, ...] = ()
    channels: Tuple[ChannelInfo, ...] = ()
    transcript: Tuple[TranscriptLine, ...] = ()
    attachment_count: int = 0
    reason: str | None = None
    guild_name: str = field(default="")
