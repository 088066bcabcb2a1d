"""
Action types and the Decision returned by the language model.

A Decision is produced once per conversational turn and consumed immediately;
it is never persisted, cached, or retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from eticket.datatypes.discord_datatypes import UserID


class ActionType(Enum):
    """Enumeration of actions the model may request."""

    NONE = "NONE"
    BAN = "BAN"
    KICK = "KICK"
    MUTE = "MUTE"
    DELETE_TICKET = "DELETE_TICKET"
    PING_OWNER = "PING_OWNER"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def coerce(cls, raw: object) -> "ActionType":
        """Map any raw value onto an ActionType; unknown values become NONE."""
        if isinstance(raw, ActionType):
            return raw
        if not isinstance(raw, str):
            return cls.NONE
        try:
            return cls(raw.strip().upper())
        except ValueError:
            return cls.NONE

    @property
    def is_sanction(self) -> bool:
        """True for actions that act on a member of the guild."""
        return self in SANCTIONS


SANCTIONS = frozenset({ActionType.BAN, ActionType.KICK, ActionType.MUTE})


@dataclass(frozen=True, slots=True)
class Decision:
    """Validated output of one model round-trip.

    Attributes:
        reply: Text shown to the user; never empty.
        action: Requested action.
        target_user_id: Member the action applies to, when one is needed.
        reason: Free-form justification, forwarded to the audit log.
        new_step: Next conversation step, or None to keep the current one.
    """

    reply: str
    action: ActionType = ActionType.NONE
    target_user_id: UserID | None = None
    reason: str | None = None
    new_step: str | None = None

    @property
    def is_noop(self) -> bool:
        return self.action is ActionType.NONE
