"""
Type-safe wrapper classes for Discord identifiers.

Discord snowflakes are 64-bit integers but travel as strings in JSON (and in
everything the language model sends back), so every identifier is stored as a
normalised decimal string and converted to ``int`` only at the API boundary.
"""

from __future__ import annotations

import re
from typing import Any, Union

_MENTION_RE = re.compile(r"^<[@#][!&]?(\d+)>$")


class Snowflake:
    """
    Base class for Discord snowflake wrappers.

    Accepts an int, a decimal string (surrounding whitespace ignored), a
    mention such as ``<@123>`` / ``<@!123>`` / ``<#123>``, or another wrapper
    of the same kind.

    Example:
        >>> UserID("<@!42>").to_int()
        42
        >>> str(ChannelID(7))
        '7'

    Raises:
        ValueError: If the value is not a positive integer snowflake.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        if isinstance(value, Snowflake):
            self._value = value._value
            return
        if isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        if isinstance(value, int):
            number = value
        elif isinstance(value, str):
            text = value.strip()
            match = _MENTION_RE.match(text)
            number = int(match.group(1) if match else text)
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")
        if number <= 0:
            raise ValueError(f"{type(self).__name__} must be positive, got {number}")
        self._value = str(number)

    @classmethod
    def parse(cls, value: Any) -> "Snowflake | None":
        """Return a wrapper for `value`, or None when it is not a snowflake."""
        if value is None:
            return None
        try:
            return cls(value)
        except (ValueError, TypeError):
            return None

    @classmethod
    def from_discord(cls, obj: Any) -> "Snowflake":
        """Create a wrapper from any Discord object exposing an ``id``."""
        return cls(obj.id)

    def to_int(self) -> int:
        return int(self._value)

    def __int__(self) -> int:
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class UserID(Snowflake):
    """Snowflake of a Discord user or guild member."""

    __slots__ = ()

    @property
    def mention(self) -> str:
        return f"<@{self._value}>"


class ChannelID(Snowflake):
    """Snowflake of a Discord channel."""

    __slots__ = ()


class GuildID(Snowflake):
    """Snowflake of a Discord guild."""

    __slots__ = ()
