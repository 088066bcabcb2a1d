import pytest

from eticket.datatypes.discord_datatypes import ChannelID, GuildID, UserID


class DummyObj:
    def __init__(self, id_val):
        self.id = id_val


def test_userid_from_int_and_str_and_equality_and_hash():
    u1 = UserID(12345)
    assert int(u1) == 12345
    assert str(u1) == "12345"

    u2 = UserID(" 12345 ")
    assert u1 == u2

    u3 = UserID.from_discord(DummyObj(67890))
    assert isinstance(u3, UserID)
    assert u3.to_int() == 67890

    # equality with raw types
    assert u1 == 12345
    assert u1 == "12345"

    s = {u1, u2, u3}
    assert len(s) == 2


def test_userid_accepts_mentions():
    assert UserID("<@42>") == 42
    assert UserID("<@!42>") == 42
    assert ChannelID("<#7>") == 7
    assert UserID("<@42>").mention == "<@42>"


def test_userid_copy_constructor():
    original = UserID(5)
    assert UserID(original) == original


@pytest.mark.parametrize("value", [[], None, 0, -3, True, "abc", "12a", ""])
def test_userid_invalid(value):
    with pytest.raises((ValueError, TypeError)):
        UserID(value)  # type: ignore[arg-type]


def test_parse_returns_none_for_garbage():
    assert UserID.parse(None) is None
    assert UserID.parse("not-an-id") is None
    assert UserID.parse({"id": 1}) is None
    assert UserID.parse("900") == 900


def test_different_kinds_are_not_equal():
    assert UserID(10) != ChannelID(10)
    assert GuildID(10) != UserID(10)
    assert repr(GuildID(10)) == "GuildID('10')"
