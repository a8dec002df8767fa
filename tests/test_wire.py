import pytest

from pgproto.wire import IsNull, ProtocolError, checked_i16, checked_i32, encode_nullable


def test_checked_i16_accepts_max():
    assert checked_i16(32767) == 32767
    assert checked_i16(0) == 0


def test_checked_i16_rejects_overflow():
    with pytest.raises(ProtocolError, match="value too large to transmit"):
        checked_i16(32768)


def test_checked_i32_accepts_max():
    assert checked_i32(2**31 - 1) == 2**31 - 1


def test_checked_i32_rejects_overflow():
    with pytest.raises(ProtocolError):
        checked_i32(2**31)


def test_protocol_error_is_value_error():
    with pytest.raises(ValueError):
        checked_i32(2**40)


def test_encode_nullable_null():
    assert encode_nullable(None) == b"\xff\xff\xff\xff"


def test_encode_nullable_value():
    assert encode_nullable(b"abc") == b"\x00\x00\x00\x03abc"


@pytest.mark.parametrize("value", [b"", b"x", b"hello world", bytes(range(256))])
def test_encode_nullable_round_trip(value):
    out = encode_nullable(value)
    assert int.from_bytes(out[:4], "big", signed=True) == len(value)
    assert out[4:] == value


def test_is_null_members_distinct():
    assert IsNull("yes") is IsNull.YES
    assert IsNull("no") is IsNull.NO