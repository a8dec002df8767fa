import struct

import pytest

from pgproto.scalars import (
    Varbit,
    bool_from_sql,
    bool_to_sql,
    bytea_from_sql,
    bytea_to_sql,
    char_from_sql,
    char_to_sql,
    date_from_sql,
    date_to_sql,
    float4_from_sql,
    float4_to_sql,
    float8_from_sql,
    float8_to_sql,
    hstore_from_sql,
    hstore_to_sql,
    int2_from_sql,
    int2_to_sql,
    int4_from_sql,
    int4_to_sql,
    int8_from_sql,
    int8_to_sql,
    lquery_from_sql,
    lquery_to_sql,
    lsn_from_sql,
    lsn_to_sql,
    ltree_from_sql,
    ltree_to_sql,
    ltxtquery_from_sql,
    ltxtquery_to_sql,
    macaddr_from_sql,
    macaddr_to_sql,
    oid_from_sql,
    oid_to_sql,
    text_from_sql,
    text_to_sql,
    time_from_sql,
    time_to_sql,
    timestamp_from_sql,
    timestamp_to_sql,
    uuid_from_sql,
    uuid_to_sql,
    varbit_from_sql,
    varbit_to_sql,
)
from pgproto.wire import ProtocolError


def test_bool():
    assert bool_from_sql(bool_to_sql(True)) is True
    assert bool_from_sql(bool_to_sql(False)) is False
    assert bool_to_sql(True) == b"\x01"


def test_bool_wrong_size():
    with pytest.raises(ProtocolError, match="invalid buffer size"):
        bool_from_sql(b"\x01\x00")


def test_int2():
    buf = int2_to_sql(0x0102)
    assert buf == b"\x01\x02"
    assert int2_from_sql(buf) == 0x0102


def test_int4():
    buf = int4_to_sql(0x0102_0304)
    assert buf == b"\x01\x02\x03\x04"
    assert int4_from_sql(buf) == 0x0102_0304


def test_int8():
    buf = int8_to_sql(0x0102_0304_0506_0708)
    assert buf == bytes(range(1, 9))
    assert int8_from_sql(buf) == 0x0102_0304_0506_0708


def test_float4():
    assert float4_from_sql(float4_to_sql(10343.95)) == pytest.approx(10343.95, rel=1e-6)
    assert float4_to_sql(1.5) == b"\x3f\xc0\x00\x00"


def test_float8():
    assert float8_from_sql(float8_to_sql(10343.95)) == 10343.95


def test_negative_values_round_trip():
    assert int2_from_sql(int2_to_sql(-2)) == -2
    assert char_from_sql(char_to_sql(-5)) == -5
    assert int4_to_sql(-1) == b"\xff\xff\xff\xff"


def test_unsigned_values():
    assert oid_from_sql(oid_to_sql(0xFFFF_FFFF)) == 0xFFFF_FFFF
    assert lsn_from_sql(lsn_to_sql(2**64 - 1)) == 2**64 - 1


def test_out_of_range_value():
    with pytest.raises(ProtocolError):
        int2_to_sql(2**15)


def test_short_buffer():
    with pytest.raises(ProtocolError, match="failed to fill whole buffer"):
        int4_from_sql(b"\x00\x01")


def test_trailing_bytes():
    with pytest.raises(ProtocolError, match="invalid buffer size"):
        int4_from_sql(b"\x00\x00\x00\x01\x00")


def test_time_types():
    assert timestamp_from_sql(timestamp_to_sql(-123456789)) == -123456789
    assert date_from_sql(date_to_sql(7000)) == 7000
    assert time_from_sql(time_to_sql(86_399_999_999)) == 86_399_999_999
    with pytest.raises(ProtocolError, match="timestamp not drained"):
        timestamp_from_sql(b"\x00" * 9)
    with pytest.raises(ProtocolError, match="date not drained"):
        date_from_sql(b"\x00" * 5)
    with pytest.raises(ProtocolError, match="time not drained"):
        time_from_sql(b"\x00" * 9)


def test_text_and_bytea():
    assert text_to_sql("héllo") == "héllo".encode("utf-8")
    assert text_from_sql("héllo".encode("utf-8")) == "héllo"
    assert bytea_from_sql(bytea_to_sql(b"\x00\xff")) == b"\x00\xff"
    with pytest.raises(ProtocolError):
        text_from_sql(b"\xff\xfe")


def test_macaddr():
    mac = bytes([0x02, 0x00, 0x00, 0x00, 0x00, 0x01])
    assert macaddr_from_sql(macaddr_to_sql(mac)) == mac
    with pytest.raises(ProtocolError, match="macaddr length mismatch"):
        macaddr_from_sql(b"\x00" * 5)
    with pytest.raises(ValueError):
        macaddr_to_sql(b"\x00" * 7)


def test_uuid():
    value = bytes(range(16))
    assert uuid_from_sql(uuid_to_sql(value)) == value
    with pytest.raises(ProtocolError, match="uuid size mismatch"):
        uuid_from_sql(b"\x00" * 15)


def test_hstore():
    entries = {"hello": "world", "hola": None}
    buf = hstore_to_sql(entries)
    assert dict(hstore_from_sql(buf)) == entries


def test_hstore_layout():
    buf = hstore_to_sql([("a", None)])
    assert buf == struct.pack(">i", 1) + struct.pack(">i", 1) + b"a" + struct.pack(">i", -1)


def test_hstore_negative_count():
    with pytest.raises(ProtocolError, match="invalid entry count"):
        hstore_from_sql(struct.pack(">i", -1))


def test_hstore_trailing_data():
    buf = hstore_to_sql({}) + b"\x00"
    with pytest.raises(ProtocolError, match="invalid buffer size"):
        hstore_from_sql(buf)


def test_varbit():
    length = 12
    bits = bytes([0b0010_1011, 0b0000_1111])
    out = varbit_from_sql(varbit_to_sql(length, bits))
    assert len(out) == length
    assert out.data == bits
    assert out == Varbit(12, bits)


def test_varbit_errors():
    with pytest.raises(ProtocolError, match="varbit < 0"):
        varbit_from_sql(struct.pack(">i", -1))
    with pytest.raises(ProtocolError, match="varbit mismatch"):
        varbit_from_sql(struct.pack(">i", 12) + b"\x00")


def test_ltree_sql():
    assert ltree_to_sql("A.B.C") == b"\x01" + b"A.B.C"


def test_ltree_str():
    assert ltree_from_sql(b"\x01" + b"A.B.C") == "A.B.C"


def test_ltree_wrong_version():
    with pytest.raises(ProtocolError, match="ltree version 1 only supported"):
        ltree_from_sql(b"\x02" + b"A.B.C")


def test_lquery_sql():
    assert lquery_to_sql("A.B.C") == b"\x01" + b"A.B.C"


def test_lquery_str():
    assert lquery_from_sql(b"\x01" + b"A.B.C") == "A.B.C"


def test_lquery_wrong_version():
    with pytest.raises(ProtocolError, match="lquery version 1 only supported"):
        lquery_from_sql(b"\x02" + b"A.B.C")


def test_ltxtquery_sql():
    assert ltree_to_sql("a & b*") == b"\x01" + b"a & b*"
    assert ltxtquery_to_sql("a & b*") == b"\x01" + b"a & b*"


def test_ltxtquery_str():
    assert ltree_from_sql(b"\x01" + b"a & b*") == "a & b*"
    assert ltxtquery_from_sql(b"\x01" + b"a & b*") == "a & b*"


def test_ltxtquery_wrong_version():
    with pytest.raises(ProtocolError):
        ltree_from_sql(b"\x02" + b"a & b*")
    with pytest.raises(ProtocolError, match="ltxtquery version 1 only supported"):
        ltxtquery_from_sql(b"\x02" + b"a & b*")


def test_ltree_empty_buffer():
    with pytest.raises(ProtocolError):
        ltree_from_sql(b"")