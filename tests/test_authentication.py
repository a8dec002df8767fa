import pytest

from pgproto.authentication import md5_hash


def test_md5():
    username = b"md5_user"
    password = b"password"
    salt = bytes([0x2A, 0x3D, 0x8F, 0xE0])
    assert md5_hash(username, password, salt) == "md562af4dd09bbb41884907a838a3233294"


def test_md5_depends_on_salt():
    username = b"md5_user"
    password = b"password"
    first = md5_hash(username, password, bytes([0x2A, 0x3D, 0x8F, 0xE0]))
    second = md5_hash(username, password, bytes([0, 0, 0, 0]))
    assert first != second
    assert len(second) == len(first)
    assert second.startswith("md5")


def test_md5_rejects_bad_salt():
    password = b"password"
    with pytest.raises(ValueError):
        md5_hash(b"md5_user", password, b"abc")