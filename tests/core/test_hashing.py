"""IP 哈希测试"""

from eventpulse.core.hashing import hash_ip


def test_hash_is_deterministic_per_salt():
    first = hash_ip("198.51.100.4", "salt-a")
    assert first == hash_ip("198.51.100.4", "salt-a")
    assert first != hash_ip("198.51.100.4", "salt-b")
    assert len(first) == 64
    assert "198.51.100.4" not in first


def test_missing_ip_returns_none():
    assert hash_ip(None, "salt") is None
    assert hash_ip("", "salt") is None
