from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from limits.storage import MemoryStorage

from core.ratelimit import FALLBACK_IP_ADDRESS, FixedWindowRateLimiter, resolve_client_ip


def test_forwarded_for_first_entry_wins():
    headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "X-Real-IP": "192.0.2.1"}
    assert resolve_client_ip(headers) == "203.0.113.7"


def test_real_ip_used_without_forwarded_for():
    assert resolve_client_ip({"X-Real-IP": "192.0.2.1"}) == "192.0.2.1"


def test_fallback_ip_when_no_headers():
    assert resolve_client_ip({}) == FALLBACK_IP_ADDRESS == "0.0.0.0"


def test_fixed_window_allows_capacity_then_denies():
    limiter = FixedWindowRateLimiter(MemoryStorage(), capacity=3)

    assert [limiter.limit("ip-1") for _ in range(4)] == [True, True, True, False]


def test_identifiers_have_separate_quota():
    limiter = FixedWindowRateLimiter(MemoryStorage(), capacity=1)
    assert limiter.limit("a") is True
    assert limiter.limit("a") is False
    assert limiter.limit("b") is True


def test_default_window_is_100_per_1440_minutes():
    limiter = FixedWindowRateLimiter(MemoryStorage())
    assert limiter.item.amount == 100
    assert limiter.item.get_expiry() == 1440 * 60
    assert limiter.prefix == "keystrokeimagen"


def test_from_uri_builds_memory_limiter():
    limiter = FixedWindowRateLimiter.from_uri("memory://", capacity=2)
    assert limiter.limit("x") is True
