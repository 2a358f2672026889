from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from api.index import create_app
from core.config import ServerConfig
from core.ratelimit import NO_REQUESTS_LEFT_MESSAGE, FixedWindowRateLimiter
from fakes import FakeProvider, RecordingLimiter, UnreachableLimiter
from limits.storage import MemoryStorage

ENDPOINT = "/api/generateImage"


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def factory_calls():
    return []


def build_app(provider, factory_calls, rate_limiter=None):
    def factory(user_api_key):
        factory_calls.append(user_api_key)
        return provider

    app = create_app(
        config=ServerConfig(together_api_key="server-key"),
        provider_factory=factory,
        rate_limiter=rate_limiter,
    )
    app.testing = True
    return app


@pytest.fixture
def client(provider, factory_calls):
    return build_app(provider, factory_calls).test_client()


def test_success_returns_first_image(client, provider):
    resp = client.post(ENDPOINT, json={"prompt": "a red fox in snow", "iterativeMode": False})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["b64_json"] == provider.image["b64_json"]
    assert body["timings"] == {"inference": 0.42}
    assert provider.calls == [("a red fox in snow", None)]


def test_iterative_mode_uses_fixed_seed(client, provider):
    client.post(ENDPOINT, json={"prompt": "a", "iterativeMode": True})
    client.post(ENDPOINT, json={"prompt": "b", "iterativeMode": True})
    assert provider.calls == [("a", 123), ("b", 123)]


def test_settings_fields_are_ignored(client, provider):
    resp = client.post(ENDPOINT, json={
        "prompt": "p",
        "iterativeMode": False,
        "aspectRatio": "16:9",
        "steps": 50,
    })
    assert resp.status_code == 200
    assert provider.calls == [("p", None)]


@pytest.mark.parametrize("body", [
    {"iterativeMode": False},
    {"prompt": "p"},
    {"prompt": 42, "iterativeMode": False},
    {"prompt": "p", "iterativeMode": "true"},
    {"prompt": "p", "iterativeMode": False, "userAPIKey": 5},
])
def test_invalid_body_rejected_before_external_call(client, provider, factory_calls, body):
    resp = client.post(ENDPOINT, json=body)
    assert resp.status_code == 400
    assert "error" in resp.get_json()
    assert provider.calls == []
    assert factory_calls == []


def test_non_json_body_rejected(client, provider):
    resp = client.post(ENDPOINT, data="prompt=p", content_type="text/plain")
    assert resp.status_code == 400
    assert provider.calls == []


def test_json_body_without_content_type_accepted(client, provider):
    resp = client.post(ENDPOINT, data='{"prompt": "p", "iterativeMode": false}')
    assert resp.status_code == 200
    assert provider.calls == [("p", None)]


def test_missing_prompt_error_names_field(client):
    resp = client.post(ENDPOINT, json={"iterativeMode": True})
    assert "prompt" in resp.get_json()["error"]


def test_external_failure_returns_structured_error(provider, factory_calls):
    provider.error = RuntimeError("upstream exploded")
    client = build_app(provider, factory_calls).test_client()

    resp = client.post(ENDPOINT, json={"prompt": "p", "iterativeMode": False})

    assert resp.status_code == 500
    assert resp.get_json() == {"error": "upstream exploded"}


def test_user_key_is_passed_to_provider_factory(client, factory_calls):
    client.post(ENDPOINT, json={"prompt": "p", "iterativeMode": False, "userAPIKey": " mine "})
    client.post(ENDPOINT, json={"prompt": "p", "iterativeMode": False, "userAPIKey": ""})
    client.post(ENDPOINT, json={"prompt": "p", "iterativeMode": False})
    assert factory_calls == ["mine", None, None]


def test_101st_request_from_same_ip_is_rate_limited(provider, factory_calls):
    limiter = FixedWindowRateLimiter(MemoryStorage())
    client = build_app(provider, factory_calls, rate_limiter=limiter).test_client()
    headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
    body = {"prompt": "a red fox in snow", "iterativeMode": False}

    for _ in range(100):
        assert client.post(ENDPOINT, json=body, headers=headers).status_code == 200

    resp = client.post(ENDPOINT, json=body, headers=headers)
    assert resp.status_code == 429
    assert resp.get_data(as_text=True) == NO_REQUESTS_LEFT_MESSAGE
    assert len(provider.calls) == 100

    other = client.post(ENDPOINT, json=body, headers={"X-Forwarded-For": "198.51.100.1"})
    assert other.status_code == 200


def test_limiter_not_consulted_with_user_key(provider, factory_calls):
    limiter = RecordingLimiter(capacity=0)
    client = build_app(provider, factory_calls, rate_limiter=limiter).test_client()

    resp = client.post(ENDPOINT, json={"prompt": "p", "iterativeMode": False, "userAPIKey": "k"})

    assert resp.status_code == 200
    assert limiter.hits == {}


def test_limiter_keyed_by_resolved_ip(provider, factory_calls):
    limiter = RecordingLimiter()
    client = build_app(provider, factory_calls, rate_limiter=limiter).test_client()
    body = {"prompt": "p", "iterativeMode": False}

    client.post(ENDPOINT, json=body, headers={"X-Real-IP": "192.0.2.5"})
    client.post(ENDPOINT, json=body)

    assert limiter.hits == {"192.0.2.5": 1, "0.0.0.0": 1}


def test_invalid_body_does_not_consume_quota(provider, factory_calls):
    limiter = RecordingLimiter()
    client = build_app(provider, factory_calls, rate_limiter=limiter).test_client()
    client.post(ENDPOINT, json={"prompt": "p"})
    assert limiter.hits == {}


def test_health_reports_rate_limiting(provider, factory_calls):
    plain = build_app(provider, factory_calls).test_client()
    assert plain.get("/api/health").get_json() == {"ok": True, "rateLimited": False}

    limited = build_app(provider, factory_calls, rate_limiter=RecordingLimiter()).test_client()
    assert limited.get("/api/health").get_json()["rateLimited"] is True


def test_storage_uri_enables_limiter():
    app = create_app(
        config=ServerConfig(ratelimit_storage_uri="memory://"),
        provider_factory=lambda key: FakeProvider(),
    )
    assert isinstance(app.extensions["keystroke"]["rate_limiter"], FixedWindowRateLimiter)


def test_unreachable_quota_store_returns_structured_error(provider, factory_calls):
    client = build_app(provider, factory_calls, rate_limiter=UnreachableLimiter()).test_client()

    resp = client.post(ENDPOINT, json={"prompt": "p", "iterativeMode": False})

    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Error 111 connecting to quota store"}
    assert provider.calls == []
