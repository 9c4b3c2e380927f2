"""Tests for the WaSender delivery client."""

import asyncio
import json

import httpx
import pytest

from app.core.exceptions import DeliveryFailed, RateLimited
from app.services.whatsapp_service import WhatsAppService


class ScriptedProvider:
    """MockTransport handler replaying a fixed list of responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def make_service(provider, sleeps, **kwargs):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    return WhatsAppService(
        api_key="live-key",
        base_url="https://wasender.test/api",
        max_attempts=3,
        base_delay=1.0,
        timeout=10.0,
        default_retry_after=60,
        transport=httpx.MockTransport(provider),
        sleep=fake_sleep,
        **kwargs,
    )


def test_success_posts_bearer_json():
    provider = ScriptedProvider(httpx.Response(200, json={"success": True, "id": "m1"}))
    sleeps = []
    service = make_service(provider, sleeps)

    result = asyncio.run(service.send_text("+2348012345678", "hello"))

    assert result == {"success": True, "id": "m1"}
    assert sleeps == []
    request = provider.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://wasender.test/api/send-message"
    assert request.headers["Authorization"] == "Bearer live-key"
    assert json.loads(request.content) == {"to": "2348012345678", "text": "hello"}


def test_server_errors_retry_with_backoff():
    provider = ScriptedProvider(
        httpx.Response(503),
        httpx.Response(503),
        httpx.Response(200, json={"success": True}),
    )
    sleeps = []
    service = make_service(provider, sleeps)

    asyncio.run(service.send_text("2348012345678", "hi"))

    assert len(provider.requests) == 3
    assert sleeps == [1.0, 2.0]


def test_server_errors_exhaust_attempts():
    provider = ScriptedProvider(httpx.Response(500), httpx.Response(502), httpx.Response(503))
    sleeps = []
    service = make_service(provider, sleeps)

    with pytest.raises(DeliveryFailed) as exc_info:
        asyncio.run(service.send_text("2348012345678", "hi"))

    assert exc_info.value.provider_status == 503
    assert len(provider.requests) == 3
    assert sleeps == [1.0, 2.0]


def test_request_timeout_status_is_retried():
    provider = ScriptedProvider(httpx.Response(408), httpx.Response(200, json={"ok": True}))
    sleeps = []
    service = make_service(provider, sleeps)

    assert asyncio.run(service.send_text("2348012345678", "hi")) == {"ok": True}
    assert sleeps == [1.0]


@pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
def test_permanent_client_errors_fail_fast(status):
    provider = ScriptedProvider(httpx.Response(status, json={"error": "nope"}))
    sleeps = []
    service = make_service(provider, sleeps)

    with pytest.raises(DeliveryFailed) as exc_info:
        asyncio.run(service.send_text("2348012345678", "hi"))

    assert exc_info.value.provider_status == status
    assert len(provider.requests) == 1
    assert sleeps == []


def test_rate_limit_waits_provider_retry_after():
    provider = ScriptedProvider(
        httpx.Response(429, json={"retry_after": 5}),
        httpx.Response(200, json={"success": True}),
    )
    sleeps = []
    service = make_service(provider, sleeps)

    asyncio.run(service.send_text("2348012345678", "hi"))

    assert sleeps == [5.0]
    assert len(provider.requests) == 2


def test_rate_limit_defaults_to_sixty_seconds():
    provider = ScriptedProvider(
        httpx.Response(429, text="slow down"),
        httpx.Response(200, json={"success": True}),
    )
    sleeps = []
    service = make_service(provider, sleeps)

    asyncio.run(service.send_text("2348012345678", "hi"))

    assert sleeps == [60]


def test_rate_limit_header_is_used_without_body():
    provider = ScriptedProvider(
        httpx.Response(429, headers={"Retry-After": "7"}),
        httpx.Response(200, json={"success": True}),
    )
    sleeps = []
    service = make_service(provider, sleeps)

    asyncio.run(service.send_text("2348012345678", "hi"))

    assert sleeps == [7.0]


def test_rate_limit_on_last_attempt_raises():
    provider = ScriptedProvider(
        httpx.Response(429, json={"retry_after": 3}),
        httpx.Response(429, json={"retry_after": 3}),
        httpx.Response(429, json={"retry_after": 4}),
    )
    sleeps = []
    service = make_service(provider, sleeps)

    with pytest.raises(RateLimited) as exc_info:
        asyncio.run(service.send_text("2348012345678", "hi"))

    assert exc_info.value.retry_after_seconds == 4.0
    assert sleeps == [3.0, 3.0]
    assert len(provider.requests) == 3


def test_transport_errors_are_retried():
    provider = ScriptedProvider(
        httpx.ConnectError("connection reset"),
        httpx.ReadTimeout("timed out"),
        httpx.Response(200, json={"success": True}),
    )
    sleeps = []
    service = make_service(provider, sleeps)

    assert asyncio.run(service.send_text("2348012345678", "hi")) == {"success": True}
    assert sleeps == [1.0, 2.0]


def test_transport_errors_exhaust_attempts():
    provider = ScriptedProvider(
        httpx.ConnectError("dns"),
        httpx.ConnectError("dns"),
        httpx.ConnectError("dns"),
    )
    sleeps = []
    service = make_service(provider, sleeps)

    with pytest.raises(DeliveryFailed):
        asyncio.run(service.send_text("2348012345678", "hi"))

    assert len(provider.requests) == 3


def test_backoff_delay_doubles():
    service = WhatsAppService(api_key="k", base_url="https://x", base_delay=1.0)
    assert [service.backoff_delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]


def test_test_key_does_not_touch_network():
    provider = ScriptedProvider()
    service = WhatsAppService(
        api_key="test_api_key_here",
        base_url="https://wasender.test/api",
        transport=httpx.MockTransport(provider),
    )

    result = asyncio.run(service.send_text("+1555", "hi"))

    assert result["success"] is True
    assert provider.requests == []


def test_is_configured():
    assert WhatsAppService(api_key="k", base_url="https://x").is_configured()
    assert not WhatsAppService(api_key="", base_url="https://x").is_configured()
