from __future__ import annotations

from typing import Any

import httpx
import pytest

from leveltracker.crawlers.client import BattleNetClient, TokenError, sanitize_for_log
from leveltracker.crawlers.contracts import FetchResult, FetchState
from leveltracker.crawlers.profile_fetcher import (
    EXHAUSTED_DETAIL,
    AttemptState,
    NamespaceFallback,
    fetch_profile,
)


class FakeClient:
    def __init__(self, responses: dict[str, Any]) -> None:
        self.responses = responses
        self.calls: list[str] = []

    async def get_character_profile(self, realm: str, name: str, namespace: str) -> FetchResult[dict[str, Any]]:
        self.calls.append(namespace)
        response = self.responses[namespace]
        if isinstance(response, Exception):
            raise response
        return response


def test_fallback_state_machine_transitions() -> None:
    policy = NamespaceFallback(["ns-a", "ns-b"])
    assert policy.state == AttemptState.TRYING
    assert policy.current_namespace == "ns-a"

    policy.advance(FetchResult(state=FetchState.FAILED, status_code=403, error="forbidden"))
    assert policy.current_namespace == "ns-b"

    policy.advance(FetchResult(state=FetchState.OK, status_code=200, data={"level": 3}))
    assert policy.state == AttemptState.SUCCEEDED
    assert policy.outcome.namespace == "ns-b"
    assert policy.current_namespace is None

    with pytest.raises(RuntimeError):
        policy.advance(FetchResult(state=FetchState.OK, data={}))


def test_fallback_without_namespaces_is_exhausted() -> None:
    policy = NamespaceFallback([])

    assert policy.state == AttemptState.FAILED_TERMINAL
    assert policy.outcome.status == 404
    assert policy.outcome.detail == EXHAUSTED_DETAIL


@pytest.mark.asyncio
async def test_fetch_profile_tries_next_namespace_on_404() -> None:
    client = FakeClient(
        {
            "ns-a": FetchResult(state=FetchState.FAILED, status_code=404, error="missing"),
            "ns-b": FetchResult(state=FetchState.OK, status_code=200, data={"name": "Bob"}),
            "ns-c": FetchResult(state=FetchState.OK, status_code=200, data={"name": "Other"}),
        }
    )

    outcome = await fetch_profile(client, "stitches", "bob", ["ns-a", "ns-b", "ns-c"])

    assert outcome.ok is True
    assert outcome.namespace == "ns-b"
    assert outcome.data == {"name": "Bob"}
    assert client.calls == ["ns-a", "ns-b"]


@pytest.mark.asyncio
async def test_fetch_profile_stops_on_terminal_status() -> None:
    client = FakeClient(
        {
            "ns-a": FetchResult(state=FetchState.FAILED, status_code=500, error="boom"),
            "ns-b": FetchResult(state=FetchState.OK, status_code=200, data={"name": "Bob"}),
        }
    )

    outcome = await fetch_profile(client, "stitches", "bob", ["ns-a", "ns-b"])

    assert outcome.ok is False
    assert outcome.status == 500
    assert outcome.detail == "boom"
    assert client.calls == ["ns-a"]


@pytest.mark.asyncio
async def test_fetch_profile_reports_exhaustion_and_network_errors() -> None:
    exhausted = await fetch_profile(
        FakeClient({"ns-a": FetchResult(state=FetchState.FAILED, status_code=403, error="")}),
        "stitches",
        "bob",
        ["ns-a"],
    )
    assert (exhausted.ok, exhausted.status, exhausted.detail) == (False, 404, EXHAUSTED_DETAIL)

    network = await fetch_profile(
        FakeClient({"ns-a": httpx.ConnectError("connection refused")}),
        "stitches",
        "bob",
        ["ns-a"],
    )
    assert network.ok is False
    assert network.status == "fetch_error"
    assert "connection refused" in (network.detail or "")


@pytest.mark.asyncio
async def test_client_authenticates_and_requests_profile() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/oauth/token":
            return httpx.Response(200, json={"access_token": "abc123"})
        if request.url.params.get("namespace") == "profile-classic1x-us":
            return httpx.Response(404, text="Not Found")
        return httpx.Response(200, json={"name": "Bob", "level": 12})

    async with BattleNetClient(
        client_id="id",
        client_secret="secret",
        transport=httpx.MockTransport(handler),
    ) as client:
        outcome = await fetch_profile(client, "stitches", "Bob", ["profile-classic1x-us", "profile-classic-us"])

    assert outcome.ok is True
    assert outcome.namespace == "profile-classic-us"
    assert seen[0].url.host == "us.battle.net"
    assert seen[0].headers["Authorization"].startswith("Basic ")
    profile_request = seen[-1]
    assert profile_request.url.host == "us.api.blizzard.com"
    assert profile_request.url.path == "/profile/wow/character/stitches/bob"
    assert profile_request.url.params["locale"] == "en_US"
    assert profile_request.headers["Authorization"] == "Bearer abc123"
    assert sum(1 for request in seen if request.url.path == "/oauth/token") == 1


@pytest.mark.asyncio
async def test_client_rejected_token_is_fatal() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(401, text="invalid_client"))

    async with BattleNetClient(client_id="id", client_secret="secret", transport=transport) as client:
        with pytest.raises(TokenError):
            await client.authenticate()


def test_client_requires_credentials(monkeypatch) -> None:
    from leveltracker.crawlers import client as client_module

    monkeypatch.setattr(client_module.settings, "BNET_CLIENT_ID", None)
    monkeypatch.setattr(client_module.settings, "BNET_CLIENT_SECRET", None)

    with pytest.raises(TokenError):
        BattleNetClient()


def test_sanitize_for_log_redacts_tokens() -> None:
    sanitized = sanitize_for_log({"access_token": "abc", "detail": "Bearer abc123 rejected"})

    assert sanitized["access_token"] == "***REDACTED***"
    assert "abc123" not in sanitized["detail"]
