"""Tests for session initialization."""

import asyncio
import base64

from polarion_resolver.errors import AuthError, ConfigError, TransportError
from polarion_resolver.reporting import Level, Reporter
from polarion_resolver.session import Session
from polarion_resolver.settings import Settings
from polarion_resolver.signals import ConnectivitySignal
from fakes import BASE_URL, REST, FakePolarion


def make_session(settings: Settings, server: FakePolarion, reporter: Reporter | None = None) -> tuple[Session, list[bool]]:
    signal = ConnectivitySignal()
    events: list[bool] = []
    signal.subscribe(events.append)
    session = Session(settings, reporter or Reporter(), signal, server.transport)
    return session, events


def test_initialize_success(settings: Settings, server: FakePolarion) -> None:
    """Test a successful probe marks the session initialized."""
    session, events = make_session(settings, server)

    assert asyncio.run(session.initialize()) is True

    assert session.initialized
    assert session.last_error is None
    assert events == [True]
    assert server.calls(f"{REST}/projects") == 1
    assert server.requests[0].headers["Authorization"] == "Bearer secret-token"


def test_initialize_with_basic_auth(server: FakePolarion) -> None:
    """Test basic credentials are used when token auth is off."""
    settings = Settings(url=BASE_URL, use_token_auth=False, token="ignored", username="alice", password="pw")
    session, _ = make_session(settings, server)

    assert asyncio.run(session.initialize())

    expected = base64.b64encode(b"alice:pw").decode()
    assert server.requests[0].headers["Authorization"] == f"Basic {expected}"


def test_empty_token_fails_before_network(server: FakePolarion) -> None:
    """Test a missing token fails with a config error and no request."""
    session, events = make_session(Settings(url=BASE_URL, token=""), server)

    assert asyncio.run(session.initialize()) is False

    assert isinstance(session.last_error, ConfigError)
    assert not session.initialized
    assert events == [False]
    assert server.requests == []


def test_missing_url_fails(server: FakePolarion) -> None:
    """Test a missing service URL is a config error."""
    session, _ = make_session(Settings(token="t"), server)

    assert asyncio.run(session.initialize()) is False
    assert isinstance(session.last_error, ConfigError)


def test_unauthorized_probe(settings: Settings, server: FakePolarion) -> None:
    """Test 401 on the probe is reported as an authentication failure."""
    server.add(f"{REST}/projects", status=401, json={})
    session, events = make_session(settings, server)

    assert asyncio.run(session.initialize()) is False

    assert isinstance(session.last_error, AuthError)
    assert "credentials" in str(session.last_error)
    assert events == [False]


def test_forbidden_probe(settings: Settings, server: FakePolarion) -> None:
    """Test 403 on the probe is reported as an authorization failure."""
    server.add(f"{REST}/projects", status=403, json={})
    session, _ = make_session(settings, server)

    asyncio.run(session.initialize())

    assert isinstance(session.last_error, AuthError)
    assert "permissions" in str(session.last_error)


def test_server_error_probe(settings: Settings, server: FakePolarion) -> None:
    """Test other failures are generic connection failures."""
    server.add(f"{REST}/projects", status=503, json={})
    session, _ = make_session(settings, server)

    asyncio.run(session.initialize())

    assert isinstance(session.last_error, TransportError)
    assert str(session.last_error).startswith("Connection test failed")
    assert session.client is None


def test_initialize_does_not_retry(settings: Settings, server: FakePolarion) -> None:
    """Test a failing probe is attempted exactly once."""
    server.add(f"{REST}/projects", status=500, json={})
    session, _ = make_session(settings, server)

    asyncio.run(session.initialize())

    assert server.calls(f"{REST}/projects") == 1


def test_failures_surface_within_popup_budget(server: FakePolarion) -> None:
    """Test only a bounded number of messages reach the user."""
    reporter = Reporter(popup_budget=2)
    shown: list[tuple[str, Level]] = []
    reporter.add_notifier(lambda message, level: shown.append((message, level)))
    session, _ = make_session(Settings(url=BASE_URL, token=""), server, reporter)

    async def scenario() -> None:
        for _ in range(3):
            await session.initialize()

    asyncio.run(scenario())

    assert len(shown) == 2
    assert all(level is Level.ERROR for _, level in shown)
    assert reporter.popups_remaining == 0
    assert reporter.last_message == shown[-1][0]


def test_retire_closes_client(settings: Settings, server: FakePolarion) -> None:
    """Test a retired session without in-flight requests releases its client."""
    session, _ = make_session(settings, server)

    async def scenario() -> None:
        await session.initialize()
        await session.retire()

    asyncio.run(scenario())
    assert session.client is None


def test_retired_session_keeps_client_during_activity(settings: Settings, server: FakePolarion) -> None:
    """Test retiring mid-activity keeps the client until that activity ends."""
    session, _ = make_session(settings, server)

    async def scenario() -> None:
        await session.initialize()
        async with session.activity():
            await session.retire()
            assert session.client is not None
            await session.get_json(f"{REST}/projects")
            await session.get_json(f"{REST}/projects")
            assert session.client is not None
        assert session.client is None

    asyncio.run(scenario())
    assert server.calls(f"{REST}/projects") == 3
