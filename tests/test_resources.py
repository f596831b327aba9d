"""Tests for icon and attachment downloads."""

import asyncio
import base64

import pytest

from polarion_resolver.reporting import Reporter
from polarion_resolver.resources import ResourceFetcher, mime_type_for
from polarion_resolver.session import Session
from polarion_resolver.settings import Settings
from polarion_resolver.signals import ConnectivitySignal
from fakes import REST, FakeClock, FakePolarion

ATTACHMENT_PATH = f"{REST}/projects/P/workitems/ABC-1/attachments/img1/content"


def make_fetcher(settings: Settings, server: FakePolarion, clock: FakeClock) -> ResourceFetcher:
    return ResourceFetcher(Session(settings, Reporter(), ConnectivitySignal(), server.transport, clock))


@pytest.mark.parametrize(
    ("url", "mime"),
    [
        ("/icons/a.png", "image/png"),
        ("/icons/a.GIF", "image/gif"),
        ("/icons/a.jpg", "image/jpeg"),
        ("/icons/a.jpeg", "image/jpeg"),
        ("https://host/icons/a.svg?v=2", "image/svg+xml"),
        ("/icons/noextension", "image/png"),
        ("/icons/a.bmp", "image/png"),
    ],
)
def test_mime_type_for(url: str, mime: str) -> None:
    """Test MIME types are inferred from the file extension."""
    assert mime_type_for(url) == mime


def test_fetch_icon_builds_data_uri_once(settings: Settings, server: FakePolarion, clock: FakeClock) -> None:
    """Test icons are downloaded once and encoded as data URIs."""
    server.add("/polarion/icons/task.svg", content=b"<svg/>")
    fetcher = make_fetcher(settings, server, clock)

    async def scenario() -> tuple[str | None, str | None]:
        await fetcher.session.initialize()
        return await fetcher.fetch_icon("/polarion/icons/task.svg"), await fetcher.fetch_icon("/polarion/icons/task.svg")

    first, second = asyncio.run(scenario())

    assert first == "data:image/svg+xml;base64," + base64.b64encode(b"<svg/>").decode()
    assert second == first
    assert server.calls("/polarion/icons/task.svg") == 1
    assert server.requests[-1].headers["Accept"] == "image/*"


def test_fetch_icon_failure_returns_none(settings: Settings, server: FakePolarion, clock: FakeClock) -> None:
    """Test icon download failures are swallowed into None."""
    fetcher = make_fetcher(settings, server, clock)

    async def scenario() -> str | None:
        await fetcher.session.initialize()
        return await fetcher.fetch_icon("/polarion/icons/missing.png")

    assert asyncio.run(scenario()) is None


def test_attachment_round_trip(settings: Settings, server: FakePolarion, clock: FakeClock) -> None:
    """Test an attachment is downloaded once and returned identically."""
    payload = bytes(range(256))
    server.add(ATTACHMENT_PATH, content=payload)
    fetcher = make_fetcher(settings, server, clock)

    async def scenario() -> tuple[str | None, str | None]:
        await fetcher.session.initialize()
        first = await fetcher.fetch_attachment("ABC-1", "img1", "P")
        second = await fetcher.fetch_attachment("ABC-1", "img1", "P")
        return first, second

    first, second = asyncio.run(scenario())

    assert first == second == base64.b64encode(payload).decode()
    assert server.calls(ATTACHMENT_PATH) == 1
    assert ("ABC-1", "img1") in fetcher.session.caches.attachments


def test_attachment_failure_returns_none(settings: Settings, server: FakePolarion, clock: FakeClock) -> None:
    """Test attachment download failures return None."""
    server.add(ATTACHMENT_PATH, status=500, json={})
    fetcher = make_fetcher(settings, server, clock)

    async def scenario() -> str | None:
        await fetcher.session.initialize()
        return await fetcher.fetch_attachment("ABC-1", "img1", "P")

    assert asyncio.run(scenario()) is None


def test_attachment_on_dead_session(settings: Settings, server: FakePolarion, clock: FakeClock) -> None:
    """Test attachments are not requested before the session is initialized."""
    fetcher = make_fetcher(settings, server, clock)

    assert asyncio.run(fetcher.fetch_attachment("ABC-1", "img1", "P")) is None
    assert server.requests == []
