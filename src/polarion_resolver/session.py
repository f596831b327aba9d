"""Authenticated, connectivity-checked session against a Polarion server."""

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog

from polarion_resolver import transport
from polarion_resolver.cache import Clock, SessionCaches
from polarion_resolver.errors import ConfigError, NotFoundError, PolarionError, TransportError
from polarion_resolver.failure import FailureCounter
from polarion_resolver.reporting import Level, Reporter
from polarion_resolver.settings import Settings
from polarion_resolver.signals import ConnectivitySignal

logger = structlog.get_logger()


class Session:
    """One authenticated connection with its own caches and failure counter.

    Sessions are never repaired in place: a restart builds a new Session, and
    the old one is retired once the resolves running on it have finished.
    """

    def __init__(
        self,
        settings: Settings,
        reporter: Reporter,
        signal: ConnectivitySignal,
        http_transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initialize session state without touching the network.

        Args:
            settings: Service location and credentials
            reporter: Sink for log messages and user notifications
            signal: Connectivity signal to publish state changes on
            http_transport: Optional httpx transport, used to stub the server in tests
            clock: Monotonic clock used to age cache entries
        """
        self.settings = settings
        self.reporter = reporter
        self.signal = signal
        self.caches = SessionCaches(settings.refresh_minutes, clock)
        self.failures = FailureCounter(settings.exception_restart)
        self.initialized = False
        self.last_error: PolarionError | None = None
        self.client: httpx.AsyncClient | None = None
        self._http_transport = http_transport
        self._in_flight = 0
        self._retired = False

        reporter.report("Polarion service started", url=settings.url)
        if settings.use_token_auth:
            reporter.report("Using token authentication")
        else:
            reporter.report("Using basic authentication", username=settings.username)

    async def initialize(self) -> bool:
        """Authenticate and probe the service once.

        Returns:
            True when the session is usable. Failures are reported, published
            on the connectivity signal and kept in ``last_error``.
        """
        await self._close_client()
        try:
            if not self.settings.url:
                raise ConfigError("No service URL configured (polarion.url)")
            if self.settings.use_token_auth and not (self.settings.token or "").strip():
                self.reporter.report("No token found in settings (polarion.token)", Level.ERROR, popup=True)
            headers = transport.build_auth_headers(self.settings)
            self.client = transport.create_client(self.settings, headers, self._http_transport)
            await self._probe()
        except PolarionError as e:
            self.initialized = False
            self.last_error = e
            self.reporter.report(f"Failed to initialize Polarion REST API: {e}", Level.ERROR, popup=True)
            await self._close_client()
            self.signal.emit(False)
            return False

        self.initialized = True
        self.last_error = None
        self.reporter.report("Polarion REST API connection established", popup=True)
        self.signal.emit(True)
        return True

    async def _probe(self) -> None:
        try:
            await self.get_json(transport.projects_path())
        except (NotFoundError, TransportError) as e:
            raise TransportError(f"Connection test failed: {e}", status_code=e.status_code) from e
        logger.debug("REST API connection test successful")

    @asynccontextmanager
    async def activity(self) -> AsyncIterator[None]:
        """Mark a unit of work in flight; a retired session keeps its client until all have finished."""
        self._in_flight += 1
        try:
            yield
        finally:
            self._in_flight -= 1
            if self._retired and self._in_flight == 0:
                await self._close_client()

    async def get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        async with self.activity():
            return await transport.get_json(self._require_client(), path, params)

    async def get_bytes(self, url: str, accept: str = "*/*") -> bytes:
        async with self.activity():
            return await transport.get_bytes(self._require_client(), url, accept)

    def _require_client(self) -> httpx.AsyncClient:
        if self.client is None:
            raise TransportError("Session is not connected")
        return self.client

    async def retire(self) -> None:
        """Stop using this session; its client closes once no work is in flight."""
        self._retired = True
        if self._in_flight == 0:
            await self._close_client()

    async def close(self) -> None:
        self.initialized = False
        await self._close_client()

    async def _close_client(self) -> None:
        if self.client is not None:
            client, self.client = self.client, None
            await client.aclose()
