"""Caller-facing entry point owning the current session."""

import asyncio
import time

import httpx
import structlog

from polarion_resolver.cache import Clock
from polarion_resolver.models import WorkItem
from polarion_resolver.reporting import Reporter
from polarion_resolver.resolver import WorkItemResolver
from polarion_resolver.session import Session
from polarion_resolver.settings import Settings
from polarion_resolver.signals import ConnectivitySignal

logger = structlog.get_logger()


class PolarionService:
    """Resolves work item ids through an explicitly owned, replaceable session.

    A restart installs a brand-new session with empty caches. Calls already in
    flight finish against the session they started on; later calls use the
    new one.
    """

    def __init__(
        self,
        settings: Settings,
        reporter: Reporter | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.settings = settings
        self.reporter = reporter or Reporter()
        self.connectivity = ConnectivitySignal()
        self.session: Session | None = None
        self.resolver: WorkItemResolver | None = None
        self.restarts = 0
        self.pending_restart: asyncio.Task | None = None
        self._http_transport = http_transport
        self._clock = clock

    async def __aenter__(self) -> "PolarionService":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def initialized(self) -> bool:
        return self.session is not None and self.session.initialized

    async def start(self) -> bool:
        """Create and initialize the first session."""
        return await self._replace_session()

    async def restart(self) -> bool:
        """Discard the current session and its caches and connect again."""
        self.restarts += 1
        logger.info("Restarting session", restarts=self.restarts)
        return await self._replace_session()

    async def resolve_item(self, item_id: str) -> WorkItem | None:
        if self.resolver is None:
            return None
        return await self.resolver.resolve(item_id)

    async def resolve_url(self, item_id: str) -> str | None:
        if self.resolver is None:
            return None
        return await self.resolver.resolve_url(item_id)

    async def resolve_title(self, item_id: str) -> str | None:
        if self.resolver is None:
            return None
        return await self.resolver.resolve_title(item_id)

    def clear_cache(self) -> None:
        if self.session is None:
            return
        self.session.caches.clear()
        self.reporter.report("Cleared work item, attachment, status, workitem type, icon and user cache")

    async def close(self) -> None:
        if self.pending_restart is not None:
            await self.pending_restart
        if self.session is not None:
            await self.session.close()

    async def _replace_session(self) -> bool:
        old = self.session
        session = Session(self.settings, self.reporter, self.connectivity, self._http_transport, self._clock)
        # Installed before any await so concurrent restart requests see the new session.
        self.session = session
        self.resolver = WorkItemResolver.for_session(session, self._restart_from)
        if old is not None:
            await old.retire()
        return await session.initialize()

    def _restart_from(self, session: Session) -> None:
        """Schedule a restart on behalf of a session that crossed its failure threshold.

        The restart runs as its own task so the failing lookup returns at once.
        Requests from a replaced session, or made while a restart is pending,
        are ignored.
        """
        if session is not self.session:
            logger.debug("Ignoring restart request from a replaced session")
            return
        if self.pending_restart is not None and not self.pending_restart.done():
            logger.debug("Restart already pending")
            return
        self.pending_restart = asyncio.create_task(self.restart())
