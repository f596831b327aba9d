"""Work item lookup, hydration and caching."""

import asyncio
from collections.abc import Callable
from functools import partial

import structlog

from polarion_resolver import transport
from polarion_resolver.enumerations import EnumerationResolver
from polarion_resolver.errors import AuthError, NotFoundError, PolarionError
from polarion_resolver.models import Author, Description, ItemType, Status, WorkItem
from polarion_resolver.reporting import Level
from polarion_resolver.resources import ResourceFetcher
from polarion_resolver.session import Session
from polarion_resolver.shapes import RawWorkItem, parse_work_item

logger = structlog.get_logger()

RestartHook = Callable[[Session], None]


class WorkItemResolver:
    """Resolves work item ids against one session and its item cache."""

    def __init__(
        self,
        session: Session,
        enumerations: EnumerationResolver,
        fetcher: ResourceFetcher,
        on_restart: RestartHook | None = None,
    ) -> None:
        self.session = session
        self.enumerations = enumerations
        self.fetcher = fetcher
        self.on_restart = on_restart

    @classmethod
    def for_session(cls, session: Session, on_restart: RestartHook | None = None) -> "WorkItemResolver":
        fetcher = ResourceFetcher(session)
        return cls(session, EnumerationResolver(session, fetcher), fetcher, on_restart)

    async def resolve(self, item_id: str) -> WorkItem | None:
        """Return the hydrated work item, or None when it is unknown or unreachable.

        Results, including misses, are cached until the refresh interval
        passes. A session that is not initialized is never consulted.
        """
        if not self.session.initialized:
            return None
        async with self.session.activity():
            return await self.session.caches.items.get_or_fetch(item_id, lambda: self._fetch(item_id))

    async def resolve_url(self, item_id: str) -> str | None:
        item = await self.resolve(item_id)
        if item is None:
            return None
        return transport.work_item_url(self.session.settings.url, item.project_id, item_id)

    async def resolve_title(self, item_id: str) -> str | None:
        item = await self.resolve(item_id)
        return item.title if item is not None else None

    async def _fetch(self, item_id: str) -> WorkItem | None:
        reporter = self.session.reporter
        reporter.report("Fetching work item via REST API", workitem_id=item_id)
        try:
            raw = await self._lookup(item_id)
        except NotFoundError:
            reporter.report("Work item not found", workitem_id=item_id)
            return None
        except AuthError as e:
            reporter.report(f"Authentication/authorization error for {item_id}: {e}", Level.ERROR)
            return None
        except PolarionError as e:
            reporter.report(f"Could not fetch {item_id} with exception: {e}", Level.ERROR)
            self._record_failure()
            return None

        if raw is None:
            reporter.report("Could not find work item", workitem_id=item_id)
            return None
        reporter.report("Found work item", workitem_id=item_id, title=raw.title)
        return await self._hydrate(raw, item_id)

    async def _lookup(self, item_id: str) -> RawWorkItem | None:
        fields = {"fields[workitems]": transport.WORKITEM_FIELDS}
        project = self.session.settings.project
        if project:
            document = await self.session.get_json(transport.project_workitem_path(project, item_id), fields)
        else:
            document = await self.session.get_json(
                transport.all_workitems_path(), {"query": f"id:{item_id}", **fields}
            )
        return parse_work_item(document, item_id)

    async def _hydrate(self, raw: RawWorkItem, item_id: str) -> WorkItem:
        status_info, type_info, user_info = await asyncio.gather(
            self.enumerations.status_display(raw.status_id, raw.project_id, raw.type_id),
            self.enumerations.type_display(raw.type_id, raw.project_id),
            self.enumerations.user_display(raw.author_id),
        )
        return WorkItem(
            id=raw.id,
            title=raw.title,
            type=ItemType(id=raw.type_id, name=type_info.name, icon=type_info.icon),
            author=Author(
                id=raw.author_id,
                name=user_info.name,
                email=user_info.email,
                initials=user_info.initials,
            ),
            status=Status(
                id=raw.status_id,
                name=status_info.name,
                color=status_info.color,
                icon=status_info.icon,
            ),
            project_id=raw.project_id,
            description=Description(raw.description) if raw.description is not None else None,
            downloader=partial(self._download_attachment, item_id, raw.project_id),
        )

    async def _download_attachment(self, item_id: str, project_id: str, attachment_id: str) -> str | None:
        async with self.session.activity():
            return await self.fetcher.fetch_attachment(item_id, attachment_id, project_id)

    def _record_failure(self) -> None:
        if not self.session.failures.record():
            return
        self.session.reporter.report(
            f"Restarting Polarion after {self.session.failures.count} exceptions", Level.ERROR
        )
        if self.on_restart is not None:
            self.on_restart(self.session)
