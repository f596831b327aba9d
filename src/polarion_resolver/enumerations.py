"""Display names, colors and icons for status, type and user identifiers."""

from collections.abc import Iterable
from typing import Any

import structlog

from polarion_resolver import transport
from polarion_resolver.errors import PolarionError
from polarion_resolver.models import StatusInfo, TypeInfo, UserInfo
from polarion_resolver.reporting import Level
from polarion_resolver.resources import ResourceFetcher
from polarion_resolver.session import Session

logger = structlog.get_logger()

DEFAULT_STATUS_COLOR = "#000000"


class EnumerationResolver:
    """Resolves raw enumeration ids into display records.

    Each concern has its own cache tier: statuses per (project, type), types
    per project and users per user id. An id without a known entry resolves
    to a record whose name is the id itself.
    """

    def __init__(self, session: Session, fetcher: ResourceFetcher) -> None:
        self.session = session
        self.fetcher = fetcher

    async def status_display(self, status_id: str, project_id: str, type_id: str) -> StatusInfo:
        statuses = await self.status_mapping(project_id, type_id)
        return statuses.get(status_id) or StatusInfo(name=status_id)

    async def type_display(self, type_id: str, project_id: str) -> TypeInfo:
        types = await self.type_mapping(project_id)
        return types.get(type_id) or TypeInfo(name=type_id)

    async def user_display(self, user_id: str) -> UserInfo:
        if not self.session.initialized:
            return UserInfo(name=user_id)
        return await self.session.caches.users.get_or_fetch(user_id, lambda: self._fetch_user(user_id))

    async def status_mapping(self, project_id: str, type_id: str) -> dict[str, StatusInfo]:
        if not self.session.initialized:
            return {}
        return await self.session.caches.statuses.get_or_fetch(
            (project_id, type_id), lambda: self._fetch_statuses(project_id, type_id)
        )

    async def type_mapping(self, project_id: str) -> dict[str, TypeInfo]:
        if not self.session.initialized:
            return {}
        return await self.session.caches.types.get_or_fetch(project_id, lambda: self._fetch_types(project_id))

    async def _fetch_statuses(self, project_id: str, type_id: str) -> dict[str, StatusInfo]:
        reporter = self.session.reporter
        reporter.report("Fetching status mappings", project_id=project_id, type_id=type_id)
        try:
            document = await self.session.get_json(transport.status_options_path(project_id), {"type": type_id})
        except PolarionError as e:
            reporter.report(
                f"Failed to fetch status mappings for project {project_id}, type {type_id}: {e}", Level.ERROR
            )
            return {}

        options = document.get("data") if isinstance(document, dict) else None
        statuses = {}
        for option_id, option in _valid_options(options):
            statuses[option_id] = StatusInfo(
                name=option["name"],
                color=option.get("color") or DEFAULT_STATUS_COLOR,
                icon=await self._icon_for(option, option_id),
            )
        reporter.report("Fetched status mappings", project_id=project_id, type_id=type_id, count=len(statuses))
        return statuses

    async def _fetch_types(self, project_id: str) -> dict[str, TypeInfo]:
        reporter = self.session.reporter
        reporter.report("Fetching workitem type mappings", project_id=project_id)
        try:
            document = await self.session.get_json(transport.type_enumeration_path(project_id))
        except PolarionError as e:
            reporter.report(f"Failed to fetch workitem type mappings for project {project_id}: {e}", Level.ERROR)
            return {}

        options = _dig(document, "data", "attributes", "options")
        types = {}
        for option_id, option in _valid_options(options):
            types[option_id] = TypeInfo(name=option["name"], icon=await self._icon_for(option, option_id))
        reporter.report("Fetched workitem type mappings", project_id=project_id, count=len(types))
        return types

    async def _fetch_user(self, user_id: str) -> UserInfo:
        reporter = self.session.reporter
        reporter.report("Fetching user info", user_id=user_id)
        try:
            document = await self.session.get_json(transport.user_path(user_id), {"fields[users]": transport.USER_FIELDS})
        except PolarionError as e:
            reporter.report(f"Failed to fetch user info for {user_id}: {e}", Level.ERROR)
            return UserInfo(name=user_id)

        attributes = _dig(document, "data", "attributes")
        if not isinstance(attributes, dict):
            reporter.report("No user data found", user_id=user_id)
            return UserInfo(name=user_id)
        return UserInfo(
            name=attributes.get("name") or user_id,
            email=attributes.get("email"),
            initials=attributes.get("initials"),
        )

    async def _icon_for(self, option: dict[str, Any], option_id: str) -> str | None:
        icon_url = option.get("iconURL")
        if not icon_url:
            return None
        icon = await self.fetcher.fetch_icon(icon_url)
        if icon is None:
            logger.debug("No icon for option", option_id=option_id, icon_url=icon_url)
        return icon


def _valid_options(options: Any) -> Iterable[tuple[str, dict[str, Any]]]:
    if not isinstance(options, list):
        logger.warning("Enumeration payload has no option list")
        return
    for option in options:
        if isinstance(option, dict) and option.get("id") and option.get("name"):
            yield str(option["id"]), option


def _dig(document: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(document, dict):
            return None
        document = document.get(key)
    return document
