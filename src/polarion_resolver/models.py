"""Data models for resolved work items."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

AttachmentDownloader = Callable[[str], Awaitable[str | None]]


@dataclass(frozen=True)
class ItemType:
    """Work item type with its display name and icon."""

    id: str
    name: str | None = None
    icon: str | None = None


@dataclass(frozen=True)
class Author:
    """Author of a work item."""

    id: str
    name: str | None = None
    email: str | None = None
    initials: str | None = None


@dataclass(frozen=True)
class Status:
    """Workflow status of a work item."""

    id: str
    name: str | None = None
    color: str | None = None
    icon: str | None = None


@dataclass(frozen=True)
class Description:
    """Rich-text description content."""

    content: str


@dataclass(frozen=True)
class StatusInfo:
    """Display record for one status option."""

    name: str
    color: str | None = None
    icon: str | None = None


@dataclass(frozen=True)
class TypeInfo:
    """Display record for one work item type option."""

    name: str
    icon: str | None = None


@dataclass(frozen=True)
class UserInfo:
    """Display record for a user."""

    name: str
    email: str | None = None
    initials: str | None = None


@dataclass(frozen=True)
class WorkItem:
    """A fully hydrated work item.

    Instances are never mutated; a refresh replaces the cached object.
    """

    id: str
    title: str
    type: ItemType
    author: Author
    status: Status
    project_id: str
    description: Description | None = None
    downloader: AttachmentDownloader | None = field(default=None, repr=False, compare=False)

    async def download_attachment(self, attachment_id: str) -> str | None:
        """Download an attachment of this work item as base64, or None."""
        if self.downloader is None:
            return None
        return await self.downloader(attachment_id)
