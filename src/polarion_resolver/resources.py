"""Icon and attachment downloads, base64 encoded and cached."""

import base64
from urllib.parse import urlsplit

import structlog

from polarion_resolver import transport
from polarion_resolver.errors import PolarionError
from polarion_resolver.reporting import Level
from polarion_resolver.session import Session

logger = structlog.get_logger()

MIME_TYPES = {
    "png": "image/png",
    "gif": "image/gif",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "svg": "image/svg+xml",
}
DEFAULT_MIME_TYPE = "image/png"


def mime_type_for(url: str) -> str:
    """Infer an image MIME type from the extension of a URL path."""
    path = urlsplit(url).path
    extension = path.rsplit(".", 1)[-1].lower() if "." in path else ""
    return MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)


class ResourceFetcher:
    """Downloads binary resources through a session and caches the encoded result."""

    def __init__(self, session: Session) -> None:
        self.session = session

    async def fetch_icon(self, url: str) -> str | None:
        """Return the icon at ``url`` as a ``data:`` URI, or None when it cannot be downloaded."""
        return await self.session.caches.icons.get_or_fetch(url, lambda: self._download_icon(url))

    async def _download_icon(self, url: str) -> str | None:
        try:
            payload = await self.session.get_bytes(url, accept="image/*")
        except PolarionError as e:
            self.session.reporter.report("Error downloading icon", url=url, error=str(e))
            return None
        encoded = base64.b64encode(payload).decode("ascii")
        return f"data:{mime_type_for(url)};base64,{encoded}"

    async def fetch_attachment(self, workitem_id: str, attachment_id: str, project_id: str) -> str | None:
        """Return the base64 content of a work item attachment, or None on failure."""
        if not self.session.initialized:
            return None
        return await self.session.caches.attachments.get_or_fetch(
            (workitem_id, attachment_id),
            lambda: self._download_attachment(workitem_id, attachment_id, project_id),
        )

    async def _download_attachment(self, workitem_id: str, attachment_id: str, project_id: str) -> str | None:
        self.session.reporter.report("Downloading attachment", workitem_id=workitem_id, attachment_id=attachment_id)
        try:
            payload = await self.session.get_bytes(
                transport.attachment_content_path(project_id, workitem_id, attachment_id)
            )
        except PolarionError as e:
            self.session.reporter.report(
                f"Failed to download attachment {attachment_id} for workitem {workitem_id}: {e}",
                Level.ERROR,
                project_id=project_id,
            )
            return None
        return base64.b64encode(payload).decode("ascii")
