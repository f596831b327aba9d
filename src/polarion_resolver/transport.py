"""HTTP transport for the Polarion REST API."""

import base64
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from polarion_resolver.errors import AuthError, ConfigError, NotFoundError, TransportError
from polarion_resolver.settings import Settings

logger = structlog.get_logger()

REST_ROOT = "/polarion/rest/v1"
WORKITEM_FIELDS = "id,title,type,author,status,description,project"
USER_FIELDS = "id,name,email,initials"

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def build_auth_headers(settings: Settings) -> dict[str, str]:
    """Build the Authorization header for the configured auth mode.

    Raises:
        ConfigError: If no usable token or username/password pair is configured.
    """
    if settings.use_token_auth:
        token = (settings.token or "").strip()
        if not token:
            raise ConfigError("No token configured (polarion.token)")
        logger.debug("Using token authentication")
        return {"Authorization": f"Bearer {token}"}

    if settings.username and settings.password:
        credentials = base64.b64encode(f"{settings.username}:{settings.password}".encode()).decode("ascii")
        logger.debug("Using basic authentication", username=settings.username)
        return {"Authorization": f"Basic {credentials}"}

    raise ConfigError("No valid authentication method configured")


def api_base_url(url: str) -> str:
    """Return the service root that the ``/polarion/rest/v1`` paths are appended to."""
    base = url.rstrip("/")
    if base.endswith("/polarion"):
        base = base[: -len("/polarion")]
    return base


def work_item_url(url: str, project_id: str, item_id: str) -> str:
    """Build the web UI link for a work item."""
    base = url if url.endswith("/") else url + "/"
    if base.endswith("/polarion/"):
        base = base[: -len("polarion/")]
    return f"{base}polarion/#/project/{project_id}/workitem?id={item_id}"


def create_client(
    settings: Settings,
    auth_headers: dict[str, str],
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an async client bound to the service with the auth headers as defaults."""
    if not settings.url:
        raise ConfigError("No service URL configured (polarion.url)")
    return httpx.AsyncClient(
        base_url=api_base_url(settings.url),
        headers={**DEFAULT_HEADERS, **auth_headers},
        timeout=settings.timeout,
        transport=transport,
    )


def _segment(value: str) -> str:
    return quote(value, safe="")


def projects_path() -> str:
    return f"{REST_ROOT}/projects"


def all_workitems_path() -> str:
    return f"{REST_ROOT}/all/workitems"


def project_workitem_path(project_id: str, item_id: str) -> str:
    return f"{REST_ROOT}/projects/{_segment(project_id)}/workitems/{_segment(item_id)}"


def status_options_path(project_id: str) -> str:
    return f"{REST_ROOT}/projects/{_segment(project_id)}/workitems/fields/status/actions/getAvailableOptions"


def type_enumeration_path(project_id: str) -> str:
    return f"{REST_ROOT}/projects/{_segment(project_id)}/enumerations/~/workitem-type/~"


def user_path(user_id: str) -> str:
    return f"{REST_ROOT}/users/{_segment(user_id)}"


def attachment_content_path(project_id: str, item_id: str, attachment_id: str) -> str:
    return (
        f"{REST_ROOT}/projects/{_segment(project_id)}/workitems/{_segment(item_id)}"
        f"/attachments/{_segment(attachment_id)}/content"
    )


def _raise_for_status(response: httpx.Response) -> None:
    status = response.status_code
    if 200 <= status < 300:
        return
    url = str(response.request.url)
    if status == 404:
        raise NotFoundError(f"Not found: {url}", status_code=status)
    if status == 401:
        raise AuthError("Authentication failed - check your credentials", status_code=status)
    if status == 403:
        raise AuthError("Access forbidden - check your permissions", status_code=status)
    raise TransportError(f"Unexpected HTTP status {status} from {url}", status_code=status)


async def _send(client: httpx.AsyncClient, url: str, **kwargs: Any) -> httpx.Response:
    try:
        response = await client.get(url, **kwargs)
    except httpx.HTTPError as e:
        raise TransportError(f"Request to {url} failed: {e}") from e
    _raise_for_status(response)
    return response


async def get_json(client: httpx.AsyncClient, path: str, params: dict[str, str] | None = None) -> Any:
    """GET a JSON document, mapping failures onto the error taxonomy."""
    response = await _send(client, path, params=params)
    try:
        return response.json()
    except ValueError as e:
        raise TransportError(f"Invalid JSON from {path}: {e}", status_code=response.status_code) from e


async def get_bytes(client: httpx.AsyncClient, url: str, accept: str = "*/*") -> bytes:
    """GET a binary resource, mapping failures onto the error taxonomy."""
    response = await _send(client, url, headers={"Accept": accept})
    return response.content
