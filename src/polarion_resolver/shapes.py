"""Recognised work item payload shapes and their canonical form.

Polarion answers with JSON:API resources, where the fields sit under
``attributes`` and the references under ``relationships``. Some servers and
proxies return the fields flat on the resource instead. Both are normalised
into ``RawWorkItem`` here; anything else is rejected.
"""

from dataclasses import dataclass
from typing import Any

import structlog

from polarion_resolver.errors import TransportError

logger = structlog.get_logger()

UNKNOWN = "unknown"
DEFAULT_TITLE = "No title"


@dataclass(frozen=True)
class RawWorkItem:
    """Work item fields as returned by the service, before display lookups."""

    id: str
    title: str
    type_id: str
    status_id: str
    author_id: str
    project_id: str
    description: str | None = None


@dataclass(frozen=True)
class NestedRecord:
    """JSON:API resource with ``attributes`` and ``relationships``."""

    resource: dict[str, Any]

    def normalize(self, requested_id: str) -> RawWorkItem:
        attributes = self.resource.get("attributes") or {}
        relationships = self.resource.get("relationships") or {}
        if not isinstance(attributes, dict) or not isinstance(relationships, dict):
            raise TransportError(f"Malformed work item resource for {requested_id}")

        item_id = attributes.get("id") or _local_id(self.resource.get("id")) or requested_id
        return RawWorkItem(
            id=str(item_id),
            title=attributes.get("title") or DEFAULT_TITLE,
            type_id=_field(attributes.get("type"), "type", requested_id),
            status_id=_field(attributes.get("status"), "status", requested_id),
            author_id=_field(_relationship_id(relationships, "author"), "author", requested_id),
            project_id=_field(
                _relationship_id(relationships, "project") or _project_from_id(self.resource.get("id")),
                "project",
                requested_id,
            ),
            description=_description(attributes.get("description")),
        )


@dataclass(frozen=True)
class FlatRecord:
    """Resource carrying its fields directly."""

    resource: dict[str, Any]

    def normalize(self, requested_id: str) -> RawWorkItem:
        resource = self.resource
        return RawWorkItem(
            id=str(resource.get("id") or requested_id),
            title=resource.get("title") or DEFAULT_TITLE,
            type_id=_field(_ref_id(resource.get("type")), "type", requested_id),
            status_id=_field(_ref_id(resource.get("status")), "status", requested_id),
            author_id=_field(_ref_id(resource.get("author")), "author", requested_id),
            project_id=_field(_ref_id(resource.get("project")), "project", requested_id),
            description=_description(resource.get("description")),
        )


WorkItemRecord = NestedRecord | FlatRecord


def classify(resource: Any) -> WorkItemRecord:
    """Identify the shape of a single work item resource.

    Raises:
        TransportError: If the payload matches no known shape.
    """
    if not isinstance(resource, dict):
        raise TransportError(f"Unrecognised work item payload: {type(resource).__name__}")
    if "attributes" in resource or "relationships" in resource:
        return NestedRecord(resource)
    if "id" in resource and "title" in resource:
        return FlatRecord(resource)
    raise TransportError(f"Unrecognised work item payload with keys {sorted(resource)}")


def first_resource(document: Any) -> Any | None:
    """Return the first resource of a collection or single-resource document.

    Returns None when the document holds no resources at all.
    """
    if not isinstance(document, dict) or "data" not in document:
        raise TransportError("Response document has no data member")
    data = document["data"]
    if isinstance(data, list):
        return data[0] if data else None
    return data


def parse_work_item(document: Any, requested_id: str) -> RawWorkItem | None:
    resource = first_resource(document)
    if resource is None:
        return None
    return classify(resource).normalize(requested_id)


def _field(value: Any, name: str, requested_id: str) -> str:
    if value in (None, ""):
        logger.warning("Work item field missing", field=name, workitem_id=requested_id)
        return UNKNOWN
    return str(value)


def _ref_id(value: Any) -> Any:
    if isinstance(value, dict):
        return value.get("id")
    return value


def _relationship_id(relationships: dict[str, Any], name: str) -> Any:
    relation = relationships.get(name)
    if not isinstance(relation, dict):
        return None
    data = relation.get("data")
    return data.get("id") if isinstance(data, dict) else None


def _local_id(resource_id: Any) -> str | None:
    # JSON:API ids are "<project>/<item>"
    if not resource_id:
        return None
    return str(resource_id).rsplit("/", 1)[-1]


def _project_from_id(resource_id: Any) -> str | None:
    if not resource_id or "/" not in str(resource_id):
        return None
    return str(resource_id).split("/", 1)[0]


def _description(value: Any) -> str | None:
    if isinstance(value, dict):
        content = value.get("value")
        return str(content) if content else None
    if value:
        return str(value)
    return None
