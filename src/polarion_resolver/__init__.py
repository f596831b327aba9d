"""Resolve Polarion work-item identifiers into hydrated metadata."""

from polarion_resolver.errors import AuthError, ConfigError, NotFoundError, PolarionError, TransportError
from polarion_resolver.models import Author, Description, ItemType, Status, WorkItem
from polarion_resolver.service import PolarionService
from polarion_resolver.settings import Settings

__all__ = [
    "AuthError",
    "Author",
    "ConfigError",
    "Description",
    "ItemType",
    "NotFoundError",
    "PolarionError",
    "PolarionService",
    "Settings",
    "Status",
    "TransportError",
    "WorkItem",
]
