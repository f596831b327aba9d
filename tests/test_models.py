"""Tests for data models."""

import asyncio
import dataclasses

import pytest

from polarion_resolver.models import Author, ItemType, Status, WorkItem


def make_item(**overrides: object) -> WorkItem:
    fields: dict = {
        "id": "ABC-1",
        "title": "Fix bug",
        "type": ItemType(id="task"),
        "author": Author(id="u1"),
        "status": Status(id="open"),
        "project_id": "P",
    }
    fields.update(overrides)
    return WorkItem(**fields)


def test_work_item_defaults() -> None:
    """Test optional work item parts default to None."""
    item = make_item()
    assert item.description is None
    assert item.status.name is None
    assert item.type.icon is None


def test_work_item_is_immutable() -> None:
    """Test work items cannot be changed in place."""
    item = make_item()
    with pytest.raises(dataclasses.FrozenInstanceError):
        item.title = "Changed"  # type: ignore[misc]


def test_downloader_ignored_in_equality() -> None:
    """Test the bound attachment capability does not affect equality."""

    async def download(attachment_id: str) -> str | None:
        return attachment_id

    assert make_item(downloader=download) == make_item()


def test_download_attachment_without_capability() -> None:
    """Test an item without a downloader yields None."""
    assert asyncio.run(make_item().download_attachment("img1")) is None


def test_download_attachment_delegates() -> None:
    """Test the attachment id is handed to the bound downloader."""

    async def download(attachment_id: str) -> str | None:
        return f"b64:{attachment_id}"

    assert asyncio.run(make_item(downloader=download).download_attachment("img1")) == "b64:img1"
