"""Shared fixtures and fakes for the exporter test suite."""

from __future__ import annotations

import logging

import pytest

from library_exporter.exceptions import APIError, AuthenticationError, DisconnectError


def make_item(index: int = 0, name: str | None = None, size=2048,
              author: str | None = "author@contoso.com",
              editor: str | None = "editor@contoso.com",
              created: str = "2024-01-15T10:30:00Z",
              modified: str = "2024-02-20T08:00:00Z",
              with_author: bool = True, with_editor: bool = True) -> dict:
    """Build a Graph listItem as returned by /lists/{list}/items"""
    name = name if name is not None else f"file_{index}.docx"
    item = {
        "id": str(index + 1),
        "createdDateTime": created,
        "lastModifiedDateTime": modified,
        "fields": {
            "FileLeafRef": name,
            "FileRef": f"/sites/team/Shared Documents/{name}",
            "File_x0020_Size": str(size) if size is not None else None,
            "Created": created,
            "Modified": modified,
        },
    }
    if with_author:
        item["createdBy"] = {"user": {"email": author, "displayName": "Author"}}
    if with_editor:
        item["lastModifiedBy"] = {"user": {"email": editor, "displayName": "Editor"}}
    return item


def make_items(count: int, start: int = 0) -> list[dict]:
    return [make_item(i) for i in range(start, start + count)]


class FakeSession:
    """In-memory stand-in for SharePointSession serving a library in pages.

    The library contents are served sequentially; each list_items call
    returns the next page_size items, like following Graph nextLinks.
    """

    def __init__(self, items: list[dict] | None = None, fail_on_call: int | None = None,
                 fail_connect: bool = False, fail_disconnect: bool = False):
        self.items = items or []
        self.fail_on_call = fail_on_call
        self.fail_connect = fail_connect
        self.fail_disconnect = fail_disconnect
        self.calls: list[tuple] = []
        self.offset = 0
        self.connected_to = None
        self.disconnect_calls = 0

    def connect(self, site_url):
        if self.fail_connect:
            raise AuthenticationError("Access denied")
        self.connected_to = site_url
        return "site-id"

    def list_items(self, library, page_size, fields):
        self.calls.append((library, page_size, tuple(fields)))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise APIError("Listing failed: 503", 503)
        page = self.items[self.offset:self.offset + page_size]
        self.offset += len(page)
        return page

    def disconnect(self):
        self.disconnect_calls += 1
        if self.fail_disconnect:
            raise DisconnectError("socket already closed")


class RecordingSink:
    """Sink that keeps appended batches in memory"""

    def __init__(self):
        self.initialized = 0
        self.batches: list[list] = []

    def initialize(self):
        self.initialized += 1
        self.batches = []

    def append(self, rows):
        rows = list(rows)
        self.batches.append(rows)
        return len(rows)

    @property
    def rows(self):
        return [row for batch in self.batches for row in batch]


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def export_logs(caplog):
    caplog.set_level(logging.INFO, logger="library_exporter")
    return caplog
