"""
Per-document and per-request line offsets.

An offset is the number of SFC lines preceding line 0 of the generated file.
Offsets are recorded by the incoming transform and consulted by the outgoing
one, keyed by the SFC URI and/or the id of the request that carried it.
"""

from __future__ import annotations

import enum
import logging
import threading
from collections import OrderedDict
from typing import Hashable, Union

from vleam_lsp.config import DEFAULT_MAX_TRACKED_ENTRIES

logger = logging.getLogger(__name__)

RequestId = Union[int, str]


class Origin(enum.Enum):
    """Which stream issued a request. Ids are only unique per stream."""

    EDITOR = "editor"
    SERVER = "server"


def _uri_key(uri: str) -> tuple[str, str]:
    return ("uri", uri)


def _request_key(origin: Origin, request_id: RequestId) -> tuple[Origin, RequestId]:
    return (origin, request_id)


class OffsetLedger:
    """LRU-bounded map of ledger keys to line offsets."""

    def __init__(self, max_entries: int = DEFAULT_MAX_TRACKED_ENTRIES) -> None:
        self._max_entries = max_entries
        self._entries: OrderedDict[Hashable, int] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def record(
        self,
        offset: int,
        *,
        uri: str | None = None,
        request_id: RequestId | None = None,
        origin: Origin = Origin.EDITOR,
    ) -> None:
        """Store *offset* under the document key, the request key, or both."""
        if offset < 0:
            raise ValueError(f"line offset must be >= 0, got {offset}")

        keys: list[Hashable] = []
        if uri:
            keys.append(_uri_key(uri))
        if request_id is not None:
            keys.append(_request_key(origin, request_id))

        with self._lock:
            for key in keys:
                self._entries[key] = offset
                self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def lookup(
        self,
        *,
        uri: str | None = None,
        request_id: RequestId | None = None,
        origin: Origin = Origin.EDITOR,
    ) -> int | None:
        """Return the offset for *uri*, falling back to *request_id*."""
        keys: list[Hashable] = []
        if uri:
            keys.append(_uri_key(uri))
        if request_id is not None:
            keys.append(_request_key(origin, request_id))

        with self._lock:
            for key in keys:
                offset = self._entries.get(key)
                if offset is not None:
                    self._entries.move_to_end(key)
                    return offset
        return None
