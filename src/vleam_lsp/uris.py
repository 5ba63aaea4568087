"""Translation between SFC URIs and the URIs of their generated Gleam files."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from pathlib import Path

from pygls import uris

from vleam_lsp.config import ORIGINAL_SUFFIX, ProxySettings
from vleam_lsp.paths import is_generated_path, to_generated_path, to_original_path

logger = logging.getLogger(__name__)


def uri_to_path(uri: str | None) -> Path | None:
    """Return the filesystem path of a ``file:`` URI, else None."""
    if not uri or not uri.startswith("file:"):
        return None
    fs_path = uris.to_fs_path(uri)
    return Path(fs_path) if fs_path else None


def path_to_uri(path: Path) -> str:
    uri = uris.from_fs_path(str(path))
    return uri if uri else path.as_uri()


def is_original_uri(uri: str | None) -> bool:
    path = uri_to_path(uri)
    return path is not None and path.suffix.lower() == ORIGINAL_SUFFIX


class UriTranslator:
    """Bidirectional SFC <-> generated file URI mapping.

    The reverse map (generated -> SFC) is filled eagerly by :meth:`register`
    as SFCs pass through the proxy, and lazily by :meth:`to_composite` when the
    server mentions a generated file the proxy has not seen yet.
    """

    def __init__(self, settings: ProxySettings) -> None:
        self._settings = settings
        self._uri_map: OrderedDict[str, str] = OrderedDict()  # generated_uri -> original_uri
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._uri_map)

    def to_generated(self, composite_uri: str) -> str | None:
        """Derive the generated file URI for an SFC URI.

        None for non-file URIs and for SFCs outside the source directory.
        """
        path = uri_to_path(composite_uri)
        if path is None:
            return None
        generated_path = to_generated_path(self._settings, path)
        return path_to_uri(generated_path) if generated_path is not None else None

    def register(self, generated_uri: str, composite_uri: str) -> None:
        with self._lock:
            self._uri_map[generated_uri] = composite_uri
            self._uri_map.move_to_end(generated_uri)
            while len(self._uri_map) > self._settings.max_tracked_entries:
                evicted, _ = self._uri_map.popitem(last=False)
                logger.debug(f"PROXY: evicted uri mapping for {evicted}")

    def cached(self, generated_uri: str) -> str | None:
        with self._lock:
            original = self._uri_map.get(generated_uri)
            if original is not None:
                self._uri_map.move_to_end(generated_uri)
            return original

    def to_composite(self, generated_uri: str | None) -> str | None:
        """Map a generated file URI back to its SFC URI, or None if unknown."""
        if not generated_uri:
            return None

        original = self.cached(generated_uri)
        if original is not None:
            return original

        path = uri_to_path(generated_uri)
        if path is None or not is_generated_path(self._settings, path):
            return None

        original_path = to_original_path(self._settings, path)
        if original_path is None:
            logger.debug(f"PROXY: no source found for {generated_uri}")
            return None

        original = path_to_uri(original_path)
        self.register(generated_uri, original)
        logger.debug(f"PROXY: discovered {generated_uri} -> {original}")
        return original
