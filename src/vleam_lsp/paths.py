"""
Generated-file path derivation.

A ``.vue`` file under the source directory maps to a ``.gleam`` file under
``<source>/<generated dir>`` with the same relative location. Gleam module
names are lower case, so every derived segment is lower-cased. The reverse
direction has to rediscover the original casing by scanning the source tree.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from vleam_lsp.config import GENERATED_SUFFIX, ORIGINAL_SUFFIX, ProxySettings

logger = logging.getLogger(__name__)


def generated_name(original_name: str) -> str:
    """``Counter.vue`` -> ``counter.gleam``."""
    stem = original_name[: -len(ORIGINAL_SUFFIX)] if original_name.lower().endswith(ORIGINAL_SUFFIX) else original_name
    return f"{stem}{GENERATED_SUFFIX}".lower()


def is_generated_path(settings: ProxySettings, path: Path) -> bool:
    try:
        path.relative_to(settings.generated_path)
    except ValueError:
        return False
    return True


def to_generated_path(settings: ProxySettings, original_path: Path) -> Path | None:
    """Derive the generated file path for an SFC. Pure; touches nothing on disk.

    Returns None for SFCs outside the source directory: their derived path
    would escape the generated root.
    """
    try:
        relative_dir = original_path.parent.relative_to(settings.source_path)
    except ValueError:
        return None
    parts = [part.lower() for part in relative_dir.parts if part != os.curdir]
    if os.pardir in parts:
        return None
    return settings.generated_path.joinpath(*parts, generated_name(original_path.name))


def ensure_generated_path(settings: ProxySettings, original_path: Path) -> Path | None:
    """Like :func:`to_generated_path`, also creating the parent directory."""
    path = to_generated_path(settings, original_path)
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _match_entry(directory: Path, name: str, *, want_dir: bool) -> Path | None:
    """Find an entry of *directory* whose (derived) name matches *name* case-insensitively."""
    target = name.lower()
    with os.scandir(directory) as entries:
        for entry in sorted(entries, key=lambda e: e.name):
            if want_dir:
                if entry.is_dir() and entry.name.lower() == target:
                    return Path(entry.path)
            elif entry.is_file() and entry.name.lower().endswith(ORIGINAL_SUFFIX):
                if generated_name(entry.name) == target:
                    return Path(entry.path)
    return None


def to_original_path(settings: ProxySettings, generated_path: Path) -> Path | None:
    """Locate the SFC a generated file was derived from.

    Returns None when *generated_path* is outside the generated root or when
    no matching SFC exists. Missing directories are an ordinary miss; other
    filesystem errors are logged and also reported as a miss.
    """
    if not is_generated_path(settings, generated_path):
        return None

    relative = generated_path.relative_to(settings.generated_path)
    directory = settings.source_path

    try:
        for part in relative.parts[:-1]:
            match = _match_entry(directory, part, want_dir=True)
            if match is None:
                return None
            directory = match
        return _match_entry(directory, relative.name, want_dir=False)
    except (FileNotFoundError, NotADirectoryError):
        return None
    except OSError as e:
        logger.warning(f"PROXY: cannot scan {directory} for the source of {generated_path}: {e}")
        return None
