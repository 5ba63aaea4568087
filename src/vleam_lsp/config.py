"""
Runtime settings for the vleam proxy.

Settings come from CLI flags (see ``server.main``) and may be overridden by
the editor through ``initializationOptions.vleam`` in the ``initialize``
request.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_DIR = "src"
DEFAULT_GENERATED_DIR = "vleam_generated"
DEFAULT_TOOLCHAIN = "gleam"
DEFAULT_MAX_TRACKED_ENTRIES = 4096

ORIGINAL_SUFFIX = ".vue"
GENERATED_SUFFIX = ".gleam"

# initializationOptions keys -> ProxySettings attributes
_INIT_OPTION_KEYS: dict[str, str] = {
    "sourceDir": "source_dir",
    "generatedDir": "generated_dir",
}


@dataclass
class ProxySettings:
    """Where SFCs live, where generated files go, and which toolchain to run."""

    project_root: Path = field(default_factory=lambda: Path(os.getcwd()))
    source_dir: str = DEFAULT_SOURCE_DIR
    generated_dir: str = DEFAULT_GENERATED_DIR
    toolchain: str = DEFAULT_TOOLCHAIN
    block_lang: str = "gleam"
    max_tracked_entries: int = DEFAULT_MAX_TRACKED_ENTRIES

    @property
    def source_path(self) -> Path:
        return self.project_root / self.source_dir

    @property
    def generated_path(self) -> Path:
        return self.source_path / self.generated_dir

    @property
    def lsp_command(self) -> list[str]:
        return [self.toolchain, "lsp"]

    @property
    def format_command(self) -> list[str]:
        return [self.toolchain, "format", "--stdin"]

    def apply_init_options(self, options: Any) -> bool:
        """Apply ``initializationOptions.vleam`` overrides.

        Returns True when at least one setting changed.
        """
        if not isinstance(options, dict):
            return False

        changed = False
        for key, attr in _INIT_OPTION_KEYS.items():
            value = options.get(key)
            if isinstance(value, str) and value and getattr(self, attr) != value:
                setattr(self, attr, value)
                changed = True
            elif value is not None and not isinstance(value, str):
                logger.warning(f"Ignoring initializationOptions.vleam.{key}: expected a string, got {value!r}")

        if changed:
            logger.info(f"PROXY: settings updated from client: source={self.source_path}, generated={self.generated_path}")
        return changed
