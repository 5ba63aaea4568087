"""Shared fixtures for vleam-lsp tests."""

from pathlib import Path

import pytest

from vleam_lsp.config import ProxySettings

GLEAM_CODE = 'import gleam/io\n\npub fn main() {\n  io.println("hi")\n}\n'


def make_sfc(gleam: str = GLEAM_CODE, script_line: int = 10, lang: str = "gleam") -> str:
    """Build a Vue SFC whose ``<script>`` start tag sits on 1-based line *script_line*."""
    header = ["<template>", "  <div>hello</div>", "</template>"]
    header += [""] * (script_line - 1 - len(header))
    return "\n".join(header) + "\n" + f'<script lang="{lang}">\n' + gleam + "</script>\n"


@pytest.fixture
def settings(tmp_path: Path) -> ProxySettings:
    (tmp_path / "src").mkdir()
    return ProxySettings(project_root=tmp_path)


@pytest.fixture
def write_sfc(settings: ProxySettings):
    """Write an SFC below ``src/`` and return its path."""

    def _write(relative: str, text: str) -> Path:
        path = settings.source_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
