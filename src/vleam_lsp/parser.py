"""
Tree-sitter integration for Vue single-file components.

This module locates the ``<script lang="gleam">`` block of an SFC using the
tree-sitter-html grammar and reports its content and source span using the
Vue compiler's 1-based line/column convention.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import tree_sitter_html
from tree_sitter import Language, Node, Parser

logger = logging.getLogger(__name__)


@dataclass
class ScriptBlock:
    """A ``<script>`` element's content and location in its SFC."""

    content: str
    start_line: int  # 1-based line where the content begins
    start_column: int  # 1-based
    end_line: int
    end_column: int
    attrs: dict[str, str | bool] = field(default_factory=dict)

    @property
    def lang(self) -> str | None:
        lang = self.attrs.get("lang")
        return lang if isinstance(lang, str) else None

    @property
    def is_setup(self) -> bool:
        return bool(self.attrs.get("setup"))

    @property
    def source_text(self) -> str:
        """Content with the single leading newline after the start tag removed."""
        if self.content.startswith("\r\n"):
            return self.content[2:]
        if self.content.startswith("\n"):
            return self.content[1:]
        return self.content

    @property
    def line_offset(self) -> int:
        """Number of SFC lines preceding line 0 of :attr:`source_text`."""
        if self.source_text != self.content:
            return self.start_line
        return self.start_line - 1


@dataclass
class ExtractResult:
    """Result of extracting the embedded block from a document."""

    block: ScriptBlock | None
    errors: list[str] = field(default_factory=list)


class SfcParser:
    """Parser for Vue SFCs using tree-sitter-html."""

    SCRIPT_TYPES = {"script_element"}

    def __init__(self, lang: str = "gleam"):
        self.lang = lang
        self._language = Language(tree_sitter_html.language())
        self._parser = Parser()
        self._parser.language = self._language

    @staticmethod
    def _node_text(node: Node) -> str:
        return node.text.decode("utf-8") if node.text else ""

    def extract(self, source: str) -> ExtractResult:
        """Find the top-level, non-setup script block written in ``self.lang``."""
        data = source.encode("utf-8")
        tree = self._parser.parse(data)

        errors = self._collect_errors(tree.root_node)
        block: ScriptBlock | None = None

        for node in tree.root_node.children:
            if node.type not in self.SCRIPT_TYPES:
                continue
            candidate = self._script_block(node, data)
            if candidate is None:
                continue
            if not candidate.is_setup and candidate.lang == self.lang:
                block = candidate

        return ExtractResult(block=block, errors=errors)

    def _script_block(self, node: Node, data: bytes) -> ScriptBlock | None:
        start_tag = next((c for c in node.children if c.type == "start_tag"), None)
        end_tag = next((c for c in node.children if c.type == "end_tag"), None)
        if start_tag is None or end_tag is None or end_tag.is_missing or end_tag.has_error:
            return None

        content = data[start_tag.end_byte:end_tag.start_byte].decode("utf-8")
        start_row, start_col = start_tag.end_point[0], start_tag.end_point[1]
        end_row, end_col = end_tag.start_point[0], end_tag.start_point[1]

        return ScriptBlock(
            content=content,
            start_line=start_row + 1,
            start_column=start_col + 1,
            end_line=end_row + 1,
            end_column=end_col + 1,
            attrs=self._attributes(start_tag),
        )

    def _attributes(self, start_tag: Node) -> dict[str, str | bool]:
        attrs: dict[str, str | bool] = {}
        for attr in start_tag.children:
            if attr.type != "attribute":
                continue
            name: str | None = None
            value: str | bool = True
            for part in attr.children:
                if part.type == "attribute_name":
                    name = self._node_text(part)
                elif part.type == "attribute_value":
                    value = self._node_text(part) or True
                elif part.type == "quoted_attribute_value":
                    inner = [c for c in part.children if c.type == "attribute_value"]
                    value = self._node_text(inner[0]) if inner else True
            if name:
                attrs[name] = value
        return attrs

    def _collect_errors(self, root: Node) -> list[str]:
        """Report syntax errors at the top level and inside script elements.

        Element bodies such as ``<template>`` hold Vue template syntax, which
        is not HTML; errors inside them do not concern the script block.
        """
        errors: list[str] = []

        def visit(node: Node) -> None:
            if node.type == "ERROR" or node.is_missing:
                row, col = node.start_point[0], node.start_point[1]
                kind = f"missing {node.type}" if node.is_missing else "syntax error"
                errors.append(f"{row + 1}:{col + 1}: {kind}")
                return
            if node.has_error:
                for child in node.children:
                    visit(child)

        for node in root.children:
            if node.type == "ERROR" or node.is_missing or node.type in self.SCRIPT_TYPES:
                visit(node)
        return errors


# Lazy singleton parser per block language
_parsers: dict[str, SfcParser] = {}


def extract_script_block(source: str, lang: str = "gleam") -> ExtractResult:
    """Extract the ``<script lang=...>`` block from SFC source text."""
    parser = _parsers.get(lang)
    if parser is None:
        parser = _parsers[lang] = SfcParser(lang)
    return parser.extract(source)
