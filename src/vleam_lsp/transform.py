"""
Bidirectional message rewriting between the editor and the Gleam server.

Incoming messages (editor -> server) that reference a ``.vue`` document are
redirected to the generated ``.gleam`` file: the document URI is swapped,
inline text is cut down to the Gleam block, and line numbers are shifted up
by the block's offset. Outgoing messages (server -> editor) get the reverse
treatment: generated URIs are mapped back to SFC URIs and line numbers are
shifted down again.

Both directions take and return raw message bodies. A message that needs no
change is returned as the very same bytes.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from lsprotocol import types as lsp

from vleam_lsp.config import ProxySettings
from vleam_lsp.framing import decode_body, encode_message
from vleam_lsp.ledger import OffsetLedger, Origin
from vleam_lsp.parser import ExtractResult, ScriptBlock, extract_script_block
from vleam_lsp.paths import ensure_generated_path
from vleam_lsp.positions import shift_lines
from vleam_lsp.uris import UriTranslator, is_original_uri, uri_to_path

logger = logging.getLogger(__name__)

Extractor = Callable[[str], ExtractResult]

# Fields whose string value is a document URI
_URI_FIELDS = {"uri", "targetUri"}
# Fields holding a WorkspaceEdit-style {uri: [TextEdit, ...]} map
_URI_KEYED_FIELDS = {"changes"}

_INIT_OPTIONS_SECTION = "vleam"


class MessageTransformer:
    """Stateful rewriter shared by the two proxy pumps."""

    def __init__(
        self,
        settings: ProxySettings,
        translator: UriTranslator | None = None,
        ledger: OffsetLedger | None = None,
        extractor: Extractor | None = None,
    ) -> None:
        self._settings = settings
        self.translator = translator or UriTranslator(settings)
        self.ledger = ledger or OffsetLedger(settings.max_tracked_entries)
        self._extractor = extractor or self._default_extractor

    def _default_extractor(self, text: str) -> ExtractResult:
        return extract_script_block(text, self._settings.block_lang)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def transform_incoming(self, raw: bytes) -> bytes:
        """Rewrite an editor -> server message body."""
        message = decode_body(raw)
        if message is None:
            return raw
        try:
            transformed = self._incoming(message)
        except Exception:
            logger.exception(f"PROXY: incoming transform failed for {message.get('method')!r}, forwarding unchanged")
            return raw
        return raw if transformed is None else encode_message(transformed)

    def transform_outgoing(self, raw: bytes) -> bytes:
        """Rewrite a server -> editor message body."""
        message = decode_body(raw)
        if message is None:
            return raw
        try:
            transformed = self._outgoing(message)
        except Exception:
            logger.exception(f"PROXY: outgoing transform failed for id={message.get('id')!r}, forwarding unchanged")
            return raw
        return raw if transformed is None else encode_message(transformed)

    # ------------------------------------------------------------------
    # Incoming
    # ------------------------------------------------------------------

    def _incoming(self, message: dict[str, Any]) -> dict[str, Any] | None:
        """Return the rewritten message, or None if it should pass unchanged."""
        changed = False
        if message.get("method") == lsp.INITIALIZE:
            changed = self._consume_init_options(message)

        params = message.get("params")
        text_document = params.get("textDocument") if isinstance(params, dict) else None
        if not isinstance(text_document, dict):
            return message if changed else None

        original_uri = text_document.get("uri")
        if not isinstance(original_uri, str) or not is_original_uri(original_uri):
            return message if changed else None

        original_path = uri_to_path(original_uri)
        generated_uri = self.translator.to_generated(original_uri)
        if generated_uri is None:
            return message if changed else None

        extracted: dict[str, ScriptBlock | None] = {}
        block = self._reference_block(params, original_path, original_uri, extracted)
        if block is None:
            return message if changed else None

        offset = block.line_offset
        self._materialize(original_path, block.source_text)

        request_id = message.get("id") if "method" in message else None
        self.ledger.record(offset, uri=original_uri, request_id=request_id, origin=Origin.EDITOR)
        self.translator.register(generated_uri, original_uri)
        text_document["uri"] = generated_uri

        self._rewrite_inline_text(params, block, original_uri, extracted)

        logger.debug(f"PROXY: {message.get('method')} {original_uri} -> {generated_uri} (offset {offset})")
        return shift_lines(message, -offset)

    def _consume_init_options(self, message: dict[str, Any]) -> bool:
        params = message.get("params")
        options = params.get("initializationOptions") if isinstance(params, dict) else None
        if not isinstance(options, dict) or _INIT_OPTIONS_SECTION not in options:
            return False
        self._settings.apply_init_options(options.pop(_INIT_OPTIONS_SECTION))
        params["initializationOptions"] = options or None
        return True

    def _reference_block(
        self,
        params: dict[str, Any],
        path: Path | None,
        uri: str,
        extracted: dict[str, ScriptBlock | None],
    ) -> ScriptBlock | None:
        """Block of the newest SFC text that parses.

        Whole-document changes are tried newest first, then the inline
        document text, then the file on disk.
        """
        candidates: list[str] = []
        changes = params.get("contentChanges")
        if isinstance(changes, list):
            for change in reversed(changes):
                if isinstance(change, dict) and "range" not in change and isinstance(change.get("text"), str):
                    candidates.append(change["text"])
        text = params["textDocument"].get("text")
        if isinstance(text, str):
            candidates.append(text)

        for candidate in candidates:
            block = self._extract_cached(candidate, uri, extracted)
            if block is not None:
                return block

        disk_text = self._read_disk(path)
        if disk_text is None:
            return None
        return self._extract_cached(disk_text, uri, extracted)

    def _read_disk(self, path: Path | None) -> str | None:
        if path is None:
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            logger.debug(f"PROXY: cannot read {path}: {e}")
            return None

    def _extract_cached(self, text: str, uri: str, extracted: dict[str, ScriptBlock | None]) -> ScriptBlock | None:
        if text not in extracted:
            extracted[text] = self._extract(text, uri)
        return extracted[text]

    def _extract(self, text: str, uri: str) -> ScriptBlock | None:
        """Run the extractor; errors and failures count as "no block"."""
        try:
            result = self._extractor(text)
        except Exception as e:
            logger.warning(f"Errors parsing Vue SFC {uri}: {e}")
            return None
        if result.errors:
            logger.warning(f"Errors parsing Vue SFC {uri}: {'; '.join(result.errors)}")
            return None
        return result.block

    def _materialize(self, original_path: Path | None, text: str) -> None:
        """Write the block text to the generated file the server will index."""
        if original_path is None:
            return
        try:
            generated_path = ensure_generated_path(self._settings, original_path)
            if generated_path is None:
                return
            generated_path.write_text(text, encoding="utf-8")
        except OSError as e:
            logger.error(f"PROXY: failed to write generated file for {original_path}: {e}")

    def _rewrite_inline_text(
        self,
        params: dict[str, Any],
        block: ScriptBlock,
        uri: str,
        extracted: dict[str, ScriptBlock | None],
    ) -> None:
        """Replace SFC text carried by the message with Gleam block text.

        Each change is extracted on its own; changes without a usable block
        are dropped rather than forwarded as SFC text.
        """
        text_document = params["textDocument"]
        if isinstance(text_document.get("text"), str):
            piece = self._extract_cached(text_document["text"], uri, extracted)
            text_document["text"] = (piece or block).source_text

        changes = params.get("contentChanges")
        if not isinstance(changes, list):
            return

        kept: list[dict[str, str]] = []
        for change in changes:
            text = change.get("text") if isinstance(change, dict) else None
            if not isinstance(text, str):
                continue
            piece = self._extract_cached(text, uri, extracted)
            if piece is None:
                logger.debug(f"PROXY: dropping content change without a Gleam block for {uri}")
                continue
            kept.append({"text": piece.source_text})
        params["contentChanges"] = kept

    # ------------------------------------------------------------------
    # Outgoing
    # ------------------------------------------------------------------

    def _outgoing(self, message: dict[str, Any]) -> dict[str, Any] | None:
        """Return the rewritten message, or None if it should pass unchanged."""
        request_id = message.get("id")
        is_response = "method" not in message
        key_uri: str | None = None

        translated = dict(message)
        if is_response:
            result = message.get("result")
            if isinstance(result, dict) and isinstance(result.get("uri"), str):
                # The result's document wins over the request's: definition
                # results may point into another file.
                key_uri = self.translator.to_composite(result["uri"]) or result["uri"]
            if result is not None:
                translated["result"] = self._translate_uris(result)
        else:
            params = message.get("params")
            if isinstance(params, dict) and isinstance(params.get("uri"), str):
                key_uri = self.translator.to_composite(params["uri"]) or params["uri"]
            if params is not None:
                translated["params"] = self._translate_uris(params)

        # Only responses answer editor requests; server requests carry server ids.
        offset = self.ledger.lookup(
            uri=key_uri,
            request_id=request_id,
            origin=Origin.EDITOR if is_response else Origin.SERVER,
        )
        if offset:
            translated = shift_lines(translated, offset)

        return None if translated == message else translated

    def _translate_uri(self, uri: str) -> str:
        return self.translator.to_composite(uri) or uri

    def _translate_uris(self, value: Any) -> Any:
        """Copy of *value* with generated URIs mapped back to SFC URIs."""
        if isinstance(value, dict):
            result: dict[str, Any] = {}
            for key, item in value.items():
                if key in _URI_FIELDS and isinstance(item, str):
                    result[key] = self._translate_uri(item)
                elif key in _URI_KEYED_FIELDS and isinstance(item, dict):
                    result[key] = {
                        self._translate_uri(uri): self._translate_uris(edits)
                        for uri, edits in item.items()
                    }
                else:
                    result[key] = self._translate_uris(item)
            return result
        if isinstance(value, list):
            return [self._translate_uris(item) for item in value]
        return value
