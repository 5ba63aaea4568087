"""
JSON-RPC message framing over byte streams.

Messages are ``Content-Length`` delimited, as in the LSP base protocol. The
readers return the raw body so that messages the proxy does not modify can be
forwarded byte for byte.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

CONTENT_LENGTH = b"content-length"


class FramingError(Exception):
    """The byte stream does not follow the LSP base protocol."""


async def read_message(reader: asyncio.StreamReader) -> bytes | None:
    """Read one framed message and return its body, or None on EOF."""
    content_length: int | None = None
    while True:
        line = await reader.readline()
        if not line:
            return None  # EOF
        if line in (b"\r\n", b"\n"):
            if content_length is None:
                # Stray blank line between messages
                continue
            break
        name, sep, value = line.partition(b":")
        if not sep:
            raise FramingError(f"malformed header line: {line!r}")
        if name.strip().lower() == CONTENT_LENGTH:
            try:
                content_length = int(value.strip())
            except ValueError as e:
                raise FramingError(f"invalid Content-Length: {value!r}") from e

    try:
        return await reader.readexactly(content_length)
    except asyncio.IncompleteReadError:
        return None


def frame(body: bytes) -> bytes:
    return f"Content-Length: {len(body)}\r\n\r\n".encode("ascii") + body


async def write_message(writer: asyncio.StreamWriter, body: bytes) -> None:
    writer.write(frame(body))
    await writer.drain()


def decode_body(body: bytes) -> dict[str, Any] | None:
    """Decode a message body; None when it is not a JSON object."""
    try:
        message = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"PROXY: undecodable message body: {e}")
        return None
    return message if isinstance(message, dict) else None


def encode_message(message: dict[str, Any]) -> bytes:
    return json.dumps(message, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
