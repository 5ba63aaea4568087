"""
``vleam format --stdin``: format the Gleam block of an SFC.

The SFC is read from stdin, its Gleam block is piped through
``gleam format --stdin`` and the SFC is written to stdout with the block
replaced by the formatted code.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from typing import BinaryIO, TextIO

from vleam_lsp.config import ProxySettings
from vleam_lsp.parser import ScriptBlock, extract_script_block

logger = logging.getLogger(__name__)


class FormatError(Exception):
    """The external formatter failed."""

    def __init__(self, message: str, returncode: int = 1) -> None:
        super().__init__(message)
        self.returncode = returncode


def splice_block(source: str, block: ScriptBlock, formatted: str) -> str:
    """Replace the block content in *source* with ``"\\n" + formatted``."""
    return source.replace(block.content, "\n" + formatted, 1)


def format_block(command: list[str], code: str) -> str:
    """Run the formatter command on *code* and return its stdout."""
    logger.debug(f"Running formatter: {command}")
    try:
        completed = subprocess.run(
            command,
            input=code.encode("utf-8"),
            capture_output=True,
            check=False,
        )
    except OSError as e:
        raise FormatError(f"failed to start {' '.join(command)}: {e}") from e

    if completed.returncode != 0:
        raise FormatError(completed.stderr.decode("utf-8", errors="replace"), completed.returncode)
    return completed.stdout.decode("utf-8")


def format_sfc(source: str, settings: ProxySettings) -> str:
    """Return *source* with its Gleam block formatted.

    Raises:
        FormatError: when the SFC has no Gleam block or the formatter fails.
    """
    result = extract_script_block(source, settings.block_lang)
    if result.errors:
        logger.warning(f"Errors parsing Vue SFC: {'; '.join(result.errors)}")
    if result.block is None:
        raise FormatError("Unable to parse Vue SFC")

    formatted = format_block(settings.format_command, result.block.content)
    return splice_block(source, result.block, formatted)


def run_format(
    settings: ProxySettings,
    use_stdin: bool,
    stdin: BinaryIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    """CLI action for ``format``. Returns the process exit status."""
    if not use_stdin:
        logger.error("Formatting is only supported with the --stdin flag")
        return 1

    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout

    source = stdin.read().decode("utf-8")
    try:
        stdout.write(format_sfc(source, settings))
    except FormatError as e:
        logger.error(str(e).rstrip())
        return e.returncode
    stdout.flush()
    return 0
