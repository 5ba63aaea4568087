"""
Process bridge between the editor and the Gleam language server.

Spawns ``gleam lsp`` and runs two independent pumps, each moving one message
at a time through the :class:`MessageTransformer`:

    editor stdin  -> transform_incoming -> server stdin
    server stdout -> transform_outgoing -> editor stdout

The server's stderr is copied to ours unchanged. The session ends when
either side closes its stream or the server exits.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import BinaryIO, Callable

from vleam_lsp.framing import FramingError, read_message, write_message
from vleam_lsp.transform import MessageTransformer

logger = logging.getLogger(__name__)

Transform = Callable[[bytes], bytes]


class ServerProcessError(RuntimeError):
    """The language server process could not be started or died."""


async def open_stdio() -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Wrap this process's stdin/stdout in asyncio streams."""
    loop = asyncio.get_running_loop()

    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin.buffer)

    w_transport, w_protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, sys.stdout.buffer
    )
    writer = asyncio.StreamWriter(w_transport, w_protocol, None, loop)
    return reader, writer


async def pump(
    name: str,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    transform: Transform,
) -> None:
    """Move framed messages from *reader* to *writer* until EOF."""
    while True:
        try:
            body = await read_message(reader)
        except FramingError as e:
            logger.error(f"PROXY: {name}: {e}; closing stream")
            return
        if body is None:
            logger.info(f"PROXY: {name}: end of stream")
            return

        # Transforms block on file I/O and parsing; run them off the loop.
        transformed = await asyncio.to_thread(transform, body)
        await write_message(writer, transformed)


async def relay_stderr(reader: asyncio.StreamReader, sink: BinaryIO | None = None) -> None:
    """Copy the server's stderr to our own, unmodified."""
    out = sink if sink is not None else sys.stderr.buffer
    while True:
        chunk = await reader.read(4096)
        if not chunk:
            return
        out.write(chunk)
        out.flush()


class ProcessBridge:
    """Owns the server subprocess and the two message pumps."""

    def __init__(self, transformer: MessageTransformer, command: list[str], cwd: str | None = None) -> None:
        self._transformer = transformer
        self._command = command
        self._cwd = cwd
        self._process: asyncio.subprocess.Process | None = None

    async def start(self) -> asyncio.subprocess.Process:
        """Spawn the language server; no shell is involved."""
        logger.info(f"PROXY: starting server: command={self._command}, cwd={self._cwd}")
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._cwd,
            )
        except OSError as e:
            raise ServerProcessError(f"failed to start {' '.join(self._command)}: {e}") from e
        logger.info(f"PROXY: server started (pid={self._process.pid})")
        return self._process

    async def run(self, editor_reader: asyncio.StreamReader, editor_writer: asyncio.StreamWriter) -> int:
        """Run the session until one side goes away; return the server's exit code."""
        process = self._process or await self.start()
        if process.stdin is None or process.stdout is None or process.stderr is None:
            raise ServerProcessError("server process was started without stdio pipes")

        incoming = asyncio.create_task(
            pump("editor->server", editor_reader, process.stdin, self._transformer.transform_incoming)
        )
        outgoing = asyncio.create_task(
            pump("server->editor", process.stdout, editor_writer, self._transformer.transform_outgoing)
        )
        stderr = asyncio.create_task(relay_stderr(process.stderr))
        exited = asyncio.create_task(process.wait())

        done, pending = await asyncio.wait(
            {incoming, outgoing, exited}, return_when=asyncio.FIRST_COMPLETED
        )

        failure: BaseException | None = None
        for task in done:
            if task is not exited and task.exception() is not None:
                failure = task.exception()

        for task in pending:
            if task is not exited:
                task.cancel()

        if process.returncode is None:
            await self._terminate(process)
        await asyncio.gather(incoming, outgoing, return_exceptions=True)
        await asyncio.gather(stderr, return_exceptions=True)

        if failure is not None:
            if isinstance(failure, (BrokenPipeError, ConnectionResetError)):
                raise ServerProcessError(f"server stream closed: {failure}") from failure
            raise failure

        logger.info(f"PROXY: server exited with code {process.returncode}")
        return process.returncode if process.returncode is not None else 0

    async def _terminate(self, process: asyncio.subprocess.Process, timeout: float = 5.0) -> None:
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()
        try:
            await asyncio.wait_for(process.wait(), timeout)
            return
        except asyncio.TimeoutError:
            pass
        logger.warning(f"PROXY: server did not exit, terminating pid={process.pid}")
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
