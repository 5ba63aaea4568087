"""
vleam command line entry point.

``vleam lsp`` runs the editor-protocol proxy in front of ``gleam lsp``;
``vleam format --stdin`` formats the Gleam block of an SFC.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from vleam_lsp import __version__
from vleam_lsp.bridge import ProcessBridge, ServerProcessError, open_stdio
from vleam_lsp.config import DEFAULT_SOURCE_DIR, DEFAULT_TOOLCHAIN, ProxySettings
from vleam_lsp.formatter import run_format
from vleam_lsp.transform import MessageTransformer

# Configure logging. WARNING by default, always on stderr: stdout
# carries the protocol.
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


async def serve(settings: ProxySettings) -> int:
    """Run one proxy session over stdio."""
    transformer = MessageTransformer(settings)
    bridge = ProcessBridge(transformer, settings.lsp_command, cwd=str(settings.project_root))
    await bridge.start()
    reader, writer = await open_stdio()
    return await bridge.run(reader, writer)


def run_lsp(settings: ProxySettings) -> int:
    logger.info(f"Starting vleam lsp proxy for {' '.join(settings.lsp_command)}")
    try:
        return asyncio.run(serve(settings))
    except ServerProcessError as e:
        logger.error(f"PROXY: {e}")
        return 1
    except KeyboardInterrupt:
        return 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vleam",
        description="Gleam tooling for <script lang=\"gleam\"> blocks in Vue SFCs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set the logging level (default: WARNING)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"vleam {__version__}",
    )
    parser.add_argument(
        "--toolchain",
        default=DEFAULT_TOOLCHAIN,
        help=f"Gleam executable (default: {DEFAULT_TOOLCHAIN})",
    )
    parser.add_argument(
        "--project-root",
        type=Path,
        default=None,
        help="Project root (default: current directory)",
    )
    parser.add_argument(
        "--source-dir",
        default=DEFAULT_SOURCE_DIR,
        help=f"Source directory relative to the project root (default: {DEFAULT_SOURCE_DIR})",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("lsp", help="Run the language server proxy over stdio")
    fmt = commands.add_parser(
        "format",
        help="Format the gleam portion of a Vue SFC. Currently only supports stdin",
    )
    fmt.add_argument("--stdin", action="store_true", help="Accept input on stdin")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.getLogger().setLevel(getattr(logging, args.log_level))

    settings = ProxySettings(toolchain=args.toolchain, source_dir=args.source_dir)
    if args.project_root is not None:
        settings.project_root = args.project_root.resolve()

    if args.command == "format":
        return run_format(settings, use_stdin=args.stdin)
    return run_lsp(settings)


if __name__ == "__main__":
    sys.exit(main())
