"""Tests for the SFC formatter passthrough."""

import io
from unittest.mock import MagicMock, patch

import pytest

from vleam_lsp.config import ProxySettings
from vleam_lsp.formatter import FormatError, format_block, format_sfc, run_format

from conftest import make_sfc

UNFORMATTED = "pub fn main(){\n1}\n"
FORMATTED = "pub fn main() {\n  1\n}\n"


def _completed(returncode=0, stdout=b"", stderr=b""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestFormatBlock:

    def test_pipes_code_through_command(self):
        with patch("vleam_lsp.formatter.subprocess.run", return_value=_completed(stdout=FORMATTED.encode())) as run:
            assert format_block(["gleam", "format", "--stdin"], UNFORMATTED) == FORMATTED

        args, kwargs = run.call_args
        assert args[0] == ["gleam", "format", "--stdin"]
        assert kwargs["input"] == UNFORMATTED.encode()

    def test_failure_raises(self):
        with patch("vleam_lsp.formatter.subprocess.run", return_value=_completed(returncode=2, stderr=b"syntax error")):
            with pytest.raises(FormatError) as excinfo:
                format_block(["gleam", "format", "--stdin"], UNFORMATTED)
        assert excinfo.value.returncode == 2
        assert "syntax error" in str(excinfo.value)

    def test_missing_executable(self):
        with pytest.raises(FormatError):
            format_block(["vleam-test-no-such-formatter"], UNFORMATTED)


class TestFormatSfc:

    def test_replaces_block_content(self):
        source = make_sfc(gleam=UNFORMATTED, script_line=5)
        with patch("vleam_lsp.formatter.subprocess.run", return_value=_completed(stdout=FORMATTED.encode())) as run:
            result = format_sfc(source, ProxySettings(toolchain="gleam"))

        assert result == make_sfc(gleam=FORMATTED, script_line=5)
        assert run.call_args[1]["input"] == ("\n" + UNFORMATTED).encode()

    def test_uses_configured_toolchain(self):
        with patch("vleam_lsp.formatter.subprocess.run", return_value=_completed(stdout=FORMATTED.encode())) as run:
            format_sfc(make_sfc(gleam=UNFORMATTED), ProxySettings(toolchain="/opt/gleam/bin/gleam"))
        assert run.call_args[0][0] == ["/opt/gleam/bin/gleam", "format", "--stdin"]

    def test_no_block(self):
        with pytest.raises(FormatError):
            format_sfc("<template><div /></template>\n", ProxySettings())


class TestRunFormat:

    def test_requires_stdin_flag(self):
        stdout = io.StringIO()
        assert run_format(ProxySettings(), use_stdin=False, stdin=io.BytesIO(b""), stdout=stdout) == 1
        assert stdout.getvalue() == ""

    def test_writes_formatted_sfc(self):
        source = make_sfc(gleam=UNFORMATTED)
        stdout = io.StringIO()
        with patch("vleam_lsp.formatter.subprocess.run", return_value=_completed(stdout=FORMATTED.encode())):
            code = run_format(ProxySettings(), use_stdin=True, stdin=io.BytesIO(source.encode()), stdout=stdout)

        assert code == 0
        assert stdout.getvalue() == make_sfc(gleam=FORMATTED)

    def test_unparseable_sfc(self):
        stdout = io.StringIO()
        code = run_format(ProxySettings(), use_stdin=True, stdin=io.BytesIO(b"<template></template>"), stdout=stdout)
        assert code == 1
        assert stdout.getvalue() == ""

    def test_formatter_failure_status(self):
        stdout = io.StringIO()
        with patch("vleam_lsp.formatter.subprocess.run", return_value=_completed(returncode=4, stderr=b"bad")):
            code = run_format(
                ProxySettings(), use_stdin=True, stdin=io.BytesIO(make_sfc().encode()), stdout=stdout
            )
        assert code == 4
        assert stdout.getvalue() == ""
