"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline and quiet/verbose rules
- JSON and plain data output
- Binary payloads and output file redirection
- Markup escaping of diagnostics
- Global instance management
"""

from __future__ import annotations

import json
import threading

import pytest

from cachenet import output as output_module
from cachenet.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("cachenet.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("cachenet.output._is_tty", lambda: True)


# ------------------------------------------------------------------ #
# Format resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager().format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager().format == OutputFormat.RICH

    def test_no_color_forces_plain_on_tty(self, tty):
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_format_wins(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color()

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color()

    def test_enabled_by_default(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert not _should_disable_color()


# ------------------------------------------------------------------ #
# Diagnostics
# ------------------------------------------------------------------ #


class TestDiagnostics:
    def test_messages_go_to_stderr(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.info("hello")
        mgr.warning("careful")
        mgr.error("broken")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "hello" in captured.err
        assert "Warning: careful" in captured.err
        assert "Error: broken" in captured.err

    def test_quiet_suppresses_info_but_not_errors(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.success("hidden too")
        mgr.warning("shown")
        mgr.error("shown too")
        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "Warning: shown" in err
        assert "Error: shown too" in err

    def test_debug_requires_verbose(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("quiet")
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("loud")
        err = capsys.readouterr().err
        assert "quiet" not in err
        assert "[debug] loud" in err

    def test_markup_in_messages_is_escaped(self, capsys, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=False)
        mgr.error("GET /items?tags[red]=1")
        assert "tags[red]=1" in capsys.readouterr().err

    def test_concurrent_messages_are_whole_lines(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)

        def worker(index: int) -> None:
            for n in range(20):
                mgr.warning(f"worker-{index}-{n}")

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        lines = capsys.readouterr().err.splitlines()
        assert len(lines) == 80
        assert all(line.startswith("Warning: worker-") for line in lines)


# ------------------------------------------------------------------ #
# Data output
# ------------------------------------------------------------------ #


class TestFormatResponse:
    def test_json_format(self, capsys):
        OutputManager(format=OutputFormat.JSON).format_response({"id": 1})
        assert json.loads(capsys.readouterr().out) == {"id": 1}

    def test_plain_dict(self, capsys):
        OutputManager(format=OutputFormat.PLAIN).format_response({"id": 1, "name": "ada"})
        assert capsys.readouterr().out == "id\t1\nname\tada\n"

    def test_plain_list_of_dicts(self, capsys):
        OutputManager(format=OutputFormat.PLAIN).format_response([{"id": 1}, {"id": 2}])
        assert capsys.readouterr().out == "1\n2\n"

    def test_bytes_report_size_only(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).format_response(b"\x00" * 10, "image/png")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "<10 bytes of image/png>" in captured.err

    def test_output_file_json(self, tmp_path):
        target = tmp_path / "out.json"
        OutputManager(format=OutputFormat.JSON, output_file=str(target)).format_response({"a": 1})
        assert json.loads(target.read_text()) == {"a": 1}

    def test_output_file_bytes(self, tmp_path):
        target = tmp_path / "out.bin"
        mgr = OutputManager(output_file=str(target))
        assert mgr.output_file == str(target)
        mgr.format_response(b"\x00\xff")
        assert target.read_bytes() == b"\x00\xff"


class TestPrintTable:
    def test_plain(self, capsys):
        OutputManager(format=OutputFormat.PLAIN).print_table(["k", "v"], [["a", "1"]])
        assert capsys.readouterr().out == "k\tv\na\t1\n"

    def test_json(self, capsys):
        OutputManager(format=OutputFormat.JSON).print_table(["k", "v"], [["a", "1"]])
        assert json.loads(capsys.readouterr().out) == [{"k": "a", "v": "1"}]


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_lazy_default(self):
        assert isinstance(get_output(), OutputManager)
        assert get_output() is get_output()

    def test_set_and_reset(self):
        mgr = OutputManager(quiet=True)
        set_output(mgr)
        assert get_output() is mgr
        reset_output()
        assert get_output() is not mgr

    def test_convenience_functions_use_global(self, capsys):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.error("via module")
        assert "Error: via module" in capsys.readouterr().err
