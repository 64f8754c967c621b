"""Tests for appdrop.output.console module."""

from __future__ import annotations

import pytest

from appdrop.output.console import (
    ConsoleProtocol,
    MockConsole,
    RichConsole,
    Style,
    Verbosity,
)


class TestMockConsole:
    def test_records_styles(self) -> None:
        console = MockConsole()
        console.print("plain")
        console.success("done")
        console.error("broken")
        console.warning("careful")
        console.info("fyi")
        console.header("Signing app")
        console.debug("/usr/bin/codesign --force")

        assert [o.style for o in console.outputs] == [
            Style.DEFAULT,
            Style.SUCCESS,
            Style.ERROR,
            Style.WARNING,
            Style.INFO,
            Style.HEADER,
            Style.DIM,
        ]
        assert console.messages[2] == "error: broken"
        assert console.headers == ["Signing app"]
        assert console.has_error()
        assert console.has_warning()

    def test_find(self) -> None:
        console = MockConsole()
        console.print("submission id: abc")
        console.print("other")
        assert [o.message for o in console.find("abc")] == ["submission id: abc"]

    def test_satisfies_protocol(self) -> None:
        console: ConsoleProtocol = MockConsole()
        console.print("ok")


class TestRichConsole:
    def test_header_and_success(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.header("Creating DMG")
        console.success("Release: build/[x].dmg")

        out = capsys.readouterr().out
        assert "==> Creating DMG" in out
        assert "OK Release: build/[x].dmg" in out

    def test_errors_go_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.error("stage failed")
        console.warning("feed disabled")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "error: stage failed" in captured.err
        assert "warning: feed disabled" in captured.err

    def test_quiet_keeps_only_problems(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole(Verbosity.QUIET)
        console.print("progress")
        console.header("Building")
        console.error("broken")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "broken" in captured.err

    def test_debug_only_when_verbose(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole().debug("xcodebuild archive")
        assert capsys.readouterr().out == ""

        RichConsole(Verbosity.VERBOSE).debug("xcodebuild archive")
        assert "xcodebuild archive" in capsys.readouterr().out

    def test_data_survives_quiet(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole(Verbosity.QUIET).data('{"dmgPath": "release/[x].dmg"}')

        assert capsys.readouterr().out.strip() == '{"dmgPath": "release/[x].dmg"}'
