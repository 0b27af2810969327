"""Tests for the resuse previewer application."""

import pytest
from textual.widgets import Input

from resuse.app import ResuseApp, build_parser, describe_process, to_single_line
from resuse.models import Scope
from resuse.template import DEFAULT_FORMAT


def test_to_single_line():
    """Test newlines and tabs become escapes."""
    assert to_single_line("%U\n%S\t%E") == "%U\\n%S\\t%E"
    assert to_single_line("plain") == "plain"


def test_describe_process():
    """Test the header names the current process and scope."""
    text = describe_process(Scope.PROCESS)
    assert text.startswith("PID ")
    assert "scope: process" in text


def test_parser_defaults():
    """Test command line defaults."""
    args = build_parser().parse_args([])
    assert args.format == DEFAULT_FORMAT
    assert args.scope == "process"
    assert args.log_level == "WARNING"
    assert args.log_file is None


def test_parser_options(tmp_path):
    """Test command line options."""
    args = build_parser().parse_args(
        ["--format", "%e\\n", "--scope", "thread", "--log-level", "DEBUG", "--log-file", str(tmp_path / "x.log")]
    )
    assert args.format == "%e\\n"
    assert Scope(args.scope) is Scope.THREAD
    assert args.log_file == tmp_path / "x.log"


@pytest.mark.asyncio
async def test_app_creation():
    """Test ResuseApp can be instantiated."""
    app = ResuseApp()
    assert app.title == "resuse"
    assert app.sub_title == "Resource Usage Template Preview"
    assert app.scope is Scope.PROCESS
    assert app.template == to_single_line(DEFAULT_FORMAT)
    assert app.snapshot is None


@pytest.mark.asyncio
async def test_app_compose():
    """Test ResuseApp composes correctly."""
    app = ResuseApp()
    async with app.run_test() as pilot:
        assert pilot.app.query_one("#process-header") is not None
        assert pilot.app.query_one("#format-input") is not None
        assert pilot.app.query_one("#output") is not None


@pytest.mark.asyncio
async def test_app_measures_on_mount():
    """Test a finished snapshot is rendered once the app is up."""
    app = ResuseApp(fmt="%e|%U")
    async with app.run_test():
        assert app.snapshot is not None
        assert app.snapshot.stopped
        text, error = app.render_template()
        assert "|" in text
        assert error == ""


@pytest.mark.asyncio
async def test_app_rerenders_on_edit():
    """Test editing the template re-renders the current snapshot."""
    app = ResuseApp(fmt="%e")
    async with app.run_test() as pilot:
        snapshot = app.snapshot
        pilot.app.query_one("#format-input", Input).value = "%%\\t%Q"
        await pilot.pause()
        assert app.template == "%%\\t%Q"
        assert app.render_template() == ("%\t?Q", "")
        assert app.snapshot is snapshot


@pytest.mark.asyncio
async def test_app_reports_malformed_template():
    """Test a trailing % is shown as an error with the partial output."""
    app = ResuseApp(fmt="cpu %")
    async with app.run_test():
        text, error = app.render_template()
        assert text == "cpu ?"
        assert "Malformed" in error


@pytest.mark.asyncio
async def test_app_measure_binding():
    """Test that F2 takes a new measurement."""
    app = ResuseApp()
    async with app.run_test() as pilot:
        first = app.snapshot
        await pilot.press("f2")
        assert app.snapshot is not first
        assert app.snapshot.stopped
        assert app.snapshot.start >= first.end


@pytest.mark.asyncio
async def test_app_default_format_binding():
    """Test that F4 loads the default template."""
    app = ResuseApp(fmt="%e")
    async with app.run_test() as pilot:
        await pilot.press("f4")
        await pilot.pause()
        assert app.template == to_single_line(DEFAULT_FORMAT)


@pytest.mark.asyncio
async def test_app_toggle_scope_binding():
    """Test that F3 switches scope when the host supports threads."""
    app = ResuseApp()
    async with app.run_test() as pilot:
        await pilot.press("f3")
        if Scope.THREAD.available:
            assert app.scope is Scope.THREAD
            await pilot.press("f2")
            assert app.snapshot.scope is Scope.THREAD
        else:
            assert app.scope is Scope.PROCESS


@pytest.mark.asyncio
async def test_app_quit_binding():
    """Test that F10 triggers quit."""
    app = ResuseApp()
    async with app.run_test() as pilot:
        await pilot.press("f10")
        assert pilot.app._exit
