"""resuse - Interactive template previewer."""

import argparse
import logging
from pathlib import Path

import psutil
from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import Footer, Input, Static

from resuse.errors import MalformedFormatError, UsageQueryError
from resuse.log import setup_logger
from resuse.models import Scope, UsageSnapshot
from resuse.source import begin, finish
from resuse.template import DEFAULT_FORMAT, format_usage

logger = logging.getLogger(__name__)


def to_single_line(fmt: str) -> str:
    """Spell newlines and tabs in a template as escapes so it fits an Input."""
    return fmt.replace("\n", "\\n").replace("\t", "\\t")


def describe_process(scope: Scope) -> str:
    """Describe the measured process for the header."""
    proc = psutil.Process()
    try:
        with proc.oneshot():
            name = proc.name()
            threads = proc.num_threads()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        name, threads = "?", 0
    return f"PID {proc.pid} ({name})  threads: {threads}  scope: {scope.value}"


class ProcessHeader(Static):
    """Header widget naming the process and scope being measured."""

    DEFAULT_CSS = """
    ProcessHeader {
        height: 1;
        padding: 0 1;
        background: $surface;
    }
    """

    def show(self, scope: Scope) -> None:
        """Refresh the header for ``scope``."""
        self.update(describe_process(scope))


class RenderedOutput(Vertical):
    """Rendered template text plus an error line."""

    DEFAULT_CSS = """
    RenderedOutput {
        height: 1fr;
        border: solid $primary;
        padding: 0 1;
    }

    #render-error {
        color: $error;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the output pane."""
        yield Static("", id="render-text", markup=False)
        yield Static("", id="render-error", markup=False)

    def show(self, text: str, error: str = "") -> None:
        """Display rendered ``text`` and an optional ``error``."""
        self.query_one("#render-text", Static).update(text)
        self.query_one("#render-error", Static).update(error)


class ResuseApp(App):
    """Preview resource usage templates against live measurements."""

    TITLE = "resuse"
    SUB_TITLE = "Resource Usage Template Preview"

    BINDINGS = [
        ("f2", "measure", "Measure"),
        ("f3", "toggle_scope", "Scope"),
        ("f4", "default_format", "Default"),
        ("f10", "quit", "Quit"),
    ]

    def __init__(self, fmt: str = DEFAULT_FORMAT, scope: Scope = Scope.PROCESS) -> None:
        """
        Initialize the ResuseApp.

        Args:
            fmt: Initial template.
            scope: Initial measurement scope.
        """
        super().__init__()
        self._format = to_single_line(fmt)
        self._scope = scope
        self._pending: UsageSnapshot = begin(scope)
        self._snapshot: UsageSnapshot | None = None

    @property
    def scope(self) -> Scope:
        """Get the current measurement scope."""
        return self._scope

    @property
    def snapshot(self) -> UsageSnapshot | None:
        """Get the most recently finished snapshot."""
        return self._snapshot

    @property
    def template(self) -> str:
        """Get the template being previewed."""
        return self._format

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield ProcessHeader(id="process-header")
        yield Input(value=self._format, placeholder="Template, e.g. %U %S %E", id="format-input")
        yield RenderedOutput(id="output")
        yield Footer()

    def on_mount(self) -> None:
        """Take the first measurement once the app is up."""
        self.query_one("#process-header", ProcessHeader).show(self._scope)
        self.action_measure()

    def on_input_changed(self, event: Input.Changed) -> None:
        """Re-render the current snapshot with the edited template."""
        self._format = event.value
        self._refresh_output()

    def render_template(self) -> tuple[str, str]:
        """Render the current template, returning the text and an error message."""
        if self._snapshot is None:
            return "", ""
        try:
            return format_usage(self._format, self._snapshot), ""
        except MalformedFormatError as e:
            return e.partial or "", "Malformed template: it ends with a bare '%'"

    def _refresh_output(self) -> None:
        text, error = self.render_template()
        try:
            self.query_one("#output", RenderedOutput).show(text, error)
        except Exception:
            pass  # Widget not mounted yet

    def action_measure(self) -> None:
        """Finish the running interval, show it and start a new one."""
        try:
            self._snapshot = finish(self._pending)
        except UsageQueryError as e:
            self.notify(str(e), severity="error")
        self._pending = begin(self._scope)
        self._refresh_output()

    def action_toggle_scope(self) -> None:
        """Switch between process and thread accounting."""
        scope = Scope.THREAD if self._scope is Scope.PROCESS else Scope.PROCESS
        if not scope.available:
            self.notify(f"Scope '{scope.value}' is not available on this host", severity="warning")
            return
        self._scope = scope
        self._pending = begin(scope)
        self.query_one("#process-header", ProcessHeader).show(scope)
        self.notify(f"Scope: {scope.value.upper()}")

    def action_default_format(self) -> None:
        """Load the default report template."""
        self.query_one("#format-input", Input).value = to_single_line(DEFAULT_FORMAT)


def build_parser() -> argparse.ArgumentParser:
    """Create the command line parser."""
    parser = argparse.ArgumentParser(
        prog="resuse",
        description="Preview resource usage templates against live measurements.",
    )
    parser.add_argument("--format", default=DEFAULT_FORMAT, help="Initial template.")
    parser.add_argument(
        "--scope",
        choices=[scope.value for scope in Scope],
        default=Scope.PROCESS.value,
        help="Measure the whole process or the UI thread.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Console logging level.",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Also log to this file.")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for the resuse previewer."""
    args = build_parser().parse_args(argv)
    setup_logger(level=getattr(logging, args.log_level), log_file=args.log_file)

    scope = Scope(args.scope)
    if not scope.available:
        logger.warning("Scope %s is not available, measuring the process", scope.value)
        scope = Scope.PROCESS

    app = ResuseApp(fmt=args.format, scope=scope)
    app.run()


if __name__ == "__main__":
    main()
