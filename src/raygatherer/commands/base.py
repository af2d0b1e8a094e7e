"""Shared plumbing for raygatherer commands.

Every command is a small class: it declares its options as click
parameters, parses its own argument vector, talks to the device through a
``DeviceClient`` and reports through the streams it was given.
``Command.run`` is the single place where unexpected exceptions become an
``Error:`` line and exit code 1.
"""

import sys
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, ClassVar, TextIO

import click
from rich.console import Console
from rich.markup import escape

from ..alerts import EXIT_CODE_ERROR, EXIT_CODE_SUCCESS
from ..client import DeviceClient
from ..logging_config import log_debug, log_exception

PROG_NAME = "raygatherer"
EXAMPLE_HOST = "http://192.168.1.100:8080"

HELP_OPTION = click.Option(
    ["-h", "--help", "show_help"], is_flag=True, help="Show this help message"
)


@dataclass(frozen=True)
class Exit:
    """Request to stop with ``code`` before doing any work (help, version)."""

    code: int


def make_console(stream: TextIO) -> Console:
    """Create a rich console that never re-wraps output written to ``stream``."""
    return Console(file=stream, soft_wrap=True, emoji=False, highlight=False)


def format_option(param: click.Option) -> str:
    """Render one option as a help line, e.g. ``--after TIMESTAMP``."""
    flags = ", ".join(param.opts)
    if not param.is_flag:
        flags = f"{flags} {param.metavar or (param.name or '').upper()}"
    # Long-only options line up under the long half of "-h, --help"
    if param.opts[0].startswith("--"):
        flags = f"    {flags}"
    return f"    {flags:<32} {param.help or ''}"


class Command:
    """Base class for all commands.

    Subclasses set ``name``, ``params`` and the help attributes, and
    implement ``execute``.

    Attributes:
        args: Arguments left after global flags and command words were removed.
        stdout: Stream for regular output.
        stderr: Stream for errors and progress.
        client: Device client, or None on help-only invocations without a host.
        json: Whether JSON output was requested.
    """

    name: ClassVar[str] = ""
    arguments: ClassVar[str] = "[options]"
    description: ClassVar[str] = ""
    params: ClassVar[tuple[click.Parameter, ...]] = ()
    examples: ClassVar[tuple[str, ...]] = ()
    supports_json: ClassVar[bool] = False

    def __init__(
        self,
        args: Sequence[str],
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        client: DeviceClient | None = None,
        json: bool = False,
        stdin: TextIO | None = None,
    ) -> None:
        self.args = list(args)
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stderr = stderr if stderr is not None else sys.stderr
        self.stdin = stdin if stdin is not None else sys.stdin
        self.client = client
        self.json = json
        self.out = make_console(self.stdout)
        self.err = make_console(self.stderr)

    def run(self) -> int:
        """Parse options and execute, turning any failure into exit code 1."""
        try:
            options = self.parse_options()
            if isinstance(options, Exit):
                return options.code
            log_debug(f"Running '{self.name}' with {options}")
            return self.execute(**options)
        except Exception as e:
            log_exception(f"Command '{self.name}' failed")
            message = e.format_message() if isinstance(e, click.ClickException) else str(e)
            self.error(message)
            return EXIT_CODE_ERROR

    def execute(self, **options: Any) -> int:
        """Do the command's work; ``options`` are the parsed click values."""
        raise NotImplementedError

    def parse_options(self) -> dict[str, Any] | Exit:
        """Parse ``self.args`` against ``params`` plus ``-h/--help``.

        Returns:
            Parsed option values, or Exit(0) after printing help.

        Raises:
            click.UsageError: On unknown options or missing option values.
        """
        parser = click.Command(self.name, params=[*self.params, HELP_OPTION], add_help_option=False)
        ctx = parser.make_context(f"{PROG_NAME} {self.name}", list(self.args))
        options = dict(ctx.params)
        if options.pop("show_help", False):
            self.show_help()
            return Exit(EXIT_CODE_SUCCESS)
        return options

    @property
    def device(self) -> DeviceClient:
        """The device client; commands only run with a host configured."""
        if self.client is None:
            raise RuntimeError("no device client configured (use --host)")
        return self.client

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def print(self, markup: str) -> None:
        """Print rich markup to stdout."""
        self.out.print(markup)

    def print_json(self, text: str) -> None:
        """Write JSON to stdout verbatim."""
        self.stdout.write(f"{text}\n")

    def error(self, message: str) -> None:
        """Print an ``Error:`` line to stderr."""
        self.err.print(f"[red]Error:[/red] {escape(message)}")

    def show_help(self, stream: TextIO | None = None) -> None:
        """Write usage, options, global options and examples."""
        output = stream if stream is not None else self.stdout
        lines = [f"Usage: {PROG_NAME} [global options] {self.name} {self.arguments}".rstrip()]
        if self.description:
            lines += ["", self.description]
        lines += ["", "Options:"]
        for param in (*self.params, HELP_OPTION):
            if isinstance(param, click.Option):
                lines.append(format_option(param))
        lines += ["", f"Global options (see '{PROG_NAME} --help'):"]
        if self.supports_json:
            lines.append("    --host, --basic-auth-user, --basic-auth-password, --json, --verbose")
        else:
            lines.append("    --host, --basic-auth-user, --basic-auth-password, --verbose")
        if self.examples:
            lines += ["", "Examples:"]
            lines += [f"  {example}" for example in self.examples]
        output.write("\n".join(lines) + "\n")
