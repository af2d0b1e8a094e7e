"""CLI for raygatherer.

This module is the entry point of the ``raygatherer`` command: it strips the
global flags from the argument vector, merges them with the config file,
routes the remaining words to a command class through a static table, and
turns every outcome into a process exit code.
"""

import sys
from collections.abc import Sequence
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any, NamedTuple, TextIO

import click

from .alerts import EXIT_CODE_ERROR, EXIT_CODE_SUCCESS
from .client import DeviceClient
from .commands.alerts import AlertsCommand
from .commands.analysis import AnalysisReportCommand, AnalysisRunCommand, AnalysisStatusCommand
from .commands.base import PROG_NAME, Command
from .commands.clock import TimeShowCommand, TimeSyncCommand
from .commands.config import ConfigSetCommand, ConfigShowCommand, ConfigTestNotificationCommand
from .commands.debug import DebugDisplayStateCommand
from .commands.log import LogCommand
from .commands.recording import (
    RecordingDeleteCommand,
    RecordingDownloadCommand,
    RecordingListCommand,
    RecordingStartCommand,
    RecordingStopCommand,
)
from .commands.stats import StatsCommand
from .config import ConfigError, FileConfig, LoggingSettings, load_config, settings_summary
from .logging_config import configure_global_logger, log_debug, log_info

# =============================================================================
# Global Flags
# =============================================================================

PRESENCE_FLAGS = {
    "--verbose": "verbose",
    "--json": "json",
}

VALUE_FLAGS = {
    "--host": "host",
    "--basic-auth-user": "basic_auth_user",
    "--basic-auth-password": "basic_auth_password",
    "--config": "config",
    "--log-file": "log_file",
}


class GlobalFlagError(Exception):
    """A global value flag was given without its value."""


@dataclass(frozen=True)
class GlobalFlags:
    """Global flags found anywhere on the command line.

    Attributes:
        host: Device host URL from ``--host``.
        basic_auth_user: Username from ``--basic-auth-user``.
        basic_auth_password: Password from ``--basic-auth-password``.
        config: Config file path from ``--config``.
        log_file: Diagnostic log path from ``--log-file``.
        verbose: Whether ``--verbose`` was present.
        json: Whether ``--json`` was present.
    """

    host: str | None = None
    basic_auth_user: str | None = None
    basic_auth_password: str | None = None
    config: str | None = None
    log_file: str | None = None
    verbose: bool = False
    json: bool = False


def extract_globals(args: Sequence[str]) -> tuple[GlobalFlags, list[str]]:
    """Split global flags from the rest of the arguments.

    Global flags may appear anywhere, before or after the command words.
    The input is left untouched.

    Args:
        args: Command-line arguments without the program name.

    Returns:
        The flags found and a new list of the remaining arguments.

    Raises:
        GlobalFlagError: If a value flag is the last argument.

    Example:
        >>> extract_globals(["stats", "--host", "10.0.0.1", "--json"])
        (GlobalFlags(host='10.0.0.1', ..., json=True), ['stats'])
    """
    values: dict[str, Any] = {}
    remaining: list[str] = []

    index = 0
    while index < len(args):
        token = args[index]
        if token in PRESENCE_FLAGS:
            values[PRESENCE_FLAGS[token]] = True
        elif token in VALUE_FLAGS:
            if index + 1 >= len(args):
                raise GlobalFlagError(f"{token} requires a value")
            values[VALUE_FLAGS[token]] = args[index + 1]
            index += 1
        else:
            remaining.append(token)
        index += 1

    return GlobalFlags(**values), remaining


# =============================================================================
# Settings
# =============================================================================


@dataclass(frozen=True)
class Settings:
    """Connection and output settings after merging flags and config file."""

    host: str | None = None
    basic_auth_user: str | None = None
    basic_auth_password: str | None = None
    verbose: bool = False
    json: bool = False


def merge_settings(flags: GlobalFlags, file_config: FileConfig) -> Settings:
    """Merge command-line flags over config file values over defaults."""

    def pick(flag_value: Any, file_value: Any) -> Any:
        return flag_value if flag_value is not None else file_value

    return Settings(
        host=pick(flags.host, file_config.host),
        basic_auth_user=pick(flags.basic_auth_user, file_config.basic_auth_user),
        basic_auth_password=pick(flags.basic_auth_password, file_config.basic_auth_password),
        verbose=flags.verbose or bool(file_config.verbose),
        json=flags.json or bool(file_config.json_output),
    )


# =============================================================================
# Routing
# =============================================================================


class Route(NamedTuple):
    """A command class and whether it takes the ``--json`` setting."""

    command: type[Command]
    accepts_json: bool


ROUTES: dict[tuple[str, str | None], Route] = {
    ("alerts", None): Route(AlertsCommand, True),
    ("stats", None): Route(StatsCommand, True),
    ("recording", "list"): Route(RecordingListCommand, True),
    ("recording", "download"): Route(RecordingDownloadCommand, False),
    ("recording", "delete"): Route(RecordingDeleteCommand, False),
    ("recording", "stop"): Route(RecordingStopCommand, False),
    ("recording", "start"): Route(RecordingStartCommand, False),
    ("analysis", "status"): Route(AnalysisStatusCommand, True),
    ("analysis", "run"): Route(AnalysisRunCommand, True),
    ("analysis", "report"): Route(AnalysisReportCommand, True),
    ("config", "show"): Route(ConfigShowCommand, True),
    ("config", "set"): Route(ConfigSetCommand, False),
    ("config", "test-notification"): Route(ConfigTestNotificationCommand, False),
    ("time", "show"): Route(TimeShowCommand, True),
    ("time", "sync"): Route(TimeSyncCommand, False),
    ("log", None): Route(LogCommand, False),
    ("debug", "display-state"): Route(DebugDisplayStateCommand, False),
}


def resolve_route(args: Sequence[str]) -> tuple[Route, list[str]] | None:
    """Find the route for the leading command words.

    ``(command, subcommand)`` is tried first; otherwise ``(command, None)``
    matches and the second word stays in the returned arguments.

    Returns:
        The route and the arguments left for the command, or None.
    """
    if not args:
        return None
    command = args[0]
    if len(args) > 1:
        route = ROUTES.get((command, args[1]))
        if route is not None:
            return route, list(args[2:])
    route = ROUTES.get((command, None))
    if route is not None:
        return route, list(args[1:])
    return None


# =============================================================================
# Help and Version
# =============================================================================

COMMAND_SUMMARIES = (
    ("alerts", "Check for IMSI catcher alerts"),
    ("recording list", "List recordings on the device"),
    ("recording download <name>", "Download a recording from the device"),
    ("recording delete <name>", "Delete a recording from the device"),
    ("recording stop", "Stop the current recording"),
    ("recording start", "Start a new recording"),
    ("analysis status", "Show the analysis queue"),
    ("analysis run <name>|--all", "Queue recordings for analysis"),
    ("analysis report <name>|--live", "Show a full analysis report"),
    ("config show", "Show the device configuration"),
    ("config set", "Apply a JSON configuration read from stdin"),
    ("config test-notification", "Send a test notification"),
    ("time show", "Show the device clock"),
    ("time sync", "Sync the device clock to this machine"),
    ("log", "Show the device log"),
    ("stats", "Show device system stats"),
    ("debug display-state <state>", "Override the device display state"),
)

GLOBAL_OPTIONS = (
    ("-v, --version", "Show version"),
    ("-h, --help", "Show this help message"),
    ("    --verbose", "Show detailed HTTP request/response information"),
    ("    --host HOST", "Rayhunter host URL (required)"),
    ("    --basic-auth-user USER", "Basic auth username"),
    ("    --basic-auth-password PASS", "Basic auth password"),
    ("    --json", "Output JSON (for scripts/piping)"),
    ("    --config PATH", "Config file (default: ~/.config/raygatherer/config.yml)"),
    ("    --log-file PATH", "Write a diagnostic log to PATH"),
)

TOP_LEVEL_OPTIONS = (
    click.Option(["-h", "--help", "show_help"], is_flag=True),
    click.Option(["-v", "--version", "show_version"], is_flag=True),
)


def get_version() -> str:
    """Return the installed package version."""
    try:
        return version(PROG_NAME)
    except PackageNotFoundError:
        return "unknown"


def show_help(stream: TextIO) -> None:
    """Write the top-level help to ``stream``."""
    lines = [f"Usage: {PROG_NAME} [options] [command]", "", "Options:"]
    lines += [f"    {flags:<32} {text}" for flags, text in GLOBAL_OPTIONS]
    lines += ["", "Commands:"]
    lines += [f"    {name:<32} {text}" for name, text in COMMAND_SUMMARIES]
    lines += ["", f"Run '{PROG_NAME} COMMAND --help' for more information on a command."]
    stream.write("\n".join(lines) + "\n")


def run_top_level_options(args: Sequence[str], stdout: TextIO) -> int:
    """Handle ``-h/--help`` and ``-v/--version`` given before any command.

    Raises:
        click.UsageError: On an unknown option.
    """
    parser = click.Command(
        PROG_NAME,
        params=list(TOP_LEVEL_OPTIONS),
        add_help_option=False,
        context_settings={"allow_extra_args": True},
    )
    ctx = parser.make_context(PROG_NAME, list(args))
    if ctx.params["show_version"]:
        stdout.write(f"{PROG_NAME} version {get_version()}\n")
    else:
        show_help(stdout)
    return EXIT_CODE_SUCCESS


# =============================================================================
# Entry Point
# =============================================================================


def configure_logging(flags: GlobalFlags) -> None:
    """Enable the diagnostic log from ``--log-file`` or the environment."""
    logging_settings = LoggingSettings()
    log_file = Path(flags.log_file) if flags.log_file else logging_settings.log_file
    configure_global_logger(log_file=log_file, log_level=logging_settings.log_level)


def run(
    argv: Sequence[str],
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    stdin: TextIO | None = None,
) -> int:
    """Run one invocation and return its exit code.

    Args:
        argv: Command-line arguments without the program name.
        stdout: Stream for command output.
        stderr: Stream for errors, help after errors and the verbose trace.
        stdin: Stream read by ``config set``.

    Returns:
        0 on success, 1 on any error, 10/11/12 for alerts by severity.
    """
    stdout = stdout if stdout is not None else sys.stdout
    stderr = stderr if stderr is not None else sys.stderr

    try:
        flags, remaining = extract_globals(argv)
        configure_logging(flags)
        config_path = Path(flags.config).expanduser() if flags.config else None
        settings = merge_settings(flags, load_config(config_path))
        log_info(f"{PROG_NAME} started: {' '.join(remaining)}")
        log_debug(f"Settings: {settings_summary(vars(settings))}")

        if not remaining:
            show_help(stdout)
            return EXIT_CODE_SUCCESS

        if remaining[0].startswith("-"):
            return run_top_level_options(remaining, stdout)

        resolved = resolve_route(remaining)
        if resolved is None:
            stderr.write(f"Unknown command: {' '.join(remaining[:2])}\n")
            show_help(stderr)
            return EXIT_CODE_ERROR
        route, command_args = resolved

        wants_help = "--help" in command_args or "-h" in command_args
        if not settings.host and not wants_help:
            stderr.write("Error: --host is required\n")
            show_help(stderr)
            return EXIT_CODE_ERROR

        client = None
        if settings.host:
            client = DeviceClient(
                settings.host,
                username=settings.basic_auth_user,
                password=settings.basic_auth_password,
                verbose=settings.verbose,
                stderr=stderr,
            )

        options: dict[str, Any] = {"client": client, "stdin": stdin}
        if route.accepts_json:
            options["json"] = settings.json
        return route.command(command_args, stdout=stdout, stderr=stderr, **options).run()

    except ConfigError as e:
        stderr.write(f"Error: {e}\n")
        return EXIT_CODE_ERROR
    except click.UsageError as e:
        stderr.write(f"{e.format_message()}\n")
        show_help(stderr)
        return EXIT_CODE_ERROR
    except GlobalFlagError as e:
        stderr.write(f"{e}\n")
        show_help(stderr)
        return EXIT_CODE_ERROR


def main() -> None:
    """Main entry point for the CLI."""
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
