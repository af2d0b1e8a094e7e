"""``analysis`` commands: queue status, queueing analyses and full reports."""

from typing import Any

import click

from ..alerts import EXIT_CODE_ERROR, EXIT_CODE_SUCCESS
from ..formatters import (
    format_analysis_status_human,
    format_report_human,
    format_report_json,
    to_json,
)
from ..logging_config import log_info
from .base import EXAMPLE_HOST, PROG_NAME, Command


class AnalysisStatusCommand(Command):
    """Show which recordings are running, queued and finished analysis."""

    name = "analysis status"
    supports_json = True
    examples = (
        f"{PROG_NAME} --host {EXAMPLE_HOST} analysis status",
        f"{PROG_NAME} --host {EXAMPLE_HOST} --json analysis status",
    )

    def execute(self, **_: Any) -> int:
        status = self.device.fetch_analysis_status()
        self._render(status)
        return EXIT_CODE_SUCCESS

    def _render(self, status: dict[str, Any]) -> None:
        if self.json:
            self.print_json(to_json(status))
        else:
            self.print(format_analysis_status_human(status))


class AnalysisRunCommand(AnalysisStatusCommand):
    """Queue one recording, or every finished recording, for analysis."""

    name = "analysis run"
    arguments = "<name> | --all"
    description = (
        "Queues analysis of a recording. With --all, every recording except "
        "the one in progress is queued."
    )
    params = (
        click.Argument(["names"], nargs=-1),
        click.Option(["--all", "run_all"], is_flag=True, help="Queue all recordings"),
    )
    examples = (
        f"{PROG_NAME} --host {EXAMPLE_HOST} analysis run 1738950000",
        f"{PROG_NAME} --host {EXAMPLE_HOST} analysis run --all",
    )

    def execute(self, names: tuple[str, ...] = (), run_all: bool = False, **_: Any) -> int:
        if run_all and names:
            self.error("cannot use --all with a recording name")
            return EXIT_CODE_ERROR
        if not run_all and not names:
            self.error("recording name or --all is required")
            return EXIT_CODE_ERROR

        if run_all:
            status = self._run_all()
        else:
            status = self.device.start_analysis(names[0])

        self._render(status)
        return EXIT_CODE_SUCCESS

    def _run_all(self) -> dict[str, Any]:
        """Queue every manifest entry in order, then fetch the resulting status."""
        manifest = self.device.fetch_manifest()
        entries = manifest.get("entries") or []
        for entry in entries:
            self.device.start_analysis(str(entry.get("name")))
        log_info(f"Queued {len(entries)} recording(s) for analysis")
        return self.device.fetch_analysis_status()


class AnalysisReportCommand(Command):
    """Show the full analysis report of a recording or of the live one."""

    name = "analysis report"
    arguments = "<name> | --live"
    description = "Shows every analyzed message with its events, not only alerts."
    supports_json = True
    params = (
        click.Argument(["names"], nargs=-1),
        click.Option(["--live"], is_flag=True, help="Report on the recording in progress"),
    )
    examples = (
        f"{PROG_NAME} --host {EXAMPLE_HOST} analysis report 1738950000",
        f"{PROG_NAME} --host {EXAMPLE_HOST} analysis report --live",
        f"{PROG_NAME} --host {EXAMPLE_HOST} --json analysis report --live | jq '.rows'",
    )

    def execute(self, names: tuple[str, ...] = (), live: bool = False, **_: Any) -> int:
        if live and names:
            self.error("cannot use --live with a recording name")
            return EXIT_CODE_ERROR
        if not live and not names:
            self.error("recording name or --live is required")
            return EXIT_CODE_ERROR

        if live:
            report = self.device.fetch_live_analysis_report()
        else:
            report = self.device.fetch_analysis_report(names[0])

        if self.json:
            self.print_json(format_report_json(report))
        else:
            self.print(format_report_human(report))
        return EXIT_CODE_SUCCESS
