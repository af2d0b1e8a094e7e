"""The ``alerts`` command: check an analysis report for alerts.

The exit code carries the worst severity among the alerts that survive
filtering, so scripts can act on it without parsing output.
"""

from typing import Any, TextIO

import click

from ..alerts import (
    EXIT_CODE_ERROR,
    EXIT_CODE_HIGH_SEVERITY,
    EXIT_CODE_LOW_SEVERITY,
    EXIT_CODE_MEDIUM_SEVERITY,
    EXIT_CODE_SUCCESS,
    extract_alerts,
    filter_after,
    filter_latest,
    parse_timestamp,
    severity_exit_code,
)
from ..formatters import format_alerts_human, format_alerts_json
from ..logging_config import log_info
from .base import EXAMPLE_HOST, PROG_NAME, Command


class AlertsCommand(Command):
    """Show alerts from the live analysis report or a past recording."""

    name = "alerts"
    description = "Show non-informational analyzer events from the live or a past analysis report."
    supports_json = True
    params = (
        click.Option(
            ["--recording"], metavar="NAME", help="Analyze a past recording instead of live"
        ),
        click.Option(
            ["--after"],
            metavar="TIMESTAMP",
            help="Show only alerts after this time (ISO 8601, exclusive)",
        ),
        click.Option(
            ["--latest"], is_flag=True, help="Show only alerts from the most recent message"
        ),
    )
    examples = (
        f"{PROG_NAME} --host {EXAMPLE_HOST} alerts",
        f"{PROG_NAME} --host {EXAMPLE_HOST} --json alerts",
        f"{PROG_NAME} --host {EXAMPLE_HOST} alerts --recording 1738950000",
        f"{PROG_NAME} --host {EXAMPLE_HOST} alerts --after 2024-02-07T14:25:33Z --latest",
        f"[ $? -ge {EXIT_CODE_MEDIUM_SEVERITY} ] && notify-send 'Medium+ severity alert!'",
    )

    def execute(
        self,
        recording: str | None = None,
        after: str | None = None,
        latest: bool = False,
        **_: Any,
    ) -> int:
        threshold = parse_timestamp(after) if after is not None else None

        if recording:
            report = self.device.fetch_analysis_report(recording)
        else:
            report = self.device.fetch_live_analysis_report()

        alerts = extract_alerts(report.rows, report.metadata)
        if threshold is not None:
            alerts = filter_after(alerts, threshold)
        if latest:
            alerts = filter_latest(alerts, report.rows, after_applied=threshold is not None)

        if self.json:
            self.print_json(format_alerts_json(alerts))
        else:
            self.print(format_alerts_human(alerts))

        exit_code = severity_exit_code(alerts)
        log_info(f"{len(alerts)} alert(s), exit code {exit_code}")
        return exit_code

    def show_help(self, stream: TextIO | None = None) -> None:
        """Write help, followed by the severity exit codes."""
        super().show_help(stream)
        output = stream if stream is not None else self.stdout
        output.write(
            "\n".join(
                [
                    "",
                    "Exit Codes:",
                    f"    {EXIT_CODE_SUCCESS}   No alerts detected",
                    f"    {EXIT_CODE_ERROR}   Error (connection, parse, missing --host, etc.)",
                    f"    {EXIT_CODE_LOW_SEVERITY}  Low severity alert",
                    f"    {EXIT_CODE_MEDIUM_SEVERITY}  Medium severity alert",
                    f"    {EXIT_CODE_HIGH_SEVERITY}  High severity alert",
                ]
            )
            + "\n"
        )
