"""``debug`` commands."""

import json
from typing import Any

import click

from ..alerts import EXIT_CODE_ERROR, EXIT_CODE_SUCCESS
from .base import EXAMPLE_HOST, PROG_NAME, Command

DISPLAY_STATES = ("recording", "paused", "warning")
SEVERITIES = ("low", "medium", "high")


def display_state_body(state: str, severity: str | None = None) -> str:
    """Build the JSON body the device expects for a display state.

    Example:
        >>> display_state_body("paused")
        '"Paused"'
        >>> display_state_body("warning", "high")
        '{"WarningDetected":{"event_type":"High"}}'
    """
    if state == "warning":
        value: Any = {"WarningDetected": {"event_type": (severity or "").capitalize()}}
    else:
        value = state.capitalize()
    return json.dumps(value, separators=(",", ":"))


class DebugDisplayStateCommand(Command):
    """Override what the device screen shows, for testing the display."""

    name = "debug display-state"
    arguments = "<recording|paused|warning> [--severity LEVEL]"
    description = "Changes the display state of the device for debugging purposes."
    params = (
        click.Argument(["state"], required=False),
        click.Option(
            ["--severity"],
            type=click.Choice(SEVERITIES, case_sensitive=False),
            metavar="LEVEL",
            help="Warning severity: low, medium or high",
        ),
    )
    examples = (
        f"{PROG_NAME} --host {EXAMPLE_HOST} debug display-state paused",
        f"{PROG_NAME} --host {EXAMPLE_HOST} debug display-state warning --severity high",
    )

    def execute(self, state: str | None = None, severity: str | None = None, **_: Any) -> int:
        if state is None or state not in DISPLAY_STATES:
            self.error(f"state must be one of: {', '.join(DISPLAY_STATES)}")
            return EXIT_CODE_ERROR
        if state == "warning" and severity is None:
            self.error("--severity is required when state is 'warning'")
            return EXIT_CODE_ERROR
        if state != "warning" and severity is not None:
            self.error("--severity is only valid when state is 'warning'")
            return EXIT_CODE_ERROR

        self.device.set_display_state(display_state_body(state, severity))
        self.print("Display state updated.")
        return EXIT_CODE_SUCCESS
