"""``config`` commands: read and replace the device configuration, test notifications."""

import json
from typing import Any

from ..alerts import EXIT_CODE_ERROR, EXIT_CODE_SUCCESS
from ..formatters import format_config_human, to_json
from .base import EXAMPLE_HOST, PROG_NAME, Command


class ConfigShowCommand(Command):
    """Show the device configuration."""

    name = "config show"
    supports_json = True
    examples = (
        f"{PROG_NAME} --host {EXAMPLE_HOST} config show",
        f"{PROG_NAME} --host {EXAMPLE_HOST} --json config show > device-config.json",
    )

    def execute(self, **_: Any) -> int:
        config = self.device.fetch_config()
        if self.json:
            self.print_json(to_json(config))
        else:
            self.print(format_config_human(config))
        return EXIT_CODE_SUCCESS


class ConfigSetCommand(Command):
    """Replace the device configuration with JSON read from stdin.

    The input is checked to be JSON before anything is sent; the device
    decides whether the contents make sense.
    """

    name = "config set"
    arguments = "< config.json"
    description = "Reads a JSON configuration from stdin and applies it to the device."
    examples = (
        f"{PROG_NAME} --host {EXAMPLE_HOST} --json config show > device-config.json",
        f"{PROG_NAME} --host {EXAMPLE_HOST} config set < device-config.json",
    )

    def execute(self, **_: Any) -> int:
        body = self.stdin.read()
        if not body.strip():
            self.error("no JSON input received on stdin")
            return EXIT_CODE_ERROR

        try:
            json.loads(body)
        except json.JSONDecodeError as e:
            self.error(f"invalid JSON input: {e}")
            return EXIT_CODE_ERROR

        self.device.set_config(body)
        self.print("Configuration updated successfully.")
        return EXIT_CODE_SUCCESS


class ConfigTestNotificationCommand(Command):
    """Ask the device to send a test message to its notification URL."""

    name = "config test-notification"
    description = "Sends a test notification to the configured notification URL."
    examples = (f"{PROG_NAME} --host {EXAMPLE_HOST} config test-notification",)

    def execute(self, **_: Any) -> int:
        self.device.test_notification()
        self.print("Test notification sent successfully.")
        return EXIT_CODE_SUCCESS
