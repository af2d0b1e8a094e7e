"""The ``log`` command."""

from typing import Any

from ..alerts import EXIT_CODE_SUCCESS
from .base import EXAMPLE_HOST, PROG_NAME, Command


class LogCommand(Command):
    """Print the device's daemon log."""

    name = "log"
    examples = (
        f"{PROG_NAME} --host {EXAMPLE_HOST} log",
        f"{PROG_NAME} --host {EXAMPLE_HOST} log | grep -i error",
    )

    def execute(self, **_: Any) -> int:
        text = self.device.fetch_log()
        # Raw text, not markup
        self.stdout.write(text)
        if text and not text.endswith("\n"):
            self.stdout.write("\n")
        return EXIT_CODE_SUCCESS
