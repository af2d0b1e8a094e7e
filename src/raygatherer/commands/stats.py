"""The ``stats`` command."""

from typing import Any

from ..alerts import EXIT_CODE_SUCCESS
from ..formatters import format_stats_human, to_json
from .base import EXAMPLE_HOST, PROG_NAME, Command


class StatsCommand(Command):
    """Show disk, memory and runtime information from the device."""

    name = "stats"
    supports_json = True
    examples = (
        f"{PROG_NAME} --host {EXAMPLE_HOST} stats",
        f"{PROG_NAME} --host {EXAMPLE_HOST} --json stats | jq '.disk_stats'",
    )

    def execute(self, **_: Any) -> int:
        stats = self.device.fetch_system_stats()
        if self.json:
            self.print_json(to_json(stats))
        else:
            self.print(format_stats_human(stats))
        return EXIT_CODE_SUCCESS
