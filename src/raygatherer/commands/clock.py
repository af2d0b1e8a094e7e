"""``time`` commands: show the device clock and sync it to this machine."""

from datetime import datetime, timezone
from typing import Any

from ..alerts import EXIT_CODE_ERROR, EXIT_CODE_SUCCESS, parse_timestamp
from ..formatters import format_time_human, to_json
from ..logging_config import log_info
from .base import EXAMPLE_HOST, PROG_NAME, Command


class TimeShowCommand(Command):
    """Show the device's system time, adjusted time and clock offset."""

    name = "time show"
    supports_json = True
    examples = (
        f"{PROG_NAME} --host {EXAMPLE_HOST} time show",
        f"{PROG_NAME} --host {EXAMPLE_HOST} --json time show",
    )

    def execute(self, **_: Any) -> int:
        clock = self.device.fetch_time()
        if self.json:
            self.print_json(to_json(clock))
        else:
            self.print(format_time_human(clock))
        return EXIT_CODE_SUCCESS


class TimeSyncCommand(Command):
    """Set the device clock offset so its adjusted time matches this machine.

    The offset is the difference between local UTC time and the device's
    system time, rounded to whole seconds.
    """

    name = "time sync"
    description = "Sets the device clock offset from this machine's clock."
    examples = (f"{PROG_NAME} --host {EXAMPLE_HOST} time sync",)

    def execute(self, **_: Any) -> int:
        clock = self.device.fetch_time()
        system_time = clock.get("system_time")
        if not isinstance(system_time, str):
            self.error("device did not report its system time")
            return EXIT_CODE_ERROR

        offset = round((datetime.now(timezone.utc) - parse_timestamp(system_time)).total_seconds())
        self.device.set_time_offset(offset)
        log_info(f"Set device clock offset to {offset}s")
        self.print(f"Clock synced. Offset: {offset}s")
        return EXIT_CODE_SUCCESS
