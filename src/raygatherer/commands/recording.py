"""``recording`` commands: list, download, delete, stop and start recordings."""

import contextlib
from pathlib import Path
from typing import Any

import click
from rich.markup import escape

from ..alerts import EXIT_CODE_ERROR, EXIT_CODE_SUCCESS
from ..client import DOWNLOAD_FORMATS
from ..formatters import format_manifest_human, format_size, to_json
from ..logging_config import log_info, log_warning
from ..spinner import Spinner
from .base import EXAMPLE_HOST, PROG_NAME, Command

NAMES_ARGUMENT = click.Argument(["names"], nargs=-1)


class RecordingListCommand(Command):
    """List recordings on the device, the active one first."""

    name = "recording list"
    supports_json = True
    examples = (
        f"{PROG_NAME} --host {EXAMPLE_HOST} recording list",
        f"{PROG_NAME} --host {EXAMPLE_HOST} --json recording list | jq",
    )

    def execute(self, **_: Any) -> int:
        manifest = self.device.fetch_manifest()
        if self.json:
            self.print_json(to_json(manifest))
        else:
            self.print(format_manifest_human(manifest))
        return EXIT_CODE_SUCCESS


class RecordingDownloadCommand(Command):
    """Download a recording as qmdl, pcap or zip."""

    name = "recording download"
    arguments = "<name> [options]"
    description = "Downloads a recording from the device (default format: --qmdl)."
    params = (
        NAMES_ARGUMENT,
        click.Option(["--qmdl"], is_flag=True, help="Download as qmdl format (default)"),
        click.Option(["--pcap"], is_flag=True, help="Download as pcap format"),
        click.Option(["--zip"], is_flag=True, help="Download as zip format (qmdl + pcapng)"),
        click.Option(
            ["--download-dir"], metavar="DIR", help="Save into DIR (default: current directory)"
        ),
        click.Option(["--save-as"], metavar="PATH", help="Save to exactly PATH"),
    )
    examples = (
        f"{PROG_NAME} --host {EXAMPLE_HOST} recording download 1738950000",
        f"{PROG_NAME} --host {EXAMPLE_HOST} recording download 1738950000 --pcap",
        f"{PROG_NAME} --host {EXAMPLE_HOST} recording download 1738950000 --zip --download-dir ~/captures",
    )

    def execute(
        self,
        names: tuple[str, ...] = (),
        qmdl: bool = False,
        pcap: bool = False,
        zip: bool = False,
        download_dir: str | None = None,
        save_as: str | None = None,
        **_: Any,
    ) -> int:
        formats = [fmt for fmt, chosen in (("qmdl", qmdl), ("pcap", pcap), ("zip", zip)) if chosen]
        if len(formats) > 1:
            self.error("only one format flag (--qmdl, --pcap, --zip) may be specified")
            return EXIT_CODE_ERROR
        file_format = formats[0] if formats else "qmdl"

        if not names:
            self.error("recording name is required")
            return EXIT_CODE_ERROR
        name = names[0]

        if download_dir and save_as:
            self.error("--download-dir and --save-as are mutually exclusive")
            return EXIT_CODE_ERROR

        if save_as:
            destination = Path(save_as)
        else:
            directory = Path(download_dir) if download_dir else Path(".")
            if not directory.is_dir():
                self.error(f"directory does not exist: {directory}")
                return EXIT_CODE_ERROR
            destination = directory / f"{name}{DOWNLOAD_FORMATS[file_format][1]}"

        if destination.exists():
            self.error(f"file already exists: {destination}")
            return EXIT_CODE_ERROR

        self._download(name, file_format, destination)

        size = destination.stat().st_size
        log_info(f"Saved {name} to {destination} ({size} bytes)")
        self.print(f"{escape(str(destination))} ({format_size(size)})")
        return EXIT_CODE_SUCCESS

    def _download(self, name: str, file_format: str, destination: Path) -> None:
        """Stream into a freshly created file, removing it if anything fails."""
        with open(destination, "xb") as sink:
            try:
                with Spinner(self.stderr):
                    self.device.download_recording(name, file_format, sink)
            except BaseException:
                log_warning(f"Download of {name} failed, removing {destination}")
                sink.close()
                with contextlib.suppress(FileNotFoundError):
                    destination.unlink()
                raise


class RecordingDeleteCommand(Command):
    """Delete a recording from the device."""

    name = "recording delete"
    arguments = "<name>"
    params = (NAMES_ARGUMENT,)
    examples = (f"{PROG_NAME} --host {EXAMPLE_HOST} recording delete 1738950000",)

    def execute(self, names: tuple[str, ...] = (), **_: Any) -> int:
        if not names:
            self.error("recording name is required")
            return EXIT_CODE_ERROR

        self.device.delete_recording(names[0])
        self.print(f"Deleted recording: {escape(names[0])}")
        return EXIT_CODE_SUCCESS


class RecordingStopCommand(Command):
    """Stop the recording in progress."""

    name = "recording stop"
    arguments = ""
    description = "Stops the current recording on the device."
    params = (NAMES_ARGUMENT,)
    examples = (f"{PROG_NAME} --host {EXAMPLE_HOST} recording stop",)

    def execute(self, names: tuple[str, ...] = (), **_: Any) -> int:
        if names:
            self.error("recording stop does not take a name")
            return EXIT_CODE_ERROR

        self.device.stop_recording()
        self.print("Recording stopped")
        return EXIT_CODE_SUCCESS


class RecordingStartCommand(Command):
    """Start a new recording."""

    name = "recording start"
    arguments = ""
    description = "Starts a new recording on the device."
    params = (NAMES_ARGUMENT,)
    examples = (f"{PROG_NAME} --host {EXAMPLE_HOST} recording start",)

    def execute(self, names: tuple[str, ...] = (), **_: Any) -> int:
        if names:
            self.error("recording start does not take a name")
            return EXIT_CODE_ERROR

        self.device.start_recording()
        self.print("Recording started")
        return EXIT_CODE_SUCCESS
