"""Progress indicator shown on stderr while a download runs."""

import threading
from types import TracebackType
from typing import TextIO

FRAMES = ("*", "**", "***", "**", "*")
INTERVAL = 0.15
LABEL = "Downloading..."


class Spinner:
    """Animate a one-line progress indicator from a background thread.

    The thread only writes to ``stream``; it never touches the download
    itself and ``stop()`` always joins it, clearing the line afterwards.

    Example:
        >>> with Spinner(sys.stderr):
        ...     client.download_recording(name, "qmdl", sink)
    """

    def __init__(self, stream: TextIO, interval: float = INTERVAL) -> None:
        self.stream = stream
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def spin(self) -> None:
        """Start the animation thread."""
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="spinner", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the animation and wait for the thread to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _run(self) -> None:
        frame = 0
        while not self._stop.is_set():
            self.stream.write(f"\r{FRAMES[frame % len(FRAMES)]} {LABEL}")
            self.stream.flush()
            frame += 1
            self._stop.wait(self.interval)
        clear = " " * (len(LABEL) + len(max(FRAMES, key=len)) + 1)
        self.stream.write(f"\r{clear}\r")
        self.stream.flush()

    def __enter__(self) -> "Spinner":
        self.spin()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.stop()
