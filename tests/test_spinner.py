"""Tests for the download progress spinner."""

import io
import threading

import pytest

from raygatherer.spinner import FRAMES, LABEL, Spinner


class TestSpinner:
    """Tests for Spinner."""

    def test_draws_frames_and_clears(self) -> None:
        """Test that frames are drawn and the line is cleared on stop."""
        stream = io.StringIO()

        with Spinner(stream, interval=0.01):
            threading.Event().wait(0.05)

        output = stream.getvalue()
        assert f"\r{FRAMES[0]} {LABEL}" in output
        assert output.endswith("\r")
        assert output.rstrip("\r ").endswith(LABEL)

    def test_thread_joined_on_stop(self) -> None:
        """Test that no spinner thread outlives stop()."""
        spinner = Spinner(io.StringIO(), interval=0.01)

        spinner.spin()
        spinner.stop()

        assert not any(thread.name == "spinner" for thread in threading.enumerate())

    def test_stops_when_body_raises(self) -> None:
        """Test that the spinner stops if the wrapped work fails."""
        stream = io.StringIO()

        with pytest.raises(RuntimeError), Spinner(stream, interval=0.01):
            raise RuntimeError("download failed")

        assert stream.getvalue().endswith("\r")
        assert not any(thread.name == "spinner" for thread in threading.enumerate())

    def test_stop_without_spin(self) -> None:
        """Test that stopping an idle spinner is harmless."""
        stream = io.StringIO()

        Spinner(stream).stop()

        assert stream.getvalue() == ""
