"""Rayhunter device HTTP API client.

This module provides a synchronous client for the device's management API:
analysis reports (NDJSON), the recording manifest, analysis queue status,
system stats, device configuration, recording control, recording
downloads, the daemon log and the device clock.

Every request opens its own short-lived ``httpx.Client``; nothing is kept
between calls and nothing is retried. Failures surface as one of three
exception types: ``ApiError`` (unexpected HTTP status),
``DeviceConnectionError`` (the device could not be reached) and
``ParseError`` (the body is not the JSON/NDJSON we expected).
"""

import json
import sys
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any, BinaryIO, TextIO, TypeVar
from urllib.parse import quote_plus

import httpx

from .logging_config import log_debug, log_error
from .models import AnalysisReport

T = TypeVar("T")

DEFAULT_TIMEOUT = 30.0

# Download endpoints and the file extension each format is saved with
DOWNLOAD_FORMATS: dict[str, tuple[str, str]] = {
    "qmdl": ("/api/qmdl/{name}", ".qmdl"),
    "pcap": ("/api/pcap/{name}", ".pcap"),
    "zip": ("/api/zip/{name}", ".zip"),
}

# Status code the device answers every accepted POST with
HTTP_ACCEPTED = 202


class DeviceClientError(Exception):
    """Base class for errors raised by DeviceClient."""


class ApiError(DeviceClientError):
    """The device answered with an unexpected HTTP status."""


class DeviceConnectionError(DeviceClientError):
    """The device could not be reached (DNS, refused, timeout)."""


class ParseError(DeviceClientError):
    """The response body is not valid JSON or NDJSON."""


def normalize_host(host: str) -> str:
    """Prefix a host with http:// unless it already carries a scheme.

    Args:
        host: Host as typed by the user, e.g. ``192.168.1.1:8080``.

    Returns:
        Base URL for API requests.

    Example:
        >>> normalize_host("rayhunter.local")
        'http://rayhunter.local'
        >>> normalize_host("https://rayhunter.local")
        'https://rayhunter.local'
    """
    if host.startswith(("http://", "https://")):
        return host
    return f"http://{host}"


def encode_name(name: str) -> str:
    """Percent-encode a recording name as a single path segment.

    Spaces become ``+`` and reserved characters such as ``/`` and ``?`` are
    escaped, so a name can never add path segments or a query string.
    """
    return quote_plus(name, safe="")


def _parse_line(line: str, context: str) -> dict[str, Any]:
    try:
        value = json.loads(line)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse {context}: {e}") from e
    if not isinstance(value, dict):
        raise ParseError(f"Failed to parse {context}: expected a JSON object")
    return value


def parse_ndjson(body: str) -> AnalysisReport:
    """Parse an NDJSON analysis report body.

    The first non-empty line is the metadata object; each following line is
    parsed on its own as a row.

    Args:
        body: Raw response body.

    Returns:
        AnalysisReport with metadata and rows in line order.

    Raises:
        ParseError: If the body is empty or any line is not a JSON object.
    """
    lines = [line for line in body.split("\n") if line.strip()]
    if not lines:
        raise ParseError("No data received from server")

    metadata = _parse_line(lines[0], "metadata")
    rows = [
        _parse_line(line, f"row {index}")
        for index, line in enumerate(lines[1:], start=1)
    ]
    return AnalysisReport(metadata=metadata, rows=rows)


def parse_json(body: str) -> Any:
    """Parse a whole-body JSON response.

    Raises:
        ParseError: If the body is not valid JSON.
    """
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse response: {e}") from e


class DeviceClient:
    """Client for a single Rayhunter device.

    Attributes:
        host: Normalized base URL of the device.
        username: Basic auth username, if any.
        password: Basic auth password, if any.
        verbose: Whether to trace every request on ``stderr``.
        stderr: Stream the verbose trace is written to.
        timeout: Per-request timeout in seconds.

    Example:
        >>> client = DeviceClient("192.168.1.1:8080", verbose=True)
        >>> report = client.fetch_live_analysis_report()
        >>> print(report.metadata["report_version"])
    """

    def __init__(
        self,
        host: str,
        username: str | None = None,
        password: str | None = None,
        verbose: bool = False,
        stderr: TextIO | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            host: Device host, with or without scheme.
            username: Basic auth username.
            password: Basic auth password.
            verbose: Trace requests and raw responses on ``stderr``.
            stderr: Stream for the verbose trace (defaults to sys.stderr).
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport, used by tests.
        """
        self.host = normalize_host(host)
        self.username = username
        self.password = password
        self.verbose = verbose
        self.stderr = stderr if stderr is not None else sys.stderr
        self.timeout = timeout
        self._transport = transport

    # -------------------------------------------------------------------------
    # Analysis reports
    # -------------------------------------------------------------------------

    def fetch_live_analysis_report(self) -> AnalysisReport:
        """Fetch the analysis report of the recording in progress."""
        return self._request("GET", "/api/analysis-report/live", self._parse_ndjson)

    def fetch_analysis_report(self, name: str) -> AnalysisReport:
        """Fetch the analysis report of a finished recording.

        Args:
            name: Recording name from the manifest.
        """
        return self._request(
            "GET", f"/api/analysis-report/{encode_name(name)}", self._parse_ndjson
        )

    # -------------------------------------------------------------------------
    # JSON endpoints
    # -------------------------------------------------------------------------

    def fetch_manifest(self) -> dict[str, Any]:
        """Fetch the recording manifest (``entries`` and ``current_entry``)."""
        return self._request("GET", "/api/qmdl-manifest", self._parse_json)

    def fetch_analysis_status(self) -> dict[str, Any]:
        """Fetch the analysis queue (``running``, ``queued``, ``finished``)."""
        return self._request("GET", "/api/analysis", self._parse_json)

    def fetch_system_stats(self) -> dict[str, Any]:
        """Fetch disk, memory and runtime statistics."""
        return self._request("GET", "/api/system-stats", self._parse_json)

    def fetch_config(self) -> dict[str, Any]:
        """Fetch the device configuration."""
        return self._request("GET", "/api/config", self._parse_json)

    # -------------------------------------------------------------------------
    # Control endpoints
    # -------------------------------------------------------------------------

    def delete_recording(self, name: str) -> None:
        """Delete a recording from the device."""
        self._request(
            "POST",
            f"/api/delete-recording/{encode_name(name)}",
            _ignore_body,
            expected_status=HTTP_ACCEPTED,
        )

    def start_analysis(self, name: str) -> dict[str, Any]:
        """Queue a recording for analysis.

        Returns:
            The analysis status returned by the device.
        """
        return self._request(
            "POST",
            f"/api/analysis/{encode_name(name)}",
            self._parse_json,
            expected_status=HTTP_ACCEPTED,
        )

    def stop_recording(self) -> None:
        """Stop the recording in progress."""
        self._request(
            "POST", "/api/stop-recording", _ignore_body, expected_status=HTTP_ACCEPTED
        )

    def start_recording(self) -> None:
        """Start a new recording."""
        self._request(
            "POST", "/api/start-recording", _ignore_body, expected_status=HTTP_ACCEPTED
        )

    def set_config(self, body: str) -> None:
        """Replace the device configuration.

        Args:
            body: Complete configuration as a JSON document.
        """
        self._request(
            "POST",
            "/api/config",
            _ignore_body,
            expected_status=HTTP_ACCEPTED,
            content=body,
        )

    # -------------------------------------------------------------------------
    # Device log, clock and debugging
    # -------------------------------------------------------------------------

    def fetch_log(self) -> str:
        """Fetch the device's daemon log as plain text."""
        return self._request("GET", "/api/log", _text_body)

    def fetch_time(self) -> dict[str, Any]:
        """Fetch the device clock (``system_time``, ``adjusted_time``, ``offset_seconds``)."""
        return self._request("GET", "/api/time", self._parse_json)

    def set_time_offset(self, offset_seconds: int) -> None:
        """Set the offset the device adds to its system clock.

        Args:
            offset_seconds: Seconds to add; negative when the device runs ahead.
        """
        self._request(
            "POST",
            "/api/time-offset",
            _ignore_body,
            content=json.dumps({"offset_seconds": offset_seconds}),
        )

    def test_notification(self) -> None:
        """Ask the device to send a test message to its notification URL."""
        self._request("POST", "/api/test-notification", _ignore_body)

    def set_display_state(self, body: str) -> None:
        """Override what the device screen shows.

        Args:
            body: Display state as JSON, e.g. ``"Paused"``.
        """
        self._request("POST", "/api/debug/display-state", _ignore_body, content=body)

    # -------------------------------------------------------------------------
    # Downloads
    # -------------------------------------------------------------------------

    def download_recording(self, name: str, format: str, sink: BinaryIO) -> int:
        """Stream a recording into ``sink`` without buffering it in memory.

        Args:
            name: Recording name.
            format: One of ``qmdl``, ``pcap`` or ``zip``.
            sink: Binary stream the body is written to, chunk by chunk.

        Returns:
            Number of bytes written.

        Raises:
            ValueError: If the format is unknown.
            ApiError: If the device answers with a non-success status.
            DeviceConnectionError: If the device cannot be reached.
        """
        if format not in DOWNLOAD_FORMATS:
            raise ValueError(f"unknown download format: {format}")
        path = DOWNLOAD_FORMATS[format][0].format(name=encode_name(name))
        url = f"{self.host}{path}"

        self._trace_request("GET", url)
        started = time.monotonic()
        try:
            with self._http_client() as client, client.stream("GET", url) as response:
                self._trace_response(response, time.monotonic() - started)
                if not response.is_success:
                    response.read()
                    self._trace_body(response)
                    raise _api_error(response)

                self._trace("Streaming response body")
                written = 0
                for chunk in response.iter_bytes():
                    sink.write(chunk)
                    written += len(chunk)
        except httpx.TransportError as e:
            raise self._connection_error(e) from e

        self._trace(f"Streamed {written} bytes")
        log_debug(f"Downloaded {name} as {format}: {written} bytes")
        return written

    # -------------------------------------------------------------------------
    # Request plumbing
    # -------------------------------------------------------------------------

    @property
    def _auth(self) -> httpx.BasicAuth | None:
        if self.username and self.password:
            return httpx.BasicAuth(self.username, self.password)
        return None

    def _http_client(self) -> httpx.Client:
        return httpx.Client(
            auth=self._auth,
            timeout=self.timeout,
            transport=self._transport,
        )

    def _request(
        self,
        method: str,
        path: str,
        parser: Callable[[str], T],
        expected_status: int | None = None,
        content: str | None = None,
    ) -> T:
        """Issue a buffered request and parse its body.

        The raw body is traced before status checking and parsing, so the
        verbose output shows what the device sent even when parsing fails.

        Args:
            method: HTTP method.
            path: Path below the host, already encoded.
            parser: Turns the body text into the result.
            expected_status: Exact status to accept; any 2xx when None.
            content: Optional request body.

        Returns:
            Whatever ``parser`` returns.
        """
        url = f"{self.host}{path}"
        self._trace_request(method, url)
        started = time.monotonic()
        try:
            with self._http_client() as client:
                if content is None:
                    response = client.request(method, url)
                else:
                    response = client.request(
                        method,
                        url,
                        content=content,
                        headers={"Content-Type": "application/json"},
                    )
        except httpx.TransportError as e:
            raise self._connection_error(e) from e

        self._trace_response(response, time.monotonic() - started)
        self._trace_body(response)

        if expected_status is None:
            accepted = response.is_success
        else:
            accepted = response.status_code == expected_status
        if not accepted:
            raise _api_error(response)

        return parser(response.text)

    def _parse_ndjson(self, body: str) -> AnalysisReport:
        self._trace("Parsing NDJSON...")
        try:
            report = parse_ndjson(body)
        except ParseError as e:
            self._trace(f"Parse failed: {e}")
            raise
        count = len(report.rows)
        self._trace(f"Parsed successfully: metadata + {count} row{'' if count == 1 else 's'}")
        return report

    def _parse_json(self, body: str) -> Any:
        self._trace("Parsing JSON...")
        try:
            data = parse_json(body)
        except ParseError as e:
            self._trace(f"Parse failed: {e}")
            raise
        self._trace("Parsed successfully")
        return data

    def _connection_error(self, error: httpx.TransportError) -> DeviceConnectionError:
        detail = str(error) or type(error).__name__
        self._trace(f"Connection error: {detail}")
        log_error(f"Connection to {self.host} failed: {detail}")
        return DeviceConnectionError(f"Failed to connect to {self.host}: {detail}")

    # -------------------------------------------------------------------------
    # Verbose trace
    # -------------------------------------------------------------------------

    def _trace(self, message: str) -> None:
        if self.verbose:
            self.stderr.write(f"{message}\n")
            self.stderr.flush()

    def _trace_request(self, method: str, url: str) -> None:
        log_debug(f"HTTP {method} {url}")
        self._trace(f"HTTP {method} {url}")
        if self.username and self.password:
            self._trace(f"Basic Auth: user={self.username}")
        self._trace(f"Request started at: {datetime.now().astimezone().isoformat()}")

    def _trace_response(self, response: httpx.Response, elapsed: float) -> None:
        log_debug(f"Response {response.status_code} in {elapsed:.3f}s")
        self._trace(
            f"Response received: {response.status_code} {response.reason_phrase} "
            f"({elapsed:.3f}s)"
        )

    def _trace_body(self, response: httpx.Response) -> None:
        self._trace(f"Raw response body ({len(response.content)} bytes):")
        self._trace(response.text)


def _ignore_body(body: str) -> None:
    return None


def _text_body(body: str) -> str:
    return body


def _api_error(response: httpx.Response) -> ApiError:
    detail = response.text.strip() or response.reason_phrase
    return ApiError(f"Server returned {response.status_code}: {detail}")
