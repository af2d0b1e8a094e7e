"""Pytest configuration and shared fixtures.

This module provides fixtures used across test modules for testing
raygatherer against a fake device served through ``httpx.MockTransport``.
"""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from raygatherer.client import DeviceClient

DEVICE_HOST = "http://rayhunter.local:8080"

Handler = Callable[[httpx.Request], httpx.Response]


def respond(status: int, body: Any = None) -> httpx.Response:
    """Build a response; dicts and lists become JSON, str text, bytes raw content."""
    if body is None:
        return httpx.Response(status)
    if isinstance(body, bytes):
        return httpx.Response(status, content=body)
    if isinstance(body, str):
        return httpx.Response(status, text=body)
    return httpx.Response(status, json=body)


class FakeDevice:
    """A scripted device: answers by (method, path) and records every request.

    Route values are either ``(status, body)`` tuples or callables taking the
    request. Unknown routes answer 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return respond(404, "not found")
        if callable(route):
            return route(request)
        return respond(*route)

    @property
    def calls(self) -> list[tuple[str, str]]:
        """Method and path of every request, in order."""
        return [(request.method, request.url.path) for request in self.requests]


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point config lookup at an empty directory and disable the log file."""
    config_home = tmp_path / "xdg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.delenv("RAYGATHERER_LOG_FILE", raising=False)
    monkeypatch.delenv("RAYGATHERER_LOG_LEVEL", raising=False)
    return config_home


@pytest.fixture
def sample_metadata() -> dict[str, Any]:
    """Create report metadata with two analyzers."""
    return {
        "rayhunter": {
            "rayhunter_version": "0.2.6",
            "system_os": "Linux 3.18.48",
            "arch": "armv7l",
        },
        "report_version": 2,
        "analyzers": [
            {"name": "IMSI Requested", "version": 2, "description": "IMSI identity request"},
            {"name": "Null Cipher", "version": 1, "description": "Null cipher in use"},
        ],
    }


@pytest.fixture
def sample_rows() -> list[dict[str, Any]]:
    """Create report rows: an informational packet, an alerting one, a skipped one."""
    return [
        {
            "packet_timestamp": "2024-02-07T14:25:30Z",
            "events": [None, {"event_type": "Informational", "message": "all good"}],
        },
        {
            "packet_timestamp": "2024-02-07T14:25:32Z",
            "events": [
                {"event_type": "High", "message": "IMSI requested after attach"},
                {"event_type": "Low", "message": "Null cipher negotiated"},
            ],
        },
        {
            "packet_timestamp": "2024-02-07T14:25:33Z",
            "skipped_message_reason": "failed to decode",
        },
    ]


@pytest.fixture
def sample_report_body(
    sample_metadata: dict[str, Any], sample_rows: list[dict[str, Any]]
) -> str:
    """Serialize the sample report as NDJSON, as the device sends it."""
    lines = [json.dumps(sample_metadata)] + [json.dumps(row) for row in sample_rows]
    return "\n".join(lines) + "\n"


@pytest.fixture
def sample_manifest() -> dict[str, Any]:
    """Create a manifest with two finished recordings and one in progress."""
    return {
        "entries": [
            {
                "name": "1738950000",
                "start_time": "2025-02-07T14:20:00+00:00",
                "last_message_time": "2025-02-07T15:00:00+00:00",
                "qmdl_size_bytes": 1536,
            },
            {
                "name": "1738960000",
                "start_time": "2025-02-07T17:06:40+00:00",
                "last_message_time": "2025-02-07T18:00:00+00:00",
                "qmdl_size_bytes": 2097152,
            },
        ],
        "current_entry": {
            "name": "1738970000",
            "start_time": "2025-02-07T19:53:20+00:00",
            "last_message_time": None,
            "qmdl_size_bytes": 512,
        },
    }


@pytest.fixture
def sample_status() -> dict[str, Any]:
    """Create an analysis queue status."""
    return {"running": "1738950000", "queued": ["1738960000"], "finished": []}


@pytest.fixture
def sample_device_config() -> dict[str, Any]:
    """Create a device configuration."""
    return {
        "qmdl_store_path": "/data/rayhunter/qmdl",
        "port": 8080,
        "readonly_port": 8081,
        "notification_url": None,
        "analyzers": {"imsi_requested": True, "null_cipher": False},
    }


@pytest.fixture
def sample_stats() -> dict[str, Any]:
    """Create system stats as reported by the device."""
    return {
        "disk_stats": {
            "partition": "/dev/ubi0_0",
            "total_size": "214.8M",
            "used_size": "40.2M",
            "available_size": "174.6M",
            "used_percent": "19%",
            "mounted_on": "/data",
        },
        "memory_stats": {"total": "154.2M", "used": "126.6M", "free": "27.6M"},
        "runtime_metadata": {
            "rayhunter_version": "0.2.6",
            "system_os": "Linux 3.18.48",
            "arch": "armv7l",
        },
        "battery_status": None,
    }


@pytest.fixture
def make_client() -> Callable[..., DeviceClient]:
    """Build a DeviceClient whose requests are answered by ``handler``."""

    def factory(handler: Handler, **kwargs: Any) -> DeviceClient:
        return DeviceClient(DEVICE_HOST, transport=httpx.MockTransport(handler), **kwargs)

    return factory


@pytest.fixture
def fake_device() -> FakeDevice:
    """Create a fake device with no routes."""
    return FakeDevice()


@pytest.fixture
def device_client(
    fake_device: FakeDevice, make_client: Callable[..., DeviceClient]
) -> DeviceClient:
    """Build a DeviceClient talking to ``fake_device``."""
    return make_client(fake_device)


@pytest.fixture
def sample_clock() -> dict[str, Any]:
    """Create a device clock running 30 seconds behind."""
    return {
        "system_time": "2025-02-07T14:20:00Z",
        "adjusted_time": "2025-02-07T14:20:30Z",
        "offset_seconds": 30,
    }
