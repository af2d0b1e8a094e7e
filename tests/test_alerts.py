"""Tests for alert extraction, filtering and exit codes."""

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from raygatherer.alerts import (
    extract_alerts,
    filter_after,
    filter_latest,
    parse_timestamp,
    severity_exit_code,
)
from raygatherer.models import Alert, Severity


def make_row(timestamp: str | None, *events: dict[str, Any] | None) -> dict[str, Any]:
    """Build a report row with the given event slots."""
    return {"packet_timestamp": timestamp, "events": list(events)}


def event(event_type: str, message: str = "message") -> dict[str, Any]:
    """Build an analyzer event."""
    return {"event_type": event_type, "message": message}


class TestParseTimestamp:
    """Tests for ISO 8601 timestamp parsing."""

    def test_zulu_suffix(self) -> None:
        """Test that a trailing Z means UTC."""
        parsed = parse_timestamp("2024-02-07T14:25:33Z")
        assert parsed == datetime(2024, 2, 7, 14, 25, 33, tzinfo=timezone.utc)

    def test_naive_is_utc(self) -> None:
        """Test that a timestamp without offset compares as UTC."""
        assert parse_timestamp("2024-02-07T14:25:33") == parse_timestamp("2024-02-07T14:25:33Z")

    def test_offset(self) -> None:
        """Test that offsets are honoured when comparing."""
        assert parse_timestamp("2024-02-07T16:25:33+02:00") == parse_timestamp(
            "2024-02-07T14:25:33Z"
        )

    def test_invalid(self) -> None:
        """Test that garbage is rejected with the offending text."""
        with pytest.raises(ValueError, match="invalid timestamp: yesterday"):
            parse_timestamp("yesterday")


class TestExtractAlerts:
    """Tests for extract_alerts."""

    def test_sample_report(
        self, sample_rows: list[dict[str, Any]], sample_metadata: dict[str, Any]
    ) -> None:
        """Test extraction from a realistic report."""
        alerts = extract_alerts(sample_rows, sample_metadata)

        assert [alert.severity for alert in alerts] == [Severity.HIGH, Severity.LOW]
        assert alerts[0].analyzer == "IMSI Requested"
        assert alerts[0].message == "IMSI requested after attach"
        assert alerts[0].packet_timestamp == "2024-02-07T14:25:32Z"
        assert alerts[1].analyzer == "Null Cipher"

    def test_row_then_position_order(self) -> None:
        """Test that alerts keep row order, then event position order."""
        rows = [
            make_row("2024-01-01T00:00:01Z", event("Low", "a"), event("High", "b")),
            make_row("2024-01-01T00:00:02Z", event("Medium", "c")),
        ]

        alerts = extract_alerts(rows, {})

        assert [alert.message for alert in alerts] == ["a", "b", "c"]

    def test_informational_and_null_dropped(self) -> None:
        """Test that only ranked events become alerts."""
        rows = [make_row("2024-01-01T00:00:01Z", None, event("Informational"), event("Medium"))]

        alerts = extract_alerts(rows, {})

        assert len(alerts) == 1
        assert alerts[0].severity == Severity.MEDIUM

    def test_unknown_and_lowercase_types_dropped(self) -> None:
        """Test that event types match case-sensitively."""
        rows = [
            make_row(
                "2024-01-01T00:00:01Z",
                event("high"),
                event("Critical"),
                {"message": "no type"},
            )
        ]

        assert extract_alerts(rows, {}) == []

    def test_analyzer_out_of_range(self) -> None:
        """Test that an event without a matching analyzer has no analyzer name."""
        metadata = {"analyzers": [{"name": "Only One"}]}
        rows = [make_row("2024-01-01T00:00:01Z", None, event("High"))]

        alerts = extract_alerts(rows, metadata)

        assert alerts[0].analyzer is None

    def test_skipped_rows_ignored(self) -> None:
        """Test that skipped messages produce no alerts."""
        rows = [{"packet_timestamp": "2024-01-01T00:00:01Z", "skipped_message_reason": "x"}]

        assert extract_alerts(rows, None) == []


class TestFilterAfter:
    """Tests for the --after filter."""

    def test_strictly_after(self) -> None:
        """Test that the threshold itself is excluded."""
        alerts = [
            Alert(severity=Severity.LOW, packet_timestamp="2024-01-01T00:00:01Z"),
            Alert(severity=Severity.HIGH, packet_timestamp="2024-01-01T00:00:02Z"),
        ]

        kept = filter_after(alerts, parse_timestamp("2024-01-01T00:00:01Z"))

        assert [alert.severity for alert in kept] == [Severity.HIGH]

    def test_missing_timestamp_dropped(self) -> None:
        """Test that alerts without a timestamp never pass."""
        alerts = [Alert(severity=Severity.HIGH)]

        assert filter_after(alerts, parse_timestamp("2000-01-01T00:00:00Z")) == []


class TestFilterLatest:
    """Tests for the --latest filter."""

    def test_latest_alerting_packet(self) -> None:
        """Test that only the newest packet's alerts remain."""
        rows = [
            make_row("2024-01-01T00:00:01Z", event("High")),
            make_row("2024-01-01T00:00:02Z", event("Low")),
        ]
        alerts = extract_alerts(rows, {})

        latest = filter_latest(alerts, rows)

        assert [alert.severity for alert in latest] == [Severity.LOW]
        assert severity_exit_code(latest) == 10

    def test_latest_packet_without_alerts(
        self, sample_rows: list[dict[str, Any]], sample_metadata: dict[str, Any]
    ) -> None:
        """Test that a quiet newest packet means no alerts."""
        alerts = extract_alerts(sample_rows, sample_metadata)

        assert filter_latest(alerts, sample_rows) == []

    def test_no_timestamps(self) -> None:
        """Test that rows without timestamps give no latest packet."""
        rows = [make_row(None, event("High"))]
        alerts = extract_alerts(rows, {})

        assert filter_latest(alerts, rows) == []

    def test_malformed_row_timestamp_skipped(self) -> None:
        """Test that a skipped row with a bad timestamp does not break --latest."""
        rows = [
            make_row("2024-01-01T00:00:01Z", event("High")),
            {"packet_timestamp": "not-a-time", "skipped_message_reason": "failed to decode"},
        ]
        alerts = extract_alerts(rows, {})

        latest = filter_latest(alerts, rows)

        assert [alert.severity for alert in latest] == [Severity.HIGH]

    def test_ties_kept(self) -> None:
        """Test that every alert at the newest timestamp is kept."""
        rows = [
            make_row("2024-01-01T00:00:01Z", event("Low")),
            make_row("2024-01-01T00:00:02Z", event("Medium"), event("High")),
        ]
        alerts = extract_alerts(rows, {})

        latest = filter_latest(alerts, rows)

        assert [alert.severity for alert in latest] == [Severity.MEDIUM, Severity.HIGH]
        assert severity_exit_code(latest) == 12

    def test_after_then_latest(self) -> None:
        """Test --after with --latest uses the newest remaining alert."""
        rows = [
            make_row("2024-01-01T00:00:01Z", event("Low")),
            make_row("2024-01-01T00:00:02Z", event("High")),
            make_row("2024-01-01T00:00:03Z", event("Medium")),
            make_row("2024-01-01T00:00:04Z", event("Informational")),
        ]
        alerts = extract_alerts(rows, {})
        after = filter_after(alerts, parse_timestamp("2024-01-01T00:00:01Z"))

        latest = filter_latest(after, rows, after_applied=True)

        assert [alert.severity for alert in latest] == [Severity.MEDIUM]

    @pytest.mark.parametrize("threshold_seconds", [0, 1, 2, 3, 4, 5])
    def test_after_then_latest_never_widens(self, threshold_seconds: int) -> None:
        """Test that combining filters never returns more than --after alone."""
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        rows = [
            make_row((base + timedelta(seconds=second)).isoformat(), event(kind))
            for second, kind in enumerate(["High", "Low", "Medium", "Low", "High"], start=1)
        ]
        threshold = base + timedelta(seconds=threshold_seconds)
        alerts = extract_alerts(rows, {})

        after = filter_after(alerts, threshold)
        combined = filter_latest(after, rows, after_applied=True)

        assert len(combined) <= len(after)
        assert all(
            parse_timestamp(alert.packet_timestamp or "") > threshold for alert in combined
        )


class TestSeverityExitCode:
    """Tests for exit code derivation."""

    def test_no_alerts(self) -> None:
        """Test that no alerts exits 0."""
        assert severity_exit_code([]) == 0

    @pytest.mark.parametrize(
        ("severities", "expected"),
        [
            ([Severity.LOW], 10),
            ([Severity.LOW, Severity.MEDIUM], 11),
            ([Severity.HIGH, Severity.LOW], 12),
        ],
    )
    def test_worst_severity(self, severities: list[Severity], expected: int) -> None:
        """Test that the worst severity decides the exit code."""
        alerts = [Alert(severity=severity) for severity in severities]
        assert severity_exit_code(alerts) == expected
