"""Alert extraction and filtering for analysis reports.

Rows from an analysis report carry one event slot per analyzer. This module
flattens the non-informational events into a list of alerts, narrows that
list to a time window, and maps the worst remaining severity to a process
exit code.

All functions are pure: they never touch the network or the streams.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Any

from .models import Alert, Severity, severity_rank

EXIT_CODE_SUCCESS = 0
EXIT_CODE_ERROR = 1
EXIT_CODE_LOW_SEVERITY = 10
EXIT_CODE_MEDIUM_SEVERITY = 11
EXIT_CODE_HIGH_SEVERITY = 12

SEVERITY_EXIT_CODES: dict[int, int] = {
    Severity.LOW.rank: EXIT_CODE_LOW_SEVERITY,
    Severity.MEDIUM.rank: EXIT_CODE_MEDIUM_SEVERITY,
    Severity.HIGH.rank: EXIT_CODE_HIGH_SEVERITY,
}


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp.

    A trailing ``Z`` is accepted. Timestamps without an offset are taken
    as UTC so they compare with offset-aware ones.

    Args:
        value: Timestamp string, e.g. ``2024-02-07T14:25:33Z``.

    Returns:
        Timezone-aware datetime.

    Raises:
        ValueError: If the string is not a timestamp.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = f"{text[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise ValueError(f"invalid timestamp: {value}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def extract_alerts(
    rows: Iterable[dict[str, Any]],
    metadata: dict[str, Any] | None,
) -> list[Alert]:
    """Flatten report rows into alerts.

    Alerts come out in row order, then in event-position order within a
    row. Null event slots, events without an ``event_type`` and
    Informational (or unrecognized) events are dropped.

    Args:
        rows: Report rows.
        metadata: Report metadata; ``analyzers[i]`` names the analyzer of
            ``events[i]``.

    Returns:
        Alerts in source order.
    """
    analyzers = (metadata or {}).get("analyzers") or []
    alerts: list[Alert] = []

    for row in rows:
        events = row.get("events") or []
        for index, event in enumerate(events):
            if not isinstance(event, dict):
                continue
            rank = severity_rank(event.get("event_type"))
            if rank == 0:
                continue
            alerts.append(
                Alert(
                    severity=Severity(event["event_type"]),
                    message=event.get("message"),
                    packet_timestamp=row.get("packet_timestamp"),
                    analyzer=_analyzer_name(analyzers, index),
                )
            )

    return alerts


def _analyzer_name(analyzers: Sequence[Any], index: int) -> str | None:
    if index >= len(analyzers):
        return None
    analyzer = analyzers[index]
    if not isinstance(analyzer, dict):
        return None
    return analyzer.get("name")


def filter_after(alerts: Iterable[Alert], threshold: datetime) -> list[Alert]:
    """Keep alerts strictly later than ``threshold``.

    Alerts without a timestamp are always dropped.
    """
    return [
        alert
        for alert in alerts
        if alert.packet_timestamp is not None
        and parse_timestamp(alert.packet_timestamp) > threshold
    ]


def filter_latest(
    alerts: Sequence[Alert],
    rows: Iterable[dict[str, Any]],
    after_applied: bool = False,
) -> list[Alert]:
    """Keep only the alerts of the most recent packet.

    Without ``--after`` the most recent packet is the latest timestamp over
    all rows, so an alert-free latest packet yields no alerts. With
    ``--after`` the latest timestamp is taken over the already-filtered
    alerts instead. Alerts sharing the latest timestamp are all kept;
    timestamps that do not parse never count as the latest.

    Args:
        alerts: Candidate alerts.
        rows: All report rows.
        after_applied: Whether ``alerts`` was already narrowed by
            ``filter_after``.

    Returns:
        Alerts whose timestamp equals the latest one.
    """
    if after_applied:
        timestamps = [alert.packet_timestamp for alert in alerts]
    else:
        timestamps = [row.get("packet_timestamp") for row in rows]

    parsed = [ts for ts in map(_parse_or_none, timestamps) if ts is not None]
    if not parsed:
        return []
    latest = max(parsed)

    return [alert for alert in alerts if _parse_or_none(alert.packet_timestamp) == latest]


def _parse_or_none(value: Any) -> datetime | None:
    """Parse a packet timestamp; missing or malformed ones are skipped."""
    if not isinstance(value, str):
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        return None


def severity_exit_code(alerts: Iterable[Alert]) -> int:
    """Map the worst alert severity to an exit code.

    Returns 0 for no alerts, otherwise 10 (Low), 11 (Medium) or 12 (High).
    """
    ranks = [alert.rank for alert in alerts]
    if not ranks:
        return EXIT_CODE_SUCCESS
    return SEVERITY_EXIT_CODES.get(max(ranks), EXIT_CODE_SUCCESS)
