"""Output rendering for raygatherer commands.

Human renderers return rich markup strings; commands print them through a
``rich.console.Console`` bound to their stdout, so colour appears only on a
terminal. Device-provided text is escaped before it is embedded in markup.
JSON renderers return plain strings that must be written without rich.
"""

import json
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from rich.markup import escape

from .models import Alert, AnalysisReport, Severity

# =============================================================================
# Helpers
# =============================================================================


def format_size(size: int | None) -> str:
    """Format a byte count for humans.

    Example:
        >>> format_size(1536)
        '1.5 KB'
    """
    if not size:
        return "0 B"
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    if size < 1024 * 1024 * 1024:
        return f"{size / (1024 * 1024):.1f} MB"
    return f"{size / (1024 * 1024 * 1024):.1f} GB"


def format_time(value: str | None) -> str:
    """Format an ISO 8601 timestamp as ``YYYY-MM-DD HH:MM:SS``.

    Unparseable values are returned unchanged.
    """
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime(
            "%Y-%m-%d %H:%M:%S"
        )
    except ValueError:
        return value


def format_packet_time(value: str | None) -> str:
    """Format a packet timestamp as ``[YYYY-MM-DD HH:MM:SS UTC]``."""
    if not value:
        return "[no timestamp]"
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return f"[{value}]"
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return f"[{parsed.strftime('%Y-%m-%d %H:%M:%S')} UTC]"


def to_json(data: Any) -> str:
    """Serialize data as compact JSON for scripts and pipes."""
    return json.dumps(data, ensure_ascii=False)


# =============================================================================
# Alerts
# =============================================================================


def format_alerts_human(alerts: Sequence[Alert]) -> str:
    """Render alerts as coloured blocks separated by blank lines."""
    if not alerts:
        return "[green]✓ No alerts detected[/green]"
    return "\n\n".join(_format_alert(alert) for alert in alerts)


def _format_alert(alert: Alert) -> str:
    high = alert.severity == Severity.HIGH
    icon = "\U0001f6a8" if high else "⚠"
    colour = "red" if high else "yellow"

    lines = [f"{icon} {alert.severity.value} severity alert detected"]
    if alert.analyzer:
        lines.append(f"Analyzer: {escape(alert.analyzer)}")
    if alert.packet_timestamp:
        lines.append(f"Time: {escape(alert.packet_timestamp)}")
    lines.append(f"Message: {escape(alert.message or '')}")
    body = "\n".join(lines)
    return f"[{colour}]{body}[/{colour}]"


def format_alerts_json(alerts: Sequence[Alert]) -> str:
    """Render alerts as a JSON list."""
    return to_json([alert.model_dump(mode="json") for alert in alerts])


# =============================================================================
# Analysis Reports
# =============================================================================


def format_report_human(report: AnalysisReport) -> str:
    """Render a full analysis report: header, analyzers, one line per event."""
    lines = [_report_header(report.metadata), _report_analyzers(report.analyzers), ""]
    for row in report.rows:
        lines.extend(_report_row(row, report.analyzers))
    return "\n".join(lines)


def _report_header(metadata: dict[str, Any]) -> str:
    runtime = metadata.get("rayhunter") or {}
    parts: list[str] = []
    if runtime.get("rayhunter_version"):
        parts.append(f"Rayhunter v{runtime['rayhunter_version']}")
    os_arch = " ".join(
        str(runtime[key]) for key in ("system_os", "arch") if runtime.get(key)
    )
    if os_arch:
        parts.append(os_arch)
    if metadata.get("report_version") is not None:
        parts.append(f"Report version {metadata['report_version']}")
    return escape("  |  ".join(parts))


def _report_analyzers(analyzers: list[Any]) -> str:
    names = []
    for analyzer in analyzers:
        if not isinstance(analyzer, dict):
            continue
        version = f" (v{analyzer['version']})" if analyzer.get("version") is not None else ""
        names.append(f"{analyzer.get('name')}{version}")
    if not names:
        return "Analyzers: (none)"
    return f"Analyzers: {escape(', '.join(names))}"


def _report_row(row: dict[str, Any], analyzers: list[Any]) -> list[str]:
    timestamp = escape(format_packet_time(row.get("packet_timestamp")))

    reason = row.get("skipped_message_reason")
    if reason:
        return [f"{timestamp}  [dim]Skipped: {escape(str(reason))}[/dim]"]

    events = [
        (index, event)
        for index, event in enumerate(row.get("events") or [])
        if isinstance(event, dict)
    ]
    if not events:
        return [f"{timestamp}  [dim]No events[/dim]"]

    lines = []
    for index, event in events:
        event_type = str(event.get("event_type") or "Unknown")
        analyzer = None
        if index < len(analyzers) and isinstance(analyzers[index], dict):
            analyzer = analyzers[index].get("name")
        analyzer_part = f"({escape(str(analyzer))}) " if analyzer else ""
        message = escape(str(event.get("message") or ""))
        lines.append(f"{timestamp}  {escape(event_type.ljust(13))}  {analyzer_part}{message}")
    return lines


def format_report_json(report: AnalysisReport) -> str:
    """Render a report as ``{"metadata": ..., "rows": [...]}``."""
    return to_json(report.model_dump(mode="json"))


# =============================================================================
# Recordings
# =============================================================================


def format_manifest_human(manifest: dict[str, Any]) -> str:
    """Render the recording manifest, the active recording first."""
    entries = manifest.get("entries") or []
    current = manifest.get("current_entry")
    total = len(entries) + (1 if current else 0)

    if total == 0:
        return "No recordings found"

    header = f"Recordings: {total} (1 active)" if current else f"Recordings: {total}"
    blocks = [f"[bold]{header}[/bold]"]
    if current:
        blocks.append(_manifest_entry(current, active=True))
    blocks.extend(_manifest_entry(entry, active=False) for entry in entries)
    return "\n\n".join(blocks)


def _manifest_entry(entry: dict[str, Any], active: bool) -> str:
    name = escape(str(entry.get("name")))
    if active:
        lines = [f"[green]● {name} (recording)[/green]"]
    else:
        lines = [f"  [cyan]{name}[/cyan]"]
    lines.append(f"  Started:      {format_time(entry.get('start_time'))}")
    if not active:
        lines.append(f"  Last message: {format_time(entry.get('last_message_time'))}")
    lines.append(f"  Size:         {format_size(entry.get('qmdl_size_bytes'))}")
    return "\n".join(lines)


# =============================================================================
# Analysis Status
# =============================================================================


def format_analysis_status_human(status: dict[str, Any]) -> str:
    """Render the analysis queue: running, queued and finished recordings."""
    running = status.get("running")
    lines = [f"Running: {escape(str(running)) if running else '(none)'}"]

    for title, key in (("Queued", "queued"), ("Finished", "finished")):
        names = status.get(key) or []
        lines.append("")
        lines.append(f"{title} ({len(names)}):")
        if names:
            lines.extend(f"  {escape(str(name))}" for name in names)
        else:
            lines.append("  (none)")

    return "\n".join(lines)


# =============================================================================
# Device Config, Stats and Clock
# =============================================================================


def format_config_human(config: dict[str, Any]) -> str:
    """Render the device configuration."""
    lines = [
        f"Port: {config.get('port')}",
        f"Readonly port: {config.get('readonly_port')}",
        f"QMDL store path: {escape(str(config.get('qmdl_store_path')))}",
        f"Notification URL: {escape(str(config.get('notification_url') or '(not set)'))}",
    ]

    analyzers = config.get("analyzers")
    if isinstance(analyzers, dict):
        lines.append("")
        lines.append("Analyzers:")
        for name, enabled in analyzers.items():
            state = "[green]enabled[/green]" if enabled else "[dim]disabled[/dim]"
            lines.append(f"  {escape(str(name))}: {state}")

    return "\n".join(lines)


def format_stats_human(stats: dict[str, Any]) -> str:
    """Render system stats: runtime, disk, memory and battery when present."""
    runtime = stats.get("runtime_metadata") or {}
    disk = stats.get("disk_stats") or {}
    memory = stats.get("memory_stats") or {}

    lines = [
        escape(
            f"Rayhunter v{runtime.get('rayhunter_version')} | "
            f"{runtime.get('system_os')} | {runtime.get('arch')}"
        ),
        "",
        escape(
            f"Disk: {disk.get('used_size')} / {disk.get('total_size')} "
            f"({disk.get('used_percent')}) on {disk.get('mounted_on')}"
        ),
        escape(
            f"Memory: {memory.get('used')} / {memory.get('total')} "
            f"({memory.get('free')} free)"
        ),
    ]

    battery = stats.get("battery_status")
    if battery:
        plug = "plugged in" if battery.get("is_plugged_in") else "on battery"
        lines.append(f"Battery: {battery.get('level')}% ({plug})")

    return "\n".join(lines)


def format_time_human(clock: dict[str, Any]) -> str:
    """Render the device clock and the offset applied to it."""
    return escape(
        "\n".join(
            [
                f"System time:   {clock.get('system_time')}",
                f"Adjusted time: {clock.get('adjusted_time')}",
                f"Offset:        {clock.get('offset_seconds')}s",
            ]
        )
    )
