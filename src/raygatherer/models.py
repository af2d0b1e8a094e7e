"""Pydantic models for raygatherer.

This module contains the data models built from device responses: the
parsed analysis report and the alerts derived from it.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Analyzer event severities, in ascending order."""

    INFORMATIONAL = "Informational"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def rank(self) -> int:
        """Position in the total order Informational < Low < Medium < High."""
        return SEVERITY_RANK[self.value]


SEVERITY_RANK: dict[str, int] = {
    "Informational": 0,
    "Low": 1,
    "Medium": 2,
    "High": 3,
}


def severity_rank(event_type: Any) -> int:
    """Rank an event_type string.

    Matching is case-sensitive. Unknown or missing types rank as
    Informational (0).

    Args:
        event_type: Raw event_type value from a report row.

    Returns:
        Severity rank between 0 and 3.
    """
    if not isinstance(event_type, str):
        return 0
    return SEVERITY_RANK.get(event_type, 0)


# =============================================================================
# Analysis Report Models
# =============================================================================


class AnalysisReport(BaseModel):
    """A parsed NDJSON analysis report.

    The first NDJSON line is the metadata object; every following line is
    one row, kept in line order. Rows are either
    ``{packet_timestamp, events: [event | None, ...]}`` or
    ``{packet_timestamp, skipped_message_reason}``.

    Position ``i`` of ``metadata["analyzers"]`` describes the analyzer that
    produced ``events[i]`` in every row. Nothing else ties the two lists
    together, so their order must never be changed.

    Attributes:
        metadata: Device/runtime descriptors and the ordered analyzer list.
        rows: Per-packet records in NDJSON order.
    """

    model_config = ConfigDict(frozen=True)

    metadata: dict[str, Any] = Field(default_factory=dict)
    rows: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def analyzers(self) -> list[Any]:
        """Analyzer descriptors in event-position order."""
        analyzers = self.metadata.get("analyzers")
        return analyzers if isinstance(analyzers, list) else []


class Alert(BaseModel):
    """A non-informational analyzer event.

    Alerts are derived locally; the device never sends them as such.

    Attributes:
        severity: Event severity (never Informational).
        message: Analyzer message.
        packet_timestamp: Timestamp of the packet row the event came from.
        analyzer: Name of the analyzer at the event's position, if known.
    """

    model_config = ConfigDict(frozen=True)

    severity: Severity
    message: str | None = None
    packet_timestamp: str | None = None
    analyzer: str | None = None

    @property
    def rank(self) -> int:
        """Severity rank of this alert."""
        return self.severity.rank
