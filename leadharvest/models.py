"""Shared data models for the lead harvesting pipeline."""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Optional
from urllib.parse import urlparse

# Separator for multi-value cells (emails, contact channels)
MULTI_VALUE_SEPARATOR = " | "


class HostClass(str, Enum):
    """Classification of a hostname for routing."""

    SKIP = "skip"
    BUILDER = "builder"
    ORDINARY = "ordinary"


class FilterReason(str, Enum):
    """Why a candidate ended up in the filtered table."""

    AGGREGATOR = "aggregator"
    BUILDER_PLATFORM = "builder_platform"
    BELOW_THRESHOLD = "below_threshold"
    NO_DEV_SIGNAL = "no_dev_signal"
    NO_TEAM_CUE = "no_team_cue"


@dataclass
class Candidate:
    """A candidate URL and the source that produced it."""

    url: str
    source: str = "unknown"

    @property
    def hostname(self) -> str:
        """Lowercased hostname of the candidate URL (no port)."""
        return (urlparse(self.url).hostname or "").rstrip(".")


@dataclass
class FetchResult:
    """Result from fetching a single URL."""

    status: int
    body: str
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        """Whether the response is a success status with a body."""
        return 200 <= self.status < 400 and bool(self.body)


@dataclass
class SignalBuckets:
    """Matched scoring tokens grouped by what they indicate."""

    dev: list[str] = field(default_factory=list)
    team: list[str] = field(default_factory=list)
    launch: list[str] = field(default_factory=list)
    negative: list[str] = field(default_factory=list)


@dataclass
class CapabilityFlags:
    """Keyword-presence flags reported on every lead."""

    pricing: bool = False
    docs: bool = False
    signup: bool = False
    changelog: bool = False
    api: bool = False
    webhook: bool = False
    cli: bool = False
    sdk: bool = False


@dataclass
class ScoreResult:
    """Result from weighted scoring of page text."""

    score: float
    signals: SignalBuckets
    passed: bool
    filter_reason: Optional[FilterReason] = None
    pricing_model: str = ""

    @property
    def team_cue(self) -> str:
        """First matched team-signal token, if any."""
        return self.signals.team[0] if self.signals.team else ""


@dataclass
class Lead:
    """Persisted record for one prospect identity.

    Field order is the column order of the lead tables.
    """

    discovered_at: str
    source: str
    source_url: str
    canonical: str
    title: str = ""
    value_prop: str = ""
    status: int = 0
    weighted_score: float = 0.0
    has_pricing: bool = False
    has_docs: bool = False
    has_signup: bool = False
    has_changelog: bool = False
    has_api: bool = False
    has_webhook: bool = False
    has_cli: bool = False
    has_sdk: bool = False
    team_cue: str = ""
    pricing_model: str = ""
    has_careers: bool = False
    team_size_estimate: str = "unknown"
    freshness_score: int = 0
    launch_context: str = ""
    emails: list[str] = field(default_factory=list)
    email_confidence: str = "none"
    contact_channels: list[str] = field(default_factory=list)
    personalization_seed: str = ""
    filter_reason: str = ""

    @property
    def kept(self) -> bool:
        """Whether the lead belongs in the kept table."""
        return not self.filter_reason

    def to_row(self) -> dict[str, str]:
        """Serialize to a flat row of strings for the lead tables."""
        row = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool):
                row[f.name] = "1" if value else "0"
            elif isinstance(value, list):
                row[f.name] = MULTI_VALUE_SEPARATOR.join(value)
            elif isinstance(value, float):
                row[f.name] = f"{value:g}"
            else:
                row[f.name] = str(value)
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Lead":
        """Build a Lead from a table row, tolerating missing or bad cells."""
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = row.get(f.name)
            if raw is None:
                continue
            raw = str(raw).strip()
            if f.type is bool:
                values[f.name] = raw.lower() in ("1", "true", "yes")
            elif f.type is int:
                values[f.name] = _to_int(raw)
            elif f.type is float:
                values[f.name] = _to_float(raw)
            elif f.name in ("emails", "contact_channels"):
                values[f.name] = [v.strip() for v in raw.split("|") if v.strip()]
            else:
                values[f.name] = raw
        for required in ("discovered_at", "source", "source_url", "canonical"):
            values.setdefault(required, "")
        return cls(**values)


@dataclass
class RunStats:
    """Counters for a single pipeline run."""

    sources: dict[str, int] = field(default_factory=dict)
    skipped_duplicate: int = 0
    fetch_failed: int = 0
    errors: int = 0
    filtered: dict[str, int] = field(
        default_factory=lambda: {reason.value: 0 for reason in FilterReason}
    )
    kept_scores: list[tuple[str, float]] = field(default_factory=list)

    @property
    def kept(self) -> int:
        """Number of new kept leads."""
        return len(self.kept_scores)

    @property
    def top_score(self) -> Optional[tuple[str, float]]:
        """(identity, score) of the best new kept lead."""
        if not self.kept_scores:
            return None
        return max(self.kept_scores, key=lambda item: item[1])

    @property
    def average_score(self) -> Optional[float]:
        """Mean score of new kept leads."""
        if not self.kept_scores:
            return None
        return sum(score for _, score in self.kept_scores) / len(self.kept_scores)

    def count_source(self, source: str) -> None:
        """Count one dequeued candidate for its source."""
        self.sources[source] = self.sources.get(source, 0) + 1

    def count_filtered(self, reason: FilterReason) -> None:
        """Count one filtered candidate under its reason."""
        self.filtered[reason.value] = self.filtered.get(reason.value, 0) + 1

    def summary_lines(self) -> list[str]:
        """Human-readable run summary."""
        lines = [
            "Sources: " + (", ".join(f"{n} {s}" for s, n in self.sources.items()) or "none"),
            f"Dedupe: {self.skipped_duplicate} already processed",
            "Filtered: "
            f"{self.filtered['aggregator']} aggregators, "
            f"{self.filtered['below_threshold']} below threshold, "
            f"{self.filtered['no_dev_signal']} no dev signals, "
            f"{self.filtered['no_team_cue']} no team cues, "
            f"{self.filtered['builder_platform']} builders",
            f"Fetch failed: {self.fetch_failed}, errors: {self.errors}",
            f"Enriched: {self.kept} new leads",
        ]
        top = self.top_score
        if top is not None:
            lines.append(f"Top score: {top[1]:g} ({top[0]})")
            lines.append(f"Avg score: {self.average_score:.1f}")
        return lines


def _to_int(value: str, default: int = 0) -> int:
    """Parse an int cell, accepting "3.0"; default on failure."""
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _to_float(value: str, default: float = 0.0) -> float:
    """Parse a float cell; default on failure."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
