"""Configuration loading for the lead harvester."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping
from urllib.parse import urlparse

import yaml

from leadharvest.models import Candidate

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = "config/config.yaml"

_DEFAULT_PROBE_PATHS = (
    "/pricing", "/docs", "/documentation", "/api", "/changelog", "/contact",
    "/about", "/team", "/careers", "/legal", "/privacy",
)


def load_config(config_path: str | None = None) -> dict[str, Any]:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to config YAML. Falls back to CONFIG_PATH env var,
                     then to config/config.yaml.

    Returns:
        Merged configuration dictionary.
    """
    path = config_path or os.environ.get("CONFIG_PATH", _DEFAULT_CONFIG_PATH)
    logger.info("Loading config from %s", path)

    with open(path) as f:
        config = yaml.safe_load(f) or {}

    # Environment variable overrides (for scheduled runs)
    if os.environ.get("LEADS_PATH"):
        config.setdefault("output", {})["leads_path"] = os.environ["LEADS_PATH"]
    if os.environ.get("FILTERED_LEADS_PATH"):
        config.setdefault("output", {})["filtered_path"] = os.environ["FILTERED_LEADS_PATH"]
    if os.environ.get("CACHE_DIR"):
        config.setdefault("cache", {})["directory"] = os.environ["CACHE_DIR"]
    if os.environ.get("MIN_SCORE"):
        thresholds = config.setdefault("scoring", {}).setdefault("thresholds", {})
        thresholds["minimum_score"] = float(os.environ["MIN_SCORE"])

    return config


def source_tag(path: str | Path) -> str:
    """Derive a source tag from an input file name (showhn_urls.txt -> showhn)."""
    stem = Path(path).stem
    if stem.endswith("_urls"):
        stem = stem[: -len("_urls")]
    return stem or "unknown"


def is_candidate_url(url: str) -> bool:
    """Check that a line is an absolute http(s) URL with a host."""
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.hostname)
    except ValueError:
        return False


def load_candidates(paths: Iterable[str | Path]) -> list[Candidate]:
    """Load candidate URLs from newline-delimited URL files.

    Unreadable files and invalid lines are skipped. A URL listed in more
    than one file keeps the source tag of the first file it appears in.

    Args:
        paths: URL list files; each file's name gives the source tag.

    Returns:
        List of Candidate objects in file order.
    """
    candidates: list[Candidate] = []
    seen: set[str] = set()

    for path in paths:
        source = source_tag(path)
        try:
            with open(path, encoding="utf-8") as f:
                lines = f.read().splitlines()
        except OSError as e:
            logger.warning("Skipping unreadable URL list %s: %s", path, e)
            continue

        loaded = 0
        for line in lines:
            url = line.strip()
            if not url or url in seen:
                continue
            if not is_candidate_url(url):
                logger.debug("Skipping invalid URL in %s: %r", path, url)
                continue
            seen.add(url)
            candidates.append(Candidate(url=url, source=source))
            loaded += 1
        logger.info("Loaded %d URLs from %s (source=%s)", loaded, path, source)

    logger.info("Loaded %d candidates", len(candidates))
    return candidates


def _lower_set(values: Iterable[str] | None) -> frozenset[str]:
    """Lowercased, stripped, non-empty values as a frozenset."""
    return frozenset(v.strip().lower() for v in (values or []) if v and v.strip())


@dataclass(frozen=True)
class ScoringConfig:
    """Token weights, signal sets and thresholds for the weighted scorer."""

    weights: Mapping[str, float]
    dev_signals: frozenset[str]
    team_signals: frozenset[str]
    launch_signals: frozenset[str]
    pricing_models: tuple[tuple[str, tuple[str, ...]], ...]
    minimum_score: float = 5
    require_dev_signal: bool = True
    require_team_cue: bool = True
    builder_penalty: float = -5

    @classmethod
    def from_dict(cls, scoring: Mapping[str, Any] | None) -> "ScoringConfig":
        """Build from the `scoring` config section."""
        scoring = scoring or {}
        thresholds = scoring.get("thresholds", {})
        weights = {
            str(token).strip().lower(): float(weight)
            for token, weight in (scoring.get("weights") or {}).items()
        }
        pricing = tuple(
            (str(model), tuple(str(p).lower() for p in patterns or []))
            for model, patterns in (scoring.get("pricing_models") or {}).items()
        )
        return cls(
            weights=MappingProxyType(weights),
            dev_signals=_lower_set(scoring.get("dev_signals")),
            team_signals=_lower_set(scoring.get("team_signals")),
            launch_signals=_lower_set(scoring.get("launch_signals")),
            pricing_models=pricing,
            minimum_score=float(thresholds.get("minimum_score", 5)),
            require_dev_signal=bool(thresholds.get("require_dev_signal", True)),
            require_team_cue=bool(thresholds.get("require_team_cue", True)),
            builder_penalty=float(scoring.get("builder_penalty", -5)),
        )


@dataclass(frozen=True)
class DomainConfig:
    """Static domain tables for identity resolution and classification."""

    skip: frozenset[str]
    builder: frozenset[str]
    multi_tenant_suffixes: tuple[str, ...]
    repository_hosts: frozenset[str] = frozenset({"github.com"})
    resolution_exclude: frozenset[str] = frozenset()

    @classmethod
    def from_dict(cls, domains: Mapping[str, Any] | None) -> "DomainConfig":
        """Build from the `domains` config section."""
        domains = domains or {}
        return cls(
            skip=_lower_set(domains.get("skip")),
            builder=_lower_set(domains.get("builder")),
            multi_tenant_suffixes=tuple(
                s.strip().lower().lstrip(".")
                for s in domains.get("multi_tenant_suffixes") or []
            ),
            repository_hosts=_lower_set(domains.get("repository_hosts", ["github.com"])),
            resolution_exclude=_lower_set(domains.get("resolution_exclude")),
        )


@dataclass(frozen=True)
class FetchSettings:
    """Fetch, probe and routing settings for one pipeline run."""

    user_agent: str = "Lead-Harvester/1.0 (outreach research)"
    page_timeout_ms: int = 7000
    probe_timeout_ms: int = 5000
    probe_delay_seconds: float = 0.2
    probe_body_chars: int = 100_000
    probe_paths: tuple[str, ...] = _DEFAULT_PROBE_PATHS
    launch_feeds: tuple[tuple[str, tuple[str, ...]], ...] = ()

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "FetchSettings":
        """Build from the `fetch` and `freshness` config sections."""
        fetch = config.get("fetch", {})
        feeds = (config.get("freshness") or {}).get("launch_feeds") or {}
        return cls(
            user_agent=fetch.get("user_agent", cls.user_agent),
            page_timeout_ms=int(fetch.get("page_timeout_ms", 7000)),
            probe_timeout_ms=int(fetch.get("probe_timeout_ms", 5000)),
            probe_delay_seconds=float(fetch.get("probe_delay_seconds", 0.2)),
            probe_body_chars=int(fetch.get("probe_body_chars", 100_000)),
            probe_paths=tuple(fetch.get("probe_paths") or _DEFAULT_PROBE_PATHS),
            launch_feeds=tuple(
                (str(label), tuple(str(p).lower() for p in patterns or []))
                for label, patterns in feeds.items()
            ),
        )
