"""Pipeline orchestrator for the lead harvester.

Ties together all pipeline stages, one candidate at a time:
1. Resolve identity and classify the host (aggregator / builder / ordinary)
2. Skip identities that already have a lead
3. Fetch the homepage, then probe informational subpages through the cache
4. Extract signals and compute the weighted score
5. Route to kept or filtered, and persist both tables at the end of the run
"""

import asyncio
import logging
import uuid
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Sequence
from urllib.parse import urljoin, urlparse

from leadharvest.config import (
    DomainConfig,
    FetchSettings,
    ScoringConfig,
    load_candidates,
)
from leadharvest.crawler.cache import ProbeCache
from leadharvest.crawler.fetcher import PageFetcher, extract_links, open_fetcher
from leadharvest.extraction.personalization import personalization_seed
from leadharvest.extraction.signals import (
    calculate_freshness,
    detect_team_signals,
    email_confidence,
    extract_contact_channels,
    extract_emails,
    extract_title,
    extract_value_prop,
    make_soup,
    visible_text,
)
from leadharvest.identity.resolver import IdentityResolver
from leadharvest.matching.scorer import WeightedScorer
from leadharvest.models import (
    Candidate,
    FetchResult,
    FilterReason,
    HostClass,
    Lead,
    RunStats,
)
from leadharvest.storage.lead_store import CsvLeadStore, LeadStore

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Leads produced by one run plus its statistics."""

    kept: list[Lead] = field(default_factory=list)
    filtered: list[Lead] = field(default_factory=list)
    previous: list[Lead] = field(default_factory=list)
    stats: RunStats = field(default_factory=RunStats)


class EnrichmentOrchestrator:
    """Drive candidates through resolve, fetch, score and route.

    The lead index loaded from the store is authoritative for deduplication:
    an identity with an existing lead is never fetched again.
    """

    def __init__(
        self,
        store: LeadStore,
        fetcher: PageFetcher,
        resolver: IdentityResolver,
        scorer: WeightedScorer,
        settings: FetchSettings,
    ):
        """Initialize with the injected store, fetcher and pipeline settings."""
        self.store = store
        self.fetcher = fetcher
        self.resolver = resolver
        self.scorer = scorer
        self.settings = settings

        self._index: dict[str, Lead] = {}
        self._emitted: set[str] = set()
        self._queue: deque[Candidate] = deque()
        self._queued_urls: set[str] = set()
        self._stats = RunStats()

    async def run(
        self,
        candidates: Sequence[Candidate],
        now: Optional[datetime] = None,
    ) -> RunResult:
        """Process all candidates and persist the lead tables.

        Args:
            candidates: Candidates in processing order.
            now: Discovery time for new leads; defaults to the current UTC time.

        Returns:
            RunResult with new kept leads, filtered leads and statistics.
        """
        self._stats = RunStats()
        self._emitted = set()
        self._queue = deque()
        self._queued_urls = set()
        result = RunResult(stats=self._stats)

        result.previous = self._load_index()

        for candidate in candidates:
            self._enqueue(candidate)

        processed = 0
        while self._queue:
            candidate = self._queue.popleft()
            processed += 1
            self._stats.count_source(candidate.source)
            logger.info(
                "--- Candidate %d (%d queued): %s (%s) ---",
                processed, len(self._queue), candidate.url, candidate.source,
            )
            try:
                lead = await self._process_candidate(
                    candidate, now or datetime.now(timezone.utc)
                )
            except Exception as e:
                logger.error(
                    "Failed to process candidate %s: %s", candidate.url, e, exc_info=True
                )
                self._stats.errors += 1
                continue

            if lead is None:
                continue
            self._emitted.add(lead.canonical)
            if lead.kept:
                result.kept.append(lead)
                self._stats.kept_scores.append((lead.canonical, lead.weighted_score))
            else:
                result.filtered.append(lead)

        self.store.save(result.previous + result.kept, result.filtered)

        logger.info("=== Lead Harvesting Stats ===")
        for line in self._stats.summary_lines():
            logger.info(line)
        return result

    def _load_index(self) -> list[Lead]:
        """Load prior leads, dropping those whose source host is an aggregator."""
        previous: list[Lead] = []
        self._index = {}
        purged = 0
        for lead in self.store.load():
            try:
                host = urlparse(lead.source_url).hostname or ""
            except ValueError:
                host = ""
            if host and self.resolver.classify(host) is HostClass.SKIP:
                purged += 1
                continue
            if lead.canonical in self._index:
                logger.debug("Dropping repeated lead row for %s", lead.canonical)
                continue
            self._index[lead.canonical] = lead
            previous.append(lead)

        if purged:
            logger.info("Purged %d existing aggregator leads", purged)
        logger.info("Dedup index holds %d identities", len(self._index))
        return previous

    def _enqueue(self, candidate: Candidate) -> bool:
        """Append a candidate unless its URL was already queued this run."""
        if candidate.url in self._queued_urls:
            return False
        self._queued_urls.add(candidate.url)
        self._queue.append(candidate)
        return True

    async def _process_candidate(self, candidate: Candidate, now: datetime) -> Optional[Lead]:
        """Run one candidate to a terminal state; returns a Lead or None."""
        hostname = candidate.hostname
        host_class = self.resolver.classify(hostname)

        if host_class is HostClass.SKIP:
            if self.resolver.is_repository_host(hostname):
                await self._resolve_repository(candidate)
            else:
                logger.debug("Skipping aggregator %s", hostname)
            self._stats.count_filtered(FilterReason.AGGREGATOR)
            return None

        identity = self.resolver.canonicalize(hostname)
        if identity in self._index or identity in self._emitted:
            logger.debug("Skipping %s: %s already processed", candidate.url, identity)
            self._stats.skipped_duplicate += 1
            return None

        page, status = await self._fetch_homepage(candidate.url, identity)
        if page is None:
            logger.info("No content for %s (%s), dropping", candidate.url, identity)
            self._stats.fetch_failed += 1
            return None

        probe_bodies = await self._probe_subpages(identity)
        lead = self._build_lead(
            candidate, identity, host_class, page, status, probe_bodies, now
        )

        if lead.kept:
            logger.info("Kept %s score=%g", identity, lead.weighted_score)
        else:
            self._stats.count_filtered(FilterReason(lead.filter_reason))
            logger.info(
                "Filtered %s score=%g reason=%s",
                identity, lead.weighted_score, lead.filter_reason,
            )
        return lead

    async def _resolve_repository(self, candidate: Candidate) -> Optional[str]:
        """Queue the product site linked from a repository page, if any."""
        page = await self.fetcher.fetch(candidate.url, self.settings.page_timeout_ms)
        if not page.body:
            logger.debug("Repository page %s returned no content", candidate.url)
            return None

        for link in extract_links(page.body, candidate.url):
            try:
                host = urlparse(link).hostname or ""
            except ValueError:
                logger.debug("Skipping malformed link %r on %s", link, candidate.url)
                continue
            if self.resolver.is_resolution_target(host):
                if self._enqueue(Candidate(url=link, source=candidate.source)):
                    logger.info("Resolved repository %s -> %s", candidate.url, link)
                return link

        logger.debug("No product link found on repository page %s", candidate.url)
        return None

    async def _fetch_homepage(
        self, url: str, identity: str
    ) -> tuple[Optional[FetchResult], int]:
        """Fetch the candidate URL, falling back to https://<identity>.

        Returns:
            Tuple of (usable page or None, status of the candidate URL itself).
        """
        timeout = self.settings.page_timeout_ms
        first = await self.fetcher.fetch(url, timeout)
        if first.ok:
            return first, first.status

        home = f"https://{identity}"
        logger.debug("No usable page at %s (status=%d), trying %s", url, first.status, home)
        second = await self.fetcher.fetch(home, timeout)
        if second.ok:
            return second, first.status
        return None, first.status

    async def _probe_subpages(self, identity: str) -> list[str]:
        """Fetch informational subpages of https://<identity>."""
        home = f"https://{identity}"
        bodies = []
        for path in self.settings.probe_paths:
            result = await self.fetcher.fetch(
                urljoin(home, path),
                self.settings.probe_timeout_ms,
                use_cache=True,
                identity=identity,
            )
            if 200 <= result.status < 400 and result.body:
                bodies.append(result.body[: self.settings.probe_body_chars])
            # Politeness delay (but not if cached)
            if not result.from_cache and self.settings.probe_delay_seconds > 0:
                await asyncio.sleep(self.settings.probe_delay_seconds)
        return bodies

    def _build_lead(
        self,
        candidate: Candidate,
        identity: str,
        host_class: HostClass,
        page: FetchResult,
        status: int,
        probe_bodies: list[str],
        now: datetime,
    ) -> Lead:
        """Extract signals, score and route one fetched candidate."""
        home_soup = make_soup(page.body)
        title = extract_title(home_soup)
        all_html = page.body + "".join(probe_bodies)
        text = " ".join(
            [visible_text(page.body)] + [visible_text(b) for b in probe_bodies] + [title]
        )

        scoring = self.scorer.score(text)
        flags = self.scorer.flags(text)
        emails = extract_emails(all_html)
        has_careers, team_size = detect_team_signals(home_soup, text)
        discovered_at = now.isoformat()
        freshness, launch_context = calculate_freshness(
            discovered_at, text, candidate.source, candidate.url,
            self.settings.launch_feeds, now=now,
        )

        is_builder = host_class is HostClass.BUILDER
        penalty = self.scorer.config.builder_penalty if is_builder else 0
        final_score = scoring.score + penalty

        if is_builder and final_score < self.scorer.config.minimum_score:
            filter_reason = FilterReason.BUILDER_PLATFORM.value
        elif not scoring.passed:
            filter_reason = scoring.filter_reason.value
        else:
            filter_reason = ""

        return Lead(
            discovered_at=discovered_at,
            source=candidate.source,
            source_url=candidate.url,
            canonical=identity,
            title=title,
            value_prop=extract_value_prop(home_soup),
            status=status,
            weighted_score=final_score,
            **{f"has_{name}": value for name, value in asdict(flags).items()},
            team_cue=scoring.team_cue,
            pricing_model=scoring.pricing_model,
            has_careers=has_careers,
            team_size_estimate=team_size,
            freshness_score=freshness,
            launch_context=launch_context,
            emails=emails,
            email_confidence=email_confidence(emails),
            contact_channels=extract_contact_channels(home_soup, all_html),
            personalization_seed=personalization_seed(
                scoring.signals, flags, scoring.pricing_model, launch_context
            ),
            filter_reason=filter_reason,
        )


async def run_pipeline(
    config: dict[str, Any],
    input_paths: Optional[Sequence[str]] = None,
) -> RunResult:
    """Run the full harvesting pipeline against the configured files.

    Args:
        config: Application configuration dict.
        input_paths: URL list files; defaults to the configured inputs.

    Returns:
        RunResult of the run.
    """
    run_id = str(uuid.uuid4())
    logger.info("=== Pipeline starting: run_id=%s ===", run_id)

    paths = list(input_paths or config.get("inputs", []))
    candidates = load_candidates(paths)
    if not candidates:
        logger.warning("No candidates to process. Check %s", paths)

    output = config.get("output", {})
    store = CsvLeadStore(
        kept_path=output.get("leads_path", "leads.csv"),
        filtered_path=output.get("filtered_path", "leads_filtered.csv"),
    )

    cache_config = config.get("cache", {})
    cache = None
    if cache_config.get("enabled", True):
        cache = ProbeCache(
            directory=cache_config.get("directory", ".cache"),
            ttl_seconds=float(cache_config.get("ttl_days", 7)) * 24 * 60 * 60,
            max_body_chars=int(cache_config.get("max_body_chars", 200_000)),
        )

    resolver = IdentityResolver(DomainConfig.from_dict(config.get("domains")))
    scorer = WeightedScorer(ScoringConfig.from_dict(config.get("scoring")))
    settings = FetchSettings.from_config(config)
    fetch_config = config.get("fetch", {})

    async with open_fetcher(
        user_agent=settings.user_agent,
        cache=cache,
        headless=fetch_config.get("headless", True),
        render_wait_ms=int(fetch_config.get("render_wait_ms", 0)),
    ) as fetcher:
        orchestrator = EnrichmentOrchestrator(store, fetcher, resolver, scorer, settings)
        result = await orchestrator.run(candidates)

    logger.info(
        "=== Pipeline complete: kept=%d, filtered=%d, run_id=%s ===",
        len(result.kept), len(result.filtered), run_id,
    )
    return result
