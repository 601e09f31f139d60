"""
Market Pull — Job Manager
Owns the single market-pull job: start gate, cooldown, the four pipeline
stages, and progress publication to live observers.

Pipeline:
  search  → maps listings for every sub-region of the region
  scrape  → same-domain emails from each listing's website
  enrich  → Prospeo lookup for listings still missing an email
  verify  → BounceBan check over the union of discovered emails
  csv     → one row per (listing, verified email)
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set

import aiohttp

from enrichment.contact_finder import ContactFinder, RunSummary
from enrichment.email_verifier import EmailVerifier
from enrichment.website_scraper import WebsiteEmailScraper
from output.csv_writer import CsvRow, generate_csv
from regions import load_region
from sources.base import BusinessListing
from sources.maps_search import MapsSearchClient

from .broadcaster import ProgressBroadcaster
from .job import JobInput, JobStats, JobStatus
from .settings import Settings

logger = logging.getLogger(__name__)

COOLDOWN_SECONDS = 10 * 60
ENRICH_BUSINESS_DELAY = 2.2


class ConfigurationError(RuntimeError):
    """A mandatory provider is not configured; the job cannot run."""


class JobRejected(RuntimeError):
    """start() was called while a job is running or cooling down."""


@dataclass
class StartCheck:
    ok: bool
    reason: Optional[str] = None


@dataclass
class PipelineStages:
    """Stage clients for one job. Optional stages are skipped when None."""
    listing_source: MapsSearchClient
    scraper: WebsiteEmailScraper
    contact_finder: Optional[ContactFinder] = None
    verifier: Optional[EmailVerifier] = None


def build_stages(settings: Optional[Settings] = None) -> PipelineStages:
    """Stage clients from provider credentials. DataForSEO is mandatory."""
    settings = settings or Settings.from_env()
    if not settings.has_maps_credentials:
        raise ConfigurationError(
            "DataForSEO credentials not configured. "
            "Add DATAFORSEO_LOGIN and DATAFORSEO_PASSWORD secrets."
        )
    return PipelineStages(
        listing_source=MapsSearchClient(settings.dataforseo_login, settings.dataforseo_password),
        scraper=WebsiteEmailScraper(),
        contact_finder=ContactFinder(settings.prospeo_api_key) if settings.prospeo_api_key else None,
        verifier=EmailVerifier(settings.bounceban_api_key) if settings.bounceban_api_key else None,
    )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _add_to_pool(pool: Dict[int, List[str]], idx: int, emails: List[str]) -> int:
    """Append normalized emails to a listing's pool entry. Returns how many were new."""
    existing = pool.get(idx, [])
    added = 0
    for email in emails:
        email = email.strip().lower()
        if email and email not in existing:
            existing.append(email)
            added += 1
    if existing:
        pool[idx] = existing
    return added


def unique_emails(pool: Dict[int, List[str]]) -> List[str]:
    """All well-formed pooled emails, deduplicated, in listing order."""
    seen: Dict[str, None] = {}
    for idx in sorted(pool):
        for email in pool[idx]:
            if "@" in email and "." in email:
                seen[email] = None
    return list(seen)


def assemble_rows(
    listings: List[BusinessListing],
    pool: Dict[int, List[str]],
    verified: Set[str],
    limit_one_per_domain: bool,
) -> List[CsvRow]:
    """Export rows for listings with at least one verified email."""
    rows: List[CsvRow] = []
    for idx, listing in enumerate(listings):
        valid = [e for e in pool.get(idx, []) if e in verified]
        if not valid:
            continue
        if limit_one_per_domain:
            valid = valid[:1]
        for email in valid:
            rows.append(CsvRow(
                business_name=listing.business_name,
                city=listing.city,
                address=listing.address,
                phone=listing.phone,
                website=listing.website,
                email=email,
                reviews=listing.reviews_count,
                rating=listing.rating,
                source_query=listing.source_query,
            ))
    return rows


class JobManager:
    """
    Single-flight market-pull jobs.

    Only one job exists at a time: ``start`` refuses while a job is running
    or while the post-completion cooldown is active. The manager is the only
    writer of the JobStatus; stages report back through return values and
    progress callbacks.
    """

    def __init__(
        self,
        stages_factory: Callable[[], PipelineStages] = build_stages,
        session_factory: Callable[[], aiohttp.ClientSession] = aiohttp.ClientSession,
        enrich_delay: float = ENRICH_BUSINESS_DELAY,
    ):
        self._stages_factory = stages_factory
        self._session_factory = session_factory
        self.enrich_delay = enrich_delay
        self._status = JobStatus()
        self._last_completed_at: float = 0.0
        self._task: Optional[asyncio.Task] = None
        self._broadcaster = ProgressBroadcaster()
        self.last_run_summary: Optional[RunSummary] = None

    # ── Queries ─────────────────────────────────

    def get_status(self) -> JobStatus:
        """Snapshot of the current job without the row buffer."""
        return replace(self._status, stats=replace(self._status.stats), rows=None)

    def get_rows(self) -> Optional[List[CsvRow]]:
        return self._status.rows

    def cooldown_remaining_ms(self) -> int:
        if not self._last_completed_at:
            return 0
        elapsed = time.time() - self._last_completed_at
        return max(0, int((COOLDOWN_SECONDS - elapsed) * 1000))

    def can_start(self) -> StartCheck:
        if self._status.status == "running":
            return StartCheck(False, "A job is already running")

        remaining = self.cooldown_remaining_ms()
        if remaining > 0:
            minutes = math.ceil(remaining / 60000)
            return StartCheck(False, f"Rate limited. Try again in {minutes} minute(s)")

        return StartCheck(True)

    # ── Observers ───────────────────────────────

    def subscribe(self, callback: Callable[[JobStatus], None]) -> int:
        """Register an observer; it immediately receives the current snapshot."""
        callback(self.get_status())
        return self._broadcaster.add(callback)

    def unsubscribe(self, handle: int) -> bool:
        return self._broadcaster.remove(handle)

    def _publish(self) -> None:
        self._broadcaster.publish(self.get_status())

    def _update_stage(self, stage: str, message: str,
                      progress: Optional[int] = None, progress_total: Optional[int] = None) -> None:
        self._status.stage = stage
        self._status.message = message
        if progress is not None:
            self._status.progress = progress
        if progress_total is not None:
            self._status.progress_total = progress_total
        self._publish()

    # ── Lifecycle ───────────────────────────────

    def start(self, job_input: JobInput) -> str:
        """
        Start a job in the background and return its id.

        Must be called from a running event loop. The check and the switch
        to ``running`` happen without an await in between, so two callers
        cannot both pass the gate.
        """
        check = self.can_start()
        if not check.ok:
            raise JobRejected(check.reason)

        job_id = f"gmp_{int(time.time() * 1000)}"
        self._status = JobStatus(id=job_id, status="running", started_at=_now_iso())
        logger.info(f"🚀 Market pull {job_id} started: '{job_input.service_category}' in {job_input.region}")
        self._publish()

        self._task = asyncio.get_running_loop().create_task(self._run(job_input))
        return job_id

    async def join(self) -> None:
        """Wait for the current pipeline task, if any, to finish."""
        if self._task is not None:
            await self._task

    def clear_data(self) -> None:
        """Drop the finished job (and its CSV) from memory. The cooldown clock is kept."""
        if self._status.status == "running":
            logger.warning("clear_data() ignored: a job is still running")
            return
        self._status = JobStatus()

    def _finish(self, message: str) -> None:
        self._status.status = "completed"
        self._status.message = message
        self._status.completed_at = _now_iso()
        self._last_completed_at = time.time()

    async def _run(self, job_input: JobInput) -> None:
        job_id = self._status.id
        try:
            await self._run_pipeline(job_input)
        except Exception as e:
            logger.exception(f"❌ Market pull {job_id} failed: {e}")
            self._status.status = "error"
            self._status.error = str(e)
            self._status.message = f"Job failed: {e}"
            self._status.completed_at = _now_iso()
            self._last_completed_at = time.time()
            self._publish()

    # ── Pipeline ────────────────────────────────

    async def _run_pipeline(self, job_input: JobInput) -> None:
        stages = self._stages_factory()
        region = load_region(job_input.region)
        stats = self._status.stats
        category = job_input.service_category
        cities = region.sub_regions

        async with self._session_factory() as session:
            self._update_stage("search", f"Pulling {category} listings across {region.name}...", 0, len(cities))
            listings = await stages.listing_source.pull_listings(
                session,
                category,
                region.abbreviation,
                cities,
                job_input.min_reviews,
                job_input.max_results,
                on_progress=lambda msg, done, total: self._update_stage("search", msg, done, total),
            )

            stats.businesses_found = len(listings)
            stats.websites_found = sum(1 for l in listings if l.website)
            self._publish()

            if not listings:
                self._finish("No businesses found matching criteria")
                logger.info(f"  ∅  {self._status.message}")
                self._publish()
                return

            pool = await self._scrape_stage(session, stages.scraper, listings, stats)

            if stages.contact_finder is not None:
                await self._enrich_stage(session, stages.contact_finder, listings, pool, stats)

            verified = await self._verify_stage(session, stages.verifier, pool, stats)

        self._update_stage("csv", "Generating CSV...", 0, 1)
        rows = assemble_rows(listings, pool, verified, job_input.limit_one_per_domain)

        self._status.csv_data = generate_csv(rows)
        self._status.rows = rows
        self._finish(f"Complete! {len(rows)} verified leads ready for download.")
        logger.info(f"  ✅  {self._status.message}")
        self._update_stage("done", self._status.message, 1, 1)

    async def _scrape_stage(
        self,
        session: aiohttp.ClientSession,
        scraper: WebsiteEmailScraper,
        listings: List[BusinessListing],
        stats: JobStats,
    ) -> Dict[int, List[str]]:
        pool: Dict[int, List[str]] = {}
        total = len(listings)
        self._update_stage("scrape", "Scraping websites for emails...", 0, total)

        for i, listing in enumerate(listings):
            self._update_stage("scrape", f"Scraping {listing.business_name}...", i + 1, total)
            try:
                emails = await scraper.scrape(session, listing.website)
            except Exception as e:
                logger.warning(f"  ⚠️  Scrape failed for {listing.website}: {e}")
                continue
            added = _add_to_pool(pool, i, emails)
            if added:
                stats.emails_discovered += added
                self._publish()

        scraper.log_stats()
        return pool

    async def _enrich_stage(
        self,
        session: aiohttp.ClientSession,
        finder: ContactFinder,
        listings: List[BusinessListing],
        pool: Dict[int, List[str]],
        stats: JobStats,
    ) -> None:
        needs = [(idx, l) for idx, l in enumerate(listings) if not pool.get(idx)]
        if not needs:
            return

        summary = RunSummary()
        self.last_run_summary = summary
        total = len(needs)
        self._update_stage("enrich", "Discovering emails via enrichment...", 0, total)

        for n, (idx, listing) in enumerate(needs):
            self._update_stage("enrich", f"Enriching {listing.business_name}...", n + 1, total)
            try:
                contacts = await finder.find_emails(session, listing.domain, summary)
            except Exception as e:
                logger.warning(f"  ⚠️  Enrichment failed for {listing.website}: {e}")
                contacts = []

            added = _add_to_pool(pool, idx, [c.email for c in contacts])
            if added:
                stats.emails_discovered += added
                self._publish()

            if n < total - 1:
                await asyncio.sleep(self.enrich_delay)

        summary.log()
        self._publish()

    async def _verify_stage(
        self,
        session: aiohttp.ClientSession,
        verifier: Optional[EmailVerifier],
        pool: Dict[int, List[str]],
        stats: JobStats,
    ) -> Set[str]:
        emails = unique_emails(pool)

        if emails and verifier is not None:
            self._update_stage("verify", "Verifying emails...", 0, len(emails))
            results = await verifier.verify_batch(
                session,
                emails,
                on_progress=lambda done, total: self._update_stage(
                    "verify", f"Verified {done}/{total} emails...", done, total
                ),
            )
            verified = {r.email for r in results if r.safe}
        else:
            if emails:
                logger.info("  ⏭️  No verification provider configured, treating all emails as verified")
            verified = set(emails)

        stats.emails_verified = len(verified)
        self._publish()
        return verified
