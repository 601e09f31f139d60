"""
Market Pull — Contact Finder (Prospeo)
Fallback for businesses whose website published no email: searches the
Prospeo people database for senior staff at the domain, then asks Prospeo
to enrich the top-ranked people into verified work emails.

Design:
- Two calls per domain: search-person (scoped to domain + seniority), then
  enrich-person for at most MAX_ENRICH_PER_DOMAIN candidates
- Candidates are ranked owner/founder → C-suite → VP → director → manager
- Per-candidate failures are skipped, never abort the domain
- Usage is accumulated into a RunSummary owned by the caller
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

import aiohttp

logger = logging.getLogger(__name__)

SEARCH_PERSON_URL = "https://api.prospeo.io/search-person"
ENRICH_PERSON_URL = "https://api.prospeo.io/enrich-person"

# Prospeo seniority filter values for the search call
SENIORITY_FILTER = ["Founder/Owner", "C-Suite", "VP", "Director"]

MAX_CANDIDATES = 10
MAX_ENRICH_PER_DOMAIN = 2

_ENRICH_DELAY = 0.25
_REQUEST_TIMEOUT = 30

# Prospeo does not bill lookups that end in NO_MATCH
NO_MATCH = "NO_MATCH"

# Ordered seniority tiers; lower index wins, unmatched titles rank last.
SENIORITY_TIERS = [
    re.compile(r"\b(owner|co-?founder|founder|proprietor)\b"),
    re.compile(r"\b(ceo|cfo|coo|cto|cmo|chief|(?<!vice )president)\b"),
    re.compile(r"\b(vp|svp|evp|vice president)\b"),
    re.compile(r"\bdirector\b"),
    re.compile(r"\bmanager\b"),
]


@dataclass
class ContactResult:
    """A verified work email returned by enrichment."""
    email: str
    full_name: str = ""
    job_title: str = ""


@dataclass
class RunSummary:
    """Prospeo usage counters for one enrichment stage."""
    businesses_processed: int = 0
    contacts_found: int = 0
    enrich_attempts: int = 0
    verified_emails: int = 0
    estimated_credits: int = 0

    def log(self) -> None:
        logger.info(
            f"  📊  Prospeo run summary: {self.businesses_processed} businesses, "
            f"{self.contacts_found} contacts found, {self.enrich_attempts} enrich attempts, "
            f"{self.verified_emails} verified emails, ~{self.estimated_credits} credits"
        )


def seniority_rank(job_title: Optional[str]) -> int:
    """Rank of a job title in SENIORITY_TIERS (len(SENIORITY_TIERS) if none match)."""
    title = (job_title or "").lower()
    for rank, pattern in enumerate(SENIORITY_TIERS):
        if pattern.search(title):
            return rank
    return len(SENIORITY_TIERS)


def rank_candidates(people: List[dict]) -> List[dict]:
    """Sort search-person results by seniority of the person's current title."""
    return sorted(
        people,
        key=lambda p: seniority_rank((p.get("person") or {}).get("current_job_title")),
    )


def _full_name(person: dict) -> str:
    full = person.get("full_name")
    if full:
        return full.strip()
    return f"{person.get('first_name') or ''} {person.get('last_name') or ''}".strip()


class ContactFinder:
    """Domain → verified contact emails via Prospeo search + enrich."""

    def __init__(self, api_key: str, enrich_delay: float = _ENRICH_DELAY):
        self.api_key = api_key
        self.enrich_delay = enrich_delay

    @property
    def _headers(self) -> dict:
        return {"Content-Type": "application/json", "X-KEY": self.api_key}

    async def _search_people(
        self, session: aiohttp.ClientSession, domain: str, summary: RunSummary
    ) -> List[dict]:
        """search-person call. Returns raw result entries, [] on any failure."""
        body = {
            "page": 1,
            "filters": {
                "company": {"websites": {"include": [domain]}},
                "person_seniority": {"include": SENIORITY_FILTER},
            },
        }
        summary.estimated_credits += 1
        async with session.post(
            SEARCH_PERSON_URL,
            json=body,
            headers=self._headers,
            timeout=aiohttp.ClientTimeout(total=_REQUEST_TIMEOUT),
        ) as resp:
            if resp.status < 200 or resp.status >= 300:
                text = await resp.text()
                logger.error(f"Prospeo search-person error for {domain}: {resp.status} {text[:200]}")
                return []
            data = await resp.json(content_type=None)

        if not isinstance(data, dict):
            logger.error(f"Prospeo search-person returned a non-object body for {domain}")
            return []

        if data.get("error"):
            if data.get("error_code") == NO_MATCH:
                summary.estimated_credits -= 1
            else:
                logger.error(
                    f"Prospeo search-person error for {domain}: "
                    f"{data.get('error_code') or data.get('message')}"
                )
            return []

        results = data.get("results")
        if not isinstance(results, list):
            return []
        return [r for r in results if isinstance(r, dict)][:MAX_CANDIDATES]

    async def _enrich_person(
        self,
        session: aiohttp.ClientSession,
        full_name: str,
        domain: str,
        summary: RunSummary,
    ) -> Optional[str]:
        """enrich-person call for one name/domain pair. Returns the email or None."""
        body = {
            "only_verified_email": True,
            "data": {"full_name": full_name, "company_website": domain},
        }
        summary.enrich_attempts += 1
        summary.estimated_credits += 1
        try:
            async with session.post(
                ENRICH_PERSON_URL,
                json=body,
                headers=self._headers,
                timeout=aiohttp.ClientTimeout(total=_REQUEST_TIMEOUT),
            ) as resp:
                if resp.status < 200 or resp.status >= 300:
                    return None
                data = await resp.json(content_type=None)
        except Exception as e:
            logger.debug(f"  Prospeo enrich-person failed for {full_name} @ {domain}: {e}")
            return None

        if not isinstance(data, dict):
            return None

        if data.get("error"):
            if data.get("error_code") == NO_MATCH:
                summary.estimated_credits -= 1
            return None

        person = data.get("person")
        email = person.get("email") if isinstance(person, dict) else None
        return email.strip().lower() if isinstance(email, str) and email.strip() else None

    async def find_emails(
        self, session: aiohttp.ClientSession, domain: str, summary: RunSummary
    ) -> List[ContactResult]:
        """Verified emails for up to MAX_ENRICH_PER_DOMAIN senior people at ``domain``."""
        summary.businesses_processed += 1

        try:
            people = await self._search_people(session, domain, summary)
        except Exception as e:
            logger.error(f"Prospeo request failed for {domain}: {e}")
            return []

        summary.contacts_found += len(people)
        if not people:
            return []

        results: List[ContactResult] = []
        top = rank_candidates(people)[:MAX_ENRICH_PER_DOMAIN]

        for i, entry in enumerate(top):
            person = entry.get("person") or {}
            full_name = _full_name(person)
            if not full_name:
                continue

            email = await self._enrich_person(session, full_name, domain, summary)
            if email:
                summary.verified_emails += 1
                results.append(ContactResult(
                    email=email,
                    full_name=full_name,
                    job_title=person.get("current_job_title") or "",
                ))

            if i < len(top) - 1:
                await asyncio.sleep(self.enrich_delay)

        if results:
            logger.info(f"  🔎  {domain}: {len(results)} verified contacts via Prospeo")
        return results
