"""
Market Pull — Website Email Scraper
Fetches a business website's home, contact and about pages and pulls out
email addresses that belong to the business's own domain.
"""

import logging
import re
from typing import Dict, List, Optional
from urllib.parse import urljoin

import aiohttp

from sources.base import extract_domain

logger = logging.getLogger(__name__)

# Pages most likely to publish a contact address
_CONTACT_PATHS = ["/contact", "/about", "/contact-us", "/about-us"]

_PAGE_TIMEOUT = 8.0

_EMAIL_RE = re.compile(r'[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}')

# Template / placeholder addresses that show up on builder sites
EXCLUDED_EMAILS = {
    "example@example.com",
    "email@example.com",
    "name@domain.com",
    "user@example.com",
    "your@email.com",
    "info@example.com",
}

# Retina asset names (logo@2x.png) match the email pattern
EXCLUDED_EXTENSIONS = {
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp",
    ".css", ".js", ".woff", ".woff2", ".ttf", ".eot",
}

# Error-tracking and bundler artifacts
_NOISE_MARKERS = ("sentry", "webpack", "schema.org")

_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; MarketPull/1.0)",
    "Accept": "text/html",
}


def candidate_pages(website: str) -> List[str]:
    """The root URL followed by the fixed contact/about variants."""
    return [website] + [urljoin(website, path) for path in _CONTACT_PATHS]


def extract_site_emails(html: str, domain: str) -> List[str]:
    """Emails in ``html`` that belong to ``domain`` or one of its subdomains."""
    found: Dict[str, None] = {}
    for match in _EMAIL_RE.finditer(html):
        email = match.group().lower()
        if email in EXCLUDED_EMAILS:
            continue
        if email[email.rfind("."):] in EXCLUDED_EXTENSIONS:
            continue
        if any(marker in email for marker in _NOISE_MARKERS):
            continue
        email_domain = email.split("@", 1)[1]
        if email_domain == domain or email_domain.endswith(f".{domain}"):
            found[email] = None
    return list(found)


class WebsiteEmailScraper:
    """
    Scrapes a handful of pages per website. Unreachable pages, non-HTML
    responses and timeouts are skipped; scraping a site never raises.
    """

    def __init__(self, timeout: float = _PAGE_TIMEOUT):
        self.timeout = timeout
        self._stats = {
            "sites_scraped": 0,
            "pages_fetched": 0,
            "emails_found": 0,
        }

    async def _fetch_page(self, session: aiohttp.ClientSession, url: str) -> Optional[str]:
        """Return the page body, or None when it is unusable."""
        try:
            async with session.get(
                url,
                headers=_HEADERS,
                allow_redirects=True,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if resp.status < 200 or resp.status >= 300:
                    return None
                content_type = resp.headers.get("Content-Type", "")
                if "text/html" not in content_type and "text/plain" not in content_type:
                    return None
                return await resp.text(errors="replace")
        except Exception as e:
            logger.debug(f"  Page fetch failed for {url}: {e}")
            return None

    async def scrape(self, session: aiohttp.ClientSession, website: str) -> List[str]:
        """Collect same-domain emails from the website's candidate pages."""
        if not website:
            return []

        domain = extract_domain(website)
        emails: Dict[str, None] = {}

        try:
            pages = candidate_pages(website)
        except ValueError:
            logger.debug(f"  Unusable website URL: {website}")
            return []

        for page_url in pages:
            html = await self._fetch_page(session, page_url)
            if html is None:
                continue
            self._stats["pages_fetched"] += 1
            for email in extract_site_emails(html, domain):
                emails[email] = None

        self._stats["sites_scraped"] += 1
        self._stats["emails_found"] += len(emails)
        if emails:
            logger.debug(f"  📧  {domain}: {len(emails)} emails scraped")
        return list(emails)

    @property
    def stats(self) -> dict:
        return dict(self._stats)

    def log_stats(self) -> None:
        s = self.stats
        logger.info(
            f"  🌐  Website scrape: {s['sites_scraped']} sites, "
            f"{s['pages_fetched']} pages fetched, {s['emails_found']} emails found"
        )
