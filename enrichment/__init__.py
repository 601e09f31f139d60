"""Market Pull Enrichment — Website scraping, contact lookup and email verification."""
from .website_scraper import WebsiteEmailScraper
from .contact_finder import ContactFinder, ContactResult, RunSummary
from .email_verifier import EmailVerifier, VerificationResult

__all__ = [
    "WebsiteEmailScraper",
    "ContactFinder",
    "ContactResult",
    "RunSummary",
    "EmailVerifier",
    "VerificationResult",
]
