"""
Market Pull — Listing data model shared by the pipeline stages.
"""

from dataclasses import dataclass
from urllib.parse import urlparse


@dataclass
class BusinessListing:
    """A single business discovered through a maps search."""
    business_name: str
    website: str
    address: str = ""
    city: str = ""
    phone: str = ""
    rating: float = 0.0
    reviews_count: int = 0
    source_query: str = ""

    @property
    def domain(self) -> str:
        return extract_domain(self.website)


def extract_domain(url: str) -> str:
    """Hostname of a URL without the www. prefix, lower-cased.

    Falls back to the lower-cased input when it does not parse as a URL.
    """
    try:
        host = urlparse(url).hostname
    except ValueError:
        host = None
    if not host:
        return url.lower()
    if host.startswith("www."):
        host = host[4:]
    return host.lower()
