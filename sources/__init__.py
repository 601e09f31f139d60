"""Market Pull Sources — Business listing discovery."""
from .base import BusinessListing, extract_domain
from .maps_search import MapsSearchClient, MapsSearchError

__all__ = ["BusinessListing", "extract_domain", "MapsSearchClient", "MapsSearchError"]
