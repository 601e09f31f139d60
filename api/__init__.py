"""Market Pull API package."""
