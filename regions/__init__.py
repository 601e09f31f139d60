"""Region catalogs that fan a market pull out into per-city queries."""
from .loader import RegionConfig, load_region, list_regions

__all__ = ["RegionConfig", "load_region", "list_regions"]
