"""
Load region catalogs used to fan out maps searches.

Each region (state, metro, ...) is a YAML file listing its name, the
abbreviation appended to search queries, and the ordered sub-regions
(usually cities) that get one query each.
"""

import re
import yaml
from dataclasses import dataclass, field
from typing import List
from pathlib import Path


REGIONS_DIR = Path(__file__).parent

_SLUG_RE = re.compile(r"^[a-z0-9_]+$")


@dataclass
class RegionConfig:
    """A searchable region and the sub-regions it fans out to."""
    name: str
    slug: str
    abbreviation: str
    description: str = ""
    sub_regions: List[str] = field(default_factory=list)


def _slugify(value: str) -> str:
    return value.strip().lower().replace(" ", "_")


def load_region(slug: str) -> RegionConfig:
    """Load a region catalog from its YAML file.

    Accepts either the slug or the display name ("Michigan" → michigan).
    Only catalogs shipped in this package can be loaded.
    """
    slug = _slugify(slug)
    if not _SLUG_RE.match(slug) or slug not in list_regions():
        raise FileNotFoundError(f"Region catalog not found: {slug!r}")

    path = REGIONS_DIR / f"{slug}.yaml"
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Region catalog {path.name} must be a mapping")

    name = raw.get("name", slug)
    sub_regions = raw.get("sub_regions") or []
    if not isinstance(sub_regions, list):
        raise ValueError(f"Region catalog {path.name}: sub_regions must be a list")

    return RegionConfig(
        name=name,
        slug=slug,
        abbreviation=raw.get("abbreviation", name),
        description=raw.get("description", ""),
        sub_regions=[str(s) for s in sub_regions],
    )


def list_regions() -> List[str]:
    """List all available region slugs."""
    return [f.stem for f in sorted(REGIONS_DIR.glob("*.yaml"))]
