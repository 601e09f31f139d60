"""
Job records owned by the JobManager.
"""

from dataclasses import dataclass, field, asdict
from typing import List, Optional

from output.csv_writer import CsvRow


@dataclass
class JobInput:
    service_category: str
    region: str = "michigan"
    min_reviews: int = 30
    max_results: int = 500
    limit_one_per_domain: bool = False


@dataclass
class JobStats:
    businesses_found: int = 0
    websites_found: int = 0
    emails_discovered: int = 0
    emails_verified: int = 0


@dataclass
class JobStatus:
    """
    Live state of the current (or most recent) market pull.

    status: idle → running → completed | error
    stage:  "" | search | scrape | enrich | verify | csv | done
    """
    id: str = ""
    status: str = "idle"
    stage: str = ""
    progress: int = 0
    progress_total: int = 0
    message: str = "Ready"
    stats: JobStats = field(default_factory=JobStats)
    csv_data: Optional[str] = None
    rows: Optional[List[CsvRow]] = None
    error: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    def to_dict(self) -> dict:
        d = asdict(self)
        d.pop("rows", None)
        return d
