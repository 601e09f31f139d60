"""
Market Pull — CSV Export
Renders verified leads as CSV text and saves exports for CLI runs.
"""

import csv
import io
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional


@dataclass
class CsvRow:
    """One exported contact: a business plus one of its verified emails."""
    business_name: str
    city: str
    address: str
    phone: str
    website: str
    email: str
    reviews: int
    rating: float
    source_query: str


FIELDNAMES = [
    "Business Name", "City", "Address", "Phone", "Website",
    "Email", "Reviews", "Rating", "Source Query",
]


def _format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def generate_csv(rows: List[CsvRow]) -> str:
    """
    Header line plus one line per row, rows joined by newlines.

    Fields are quoted only when they contain a comma, quote or newline,
    with embedded quotes doubled.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(FIELDNAMES)
    for row in rows:
        writer.writerow([
            row.business_name,
            row.city,
            row.address,
            row.phone,
            row.website,
            row.email,
            _format_number(row.reviews),
            _format_number(row.rating),
            row.source_query,
        ])
    text = buf.getvalue()
    return text[:-1] if text.endswith("\n") else text


class CSVWriter:
    """Saves rendered exports under ``<output_dir>/exports``."""

    def __init__(self, output_dir: str = "data"):
        self.output_dir = Path(output_dir)
        self.exports_dir = self.output_dir / "exports"
        self.exports_dir.mkdir(parents=True, exist_ok=True)

    def write(self, csv_text: str, filename: Optional[str] = None) -> str:
        """Write CSV text to disk and return the path."""
        if filename is None:
            filename = f"google-market-pull-{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
        filepath = self.exports_dir / filename
        with open(filepath, "w", newline="", encoding="utf-8") as f:
            f.write(csv_text)
            f.write("\n")

        print(f"  💾  Saved export → {filepath}")
        return str(filepath)
