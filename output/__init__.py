"""Market Pull Output — CSV export."""
from .csv_writer import CSVWriter, CsvRow, generate_csv

__all__ = ["CSVWriter", "CsvRow", "generate_csv"]
