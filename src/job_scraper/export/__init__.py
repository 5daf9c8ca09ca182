"""Export layer — CSV and JSON output for the command line."""

from job_scraper.export.csv_export import CSVExporter
from job_scraper.export.json_export import JSONExporter

__all__ = ["CSVExporter", "JSONExporter"]
