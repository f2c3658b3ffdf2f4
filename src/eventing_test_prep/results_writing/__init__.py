"""Preparation report exports."""

from .preparation_report_writer import default_report_path, write_preparation_report
from .report_models import ReportMetadata

__all__ = [
    "ReportMetadata",
    "default_report_path",
    "write_preparation_report",
]
