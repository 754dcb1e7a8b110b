"""SQLAlchemy ORM models."""

from app.models.report import Report
from app.models.report_type import ReportType

__all__ = [
    "Report",
    "ReportType",
]
