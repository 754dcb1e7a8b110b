"""Report persistence with a forward-only status lifecycle."""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from app.errors import InvalidTransitionError
from app.models.report import REPORT_TRANSITIONS, Report
from app.models.report_type import ReportType

logger = logging.getLogger(__name__)


def _as_uuid(report_id: Union[str, uuid.UUID]) -> uuid.UUID:
    return report_id if isinstance(report_id, uuid.UUID) else uuid.UUID(str(report_id))


class ReportStore:
    """Reads and writes Report rows through a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, report_id: Union[str, uuid.UUID]) -> Optional[Report]:
        return self.db.query(Report).filter(Report.id == _as_uuid(report_id)).first()

    def list_for_user(self, user_id: Optional[str] = None) -> List[Report]:
        query = self.db.query(Report)
        if user_id:
            query = query.filter(Report.user_id == user_id)
        return query.order_by(Report.created_at.desc()).all()

    def list_researching(self) -> List[Report]:
        """Reports waiting on a research job."""
        return (
            self.db.query(Report)
            .filter(Report.status == "researching", Report.openai_job_id.isnot(None))
            .order_by(Report.created_at)
            .all()
        )

    def system_message_for(self, type_of_report: str) -> Optional[str]:
        """Prompt of the active report type with this title, if any."""
        report_type = (
            self.db.query(ReportType)
            .filter(ReportType.title == type_of_report, ReportType.status == "active")
            .first()
        )
        return report_type.prompt if report_type else None

    def update(self, report_id: Union[str, uuid.UUID], values: Dict[str, Any]) -> Report:
        """
        Apply a set of field updates in one commit.

        Args:
            report_id: Report to update
            values: Column name to new value

        Returns:
            The updated report

        Raises:
            LookupError: If the report does not exist
            InvalidTransitionError: If the status would not move forward or
                the document link would be cleared
        """
        report = self.get(report_id)
        if not report:
            raise LookupError(f"Report {report_id} not found")

        new_status = values.get("status")
        if new_status is not None and new_status != report.status:
            if new_status not in REPORT_TRANSITIONS.get(report.status, set()):
                raise InvalidTransitionError(
                    f"Report {report_id} cannot move from {report.status} to {new_status}"
                )

        if "google_docs_url" in values and report.google_docs_url and not values["google_docs_url"]:
            raise InvalidTransitionError(f"Report {report_id} already has a document link")

        for field, value in values.items():
            setattr(report, field, value)
        report.updated_at = datetime.utcnow()

        self.db.commit()
        logger.info(f"Updated report {report_id}: {sorted(values)}")

        return report

    def mark_researching(self, report_id: Union[str, uuid.UUID], job_id: str) -> Report:
        """Record the submitted job and move the report into research."""
        return self.update(report_id, {"status": "researching", "openai_job_id": job_id})
