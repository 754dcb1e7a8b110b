"""Report model."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Index, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB

from app.database import Base

# JSONB on Postgres, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")

REPORT_STATUSES = ("draft", "researching", "completed", "failed")

# Forward-only lifecycle
REPORT_TRANSITIONS = {
    "draft": {"researching"},
    "researching": {"completed", "failed"},
    "completed": set(),
    "failed": set(),
}


class Report(Base):
    """A user-initiated research report request and its outcome."""

    __tablename__ = "reports"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text)  # Identity comes from the external auth provider
    report_name = Column(Text, nullable=False)
    client_name = Column(Text, nullable=False)
    type_of_report = Column(Text, nullable=False)
    meeting_transcript = Column(Text)
    client_urls = Column(JSONType)  # List of reference URLs
    file_urls = Column(JSONType)  # Already-uploaded file URLs
    status = Column(Text, nullable=False, default="draft")  # 'draft', 'researching', 'completed', 'failed'
    openai_job_id = Column(Text)
    generated_report = Column(Text)
    research_sources = Column(JSONType)  # [{url, title, snippet}]
    error_message = Column(Text)
    google_docs_url = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_reports_status", "status"),
        Index("idx_reports_user_id", "user_id"),
    )
