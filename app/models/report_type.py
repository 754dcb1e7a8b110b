"""Report type model."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Text, Uuid

from app.database import Base


class ReportType(Base):
    """Prompt template for a kind of report, managed by admins."""

    __tablename__ = "report_types"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(Text, nullable=False, unique=True)
    prompt = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="active")  # 'active', 'inactive'
    created_at = Column(DateTime, default=datetime.utcnow)
