"""Report-related Pydantic schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.research import ResearchSource


class ReportCreate(BaseModel):
    """Schema for creating a new report."""

    report_name: str
    client_name: str
    type_of_report: str
    meeting_transcript: str = ""
    client_urls: List[str] = Field(default_factory=list, max_length=5)
    file_urls: List[str] = Field(default_factory=list, max_length=5)
    user_id: Optional[str] = None


class ReportResponse(BaseModel):
    """Report detail response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: Optional[str] = None
    report_name: str
    client_name: str
    type_of_report: str
    status: str
    openai_job_id: Optional[str] = None
    generated_report: Optional[str] = None
    research_sources: Optional[List[ResearchSource]] = None
    error_message: Optional[str] = None
    google_docs_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ResearchStartResponse(BaseModel):
    """Response after submitting a report for research."""

    report_id: UUID
    job_id: str
    status: str


class GoogleDocRequest(BaseModel):
    """Options for exporting a report to Google Docs."""

    title: Optional[str] = None
    logo_url: Optional[str] = None


class GoogleDocResponse(BaseModel):
    """Response after exporting a report."""

    report_id: UUID
    google_docs_url: str
