"""Report routes."""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.errors import DocumentExportError, InvalidTransitionError, ResearchAPIError
from app.models.report import Report
from app.schemas.report import (
    GoogleDocRequest,
    GoogleDocResponse,
    ReportCreate,
    ReportResponse,
    ResearchStartResponse,
)
from app.schemas.research import ResearchJob
from app.services.docs_client import GoogleDocsClient
from app.services.prompts import prompt_for_report
from app.services.report_store import ReportStore
from app.services.research_client import ResearchClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


def get_research_client() -> ResearchClient:
    return ResearchClient()


def get_docs_client(authorization: Optional[str] = Header(None)) -> GoogleDocsClient:
    """Docs client signed in with the caller's Google bearer token."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Google access token required")
    return GoogleDocsClient(access_token=authorization.split(" ", 1)[1].strip())


def _get_report(store: ReportStore, report_id: uuid.UUID) -> Report:
    report = store.get(report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.post("", response_model=ReportResponse)
def create_report(
    data: ReportCreate,
    db: Session = Depends(get_db),
):
    """Create a draft report."""
    report = Report(
        user_id=data.user_id,
        report_name=data.report_name,
        client_name=data.client_name,
        type_of_report=data.type_of_report,
        meeting_transcript=data.meeting_transcript,
        client_urls=[u for u in data.client_urls if u],
        file_urls=[f for f in data.file_urls if f],
        status="draft",
    )
    db.add(report)
    db.commit()
    db.refresh(report)

    logger.info(f"Created report {report.id}")

    return report


@router.get("/list", response_model=List[ReportResponse])
def list_reports(user_id: Optional[str] = None, db: Session = Depends(get_db)):
    """List reports, newest first."""
    return ReportStore(db).list_for_user(user_id)


@router.get("/{report_id}", response_model=ReportResponse)
def get_report(
    report_id: uuid.UUID,
    db: Session = Depends(get_db),
):
    """Get a report."""
    return _get_report(ReportStore(db), report_id)


@router.post("/{report_id}/research", response_model=ResearchStartResponse)
def start_research(
    report_id: uuid.UUID,
    db: Session = Depends(get_db),
    client: ResearchClient = Depends(get_research_client),
):
    """Submit a draft report for research; the worker tracks the job."""
    store = ReportStore(db)
    report = _get_report(store, report_id)

    if report.status != "draft":
        raise HTTPException(status_code=409, detail=f"Report is already {report.status}")

    prompt = prompt_for_report(report)
    system_message = store.system_message_for(report.type_of_report)

    try:
        job_id = client.submit(prompt, system_message)
    except ResearchAPIError as e:
        logger.error(f"Research submission for report {report_id} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    report = store.mark_researching(report_id, job_id)
    logger.info(f"Started research for report {report_id}, job {job_id}")

    return ResearchStartResponse(report_id=report_id, job_id=job_id, status=report.status)


@router.get("/{report_id}/research", response_model=ResearchJob)
def check_research(
    report_id: uuid.UUID,
    db: Session = Depends(get_db),
    client: ResearchClient = Depends(get_research_client),
):
    """Check the report's research job once."""
    report = _get_report(ReportStore(db), report_id)
    if not report.openai_job_id:
        raise HTTPException(status_code=400, detail="Report has no research job")

    try:
        return client.check_status(report.openai_job_id)
    except ResearchAPIError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/{report_id}/research/cancel", status_code=202)
def cancel_research(
    report_id: uuid.UUID,
    db: Session = Depends(get_db),
    client: ResearchClient = Depends(get_research_client),
):
    """Ask the backend to cancel the report's research job."""
    report = _get_report(ReportStore(db), report_id)
    if report.status != "researching":
        raise HTTPException(status_code=400, detail="Report is not researching")

    try:
        client.cancel(report.openai_job_id)
    except ResearchAPIError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return {"message": "Cancellation requested"}


@router.post("/{report_id}/google-doc", response_model=GoogleDocResponse)
def export_google_doc(
    report_id: uuid.UUID,
    data: Optional[GoogleDocRequest] = None,
    db: Session = Depends(get_db),
    docs_client: GoogleDocsClient = Depends(get_docs_client),
):
    """Export a completed report to Google Docs with the caller's token."""
    store = ReportStore(db)
    report = _get_report(store, report_id)

    if report.status != "completed":
        raise HTTPException(status_code=400, detail="Report not completed")

    data = data or GoogleDocRequest()
    try:
        url = docs_client.create_document(
            data.title or report.report_name,
            report.generated_report or "",
            logo_url=data.logo_url or settings.REPORT_LOGO_URL or None,
        )
    except DocumentExportError as e:
        logger.error(f"Google Doc export for report {report_id} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    try:
        store.update(report_id, {"google_docs_url": url})
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return GoogleDocResponse(report_id=report_id, google_docs_url=url)
