"""Research prompt generation."""

from typing import List, Optional

from app.models.report import Report


def generate_prompt(
    report_type: str,
    client_name: str,
    transcript: str,
    urls: Optional[List[str]] = None,
    file_contents: Optional[List[str]] = None,
) -> str:
    """
    Render the user prompt sent to the research backend.

    Args:
        report_type: Title of the report type
        client_name: Client the report is for
        transcript: Meeting transcript or notes
        urls: Reference URLs supplied with the report
        file_contents: Uploaded documents (URLs or extracted text)

    Returns:
        Prompt string
    """
    urls = [u for u in (urls or []) if u]
    file_contents = [f for f in (file_contents or []) if f]

    return f"""Report Type: {report_type}
Client: {client_name}

Meeting Transcript:
{transcript or "N/A"}

Reference URLs:
{chr(10).join(urls) if urls else "No URLs provided"}

Uploaded Documents:
{chr(10).join(file_contents) if file_contents else "No documents uploaded"}
"""


def prompt_for_report(report: Report) -> str:
    return generate_prompt(
        report_type=report.type_of_report,
        client_name=report.client_name,
        transcript=report.meeting_transcript or "",
        urls=report.client_urls,
        file_contents=report.file_urls,
    )
