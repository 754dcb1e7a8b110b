"""Research backend client (OpenAI Responses API, background mode)."""

import hashlib
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from app.config import settings
from app.errors import CancellationError, StatusCheckError, SubmissionError
from app.schemas.research import (
    JobStatus,
    ResearchJob,
    ResearchJobError,
    ResearchResults,
    ResearchSource,
)

logger = logging.getLogger(__name__)

TEXT_PART_TYPES = ("text", "output_text")


def probe_output_shape(output: Any) -> str:
    """
    Identify which output layout the backend returned.

    Returns:
        "turns" for a list of output items, "text" for a single string,
        "unknown" otherwise
    """
    if isinstance(output, list):
        return "turns"
    if isinstance(output, str):
        return "text"
    return "unknown"


def _item_text(item: Dict[str, Any]) -> str:
    """Extract the text of one assistant output item."""
    if item.get("role") != "assistant" or not item.get("content"):
        return ""

    content = item["content"]
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            part.get("text") or part.get("output_text") or ""
            for part in content
            if isinstance(part, dict) and part.get("type") in TEXT_PART_TYPES
        )
    return ""


def _item_sources(item: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Collect raw source dicts from citations and search tool calls."""
    found = []

    content = item.get("content")
    if isinstance(content, list):
        for part in content:
            if not isinstance(part, dict):
                continue
            for annotation in part.get("annotations") or []:
                if annotation.get("type") == "url_citation":
                    found.append(annotation)

    for tool in item.get("tool_calls") or []:
        function = tool.get("function") or {}
        if tool.get("type") != "function" or function.get("name") != "web_search_preview":
            continue
        try:
            arguments = json.loads(function.get("arguments") or "{}")
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing tool arguments: {e}")
            continue
        found.extend(arguments.get("results") or [])

    return found


def extract_results(output: Any) -> ResearchResults:
    """
    Build report text and sources from a completed job's output.

    Args:
        output: The backend's ``output`` field, either a list of turns or a string

    Returns:
        ResearchResults with report text and de-duplicated sources
    """
    shape = probe_output_shape(output)
    logger.info(f"Research output shape: {shape}")

    if shape == "text":
        return ResearchResults(report=output, sources=[])
    if shape != "turns":
        return ResearchResults()

    items = [item for item in output if isinstance(item, dict)]
    texts = [_item_text(item) for item in items]
    report = "\n\n".join(text for text in texts if text)

    sources = []
    seen_urls = set()
    for item in items:
        for raw in _item_sources(item):
            url = raw.get("url") or ""
            if url in seen_urls:
                continue
            seen_urls.add(url)
            sources.append(
                ResearchSource(
                    url=url,
                    title=raw.get("title") or "",
                    snippet=raw.get("snippet") or raw.get("body") or "",
                )
            )

    return ResearchResults(report=report, sources=sources)


def _error_message(response: httpx.Response) -> str:
    """Pull the upstream error message out of a failed response."""
    try:
        data = response.json()
    except ValueError:
        return "Unknown error"
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
    return "Unknown error"


class ResearchClient:
    """Client for submitting, checking and cancelling background research jobs."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the research client."""
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.base_url = (base_url or settings.OPENAI_BASE_URL).rstrip("/")
        self.model = model or settings.RESEARCH_MODEL
        self.timeout = timeout or settings.RESEARCH_HTTP_TIMEOUT
        self.transport = transport

    def _build_headers(self) -> Dict[str, str]:
        """Build HTTP headers for the research backend."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport)

    def submit(self, prompt: str, system_message: Optional[str] = None) -> str:
        """
        Submit a research job in background mode.

        Args:
            prompt: User prompt built from the report inputs
            system_message: Optional system message; defaults to the analyst persona

        Returns:
            The backend's job id

        Raises:
            SubmissionError: On network failure or non-2xx response, or a body without a job id
        """
        payload = {
            "model": self.model,
            "reasoning": {"effort": settings.RESEARCH_REASONING_EFFORT},
            "input": [
                {"role": "system", "content": system_message or settings.RESEARCH_SYSTEM_MESSAGE},
                {"role": "user", "content": prompt},
            ],
            "tools": [{"type": "web_search_preview"}],
            "background": True,
        }

        request_hash = hashlib.sha256(json.dumps(payload, sort_keys=True).encode()).hexdigest()
        logger.info(f"Research submission to {self.model}, hash: {request_hash[:16]}")

        try:
            with self._client() as client:
                response = client.post(
                    f"{self.base_url}/responses",
                    headers=self._build_headers(),
                    json=payload,
                )
        except httpx.HTTPError as e:
            raise SubmissionError(f"Research API request failed: {e}") from e

        if not response.is_success:
            raise SubmissionError(
                f"Research API error: {response.status_code} - {_error_message(response)}",
                status_code=response.status_code,
            )

        try:
            job_id = response.json()["id"]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise SubmissionError(
                f"Research API returned an unreadable job: {e!r}",
                status_code=response.status_code,
            ) from e
        logger.info(f"Research job submitted: {job_id}")
        return job_id

    def check_status(self, job_id: str) -> ResearchJob:
        """
        Read the current state of a job once.

        Args:
            job_id: Backend job id

        Returns:
            Normalized ResearchJob

        Raises:
            StatusCheckError: On network failure or non-2xx response, or an unreadable body
        """
        try:
            with self._client() as client:
                response = client.get(
                    f"{self.base_url}/responses/{job_id}",
                    headers=self._build_headers(),
                )
        except httpx.HTTPError as e:
            raise StatusCheckError(f"Failed to check research status: {e}") from e

        if not response.is_success:
            raise StatusCheckError(
                f"Failed to check research status: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return self.parse_job(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise StatusCheckError(
                f"Failed to check research status: unreadable response ({e!r})",
                status_code=response.status_code,
            ) from e

    def parse_job(self, data: Dict[str, Any]) -> ResearchJob:
        """Map a raw backend job onto ResearchJob."""
        status = JobStatus.from_backend(data.get("status"))
        job = ResearchJob(
            id=data["id"],
            status=status,
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at") or data.get("created_at"),
        )

        if status is JobStatus.COMPLETED and data.get("output"):
            job.results = extract_results(data["output"])

        if status is JobStatus.FAILED:
            error = data.get("error") or {}
            if not isinstance(error, dict):
                error = {"message": str(error)}
            job.error = ResearchJobError(
                message=error.get("message") or "Research job failed",
                type=error.get("type") or "unknown",
            )

        return job

    def cancel(self, job_id: str) -> None:
        """
        Ask the backend to stop a job.

        The next status check is not guaranteed to observe the cancellation.

        Raises:
            CancellationError: On network failure or non-2xx response
        """
        try:
            with self._client() as client:
                response = client.post(
                    f"{self.base_url}/responses/{job_id}/cancel",
                    headers=self._build_headers(),
                )
        except httpx.HTTPError as e:
            raise CancellationError(f"Failed to cancel research job: {e}") from e

        if not response.is_success:
            raise CancellationError(
                f"Failed to cancel research job: {response.status_code}",
                status_code=response.status_code,
            )

        logger.info(f"Cancellation requested for research job {job_id}")
