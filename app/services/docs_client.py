"""Google Docs client for exporting reports."""

import logging
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.config import settings
from app.errors import DocumentExportError
from app.services.doc_translator import create_header_request, logo_requests, markdown_to_requests

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = (429, 500, 503)


class _RetryableStatus(Exception):
    def __init__(self, response: httpx.Response):
        super().__init__(f"Retryable error: {response.status_code}")
        self.response = response


class GoogleDocsClient:
    """
    Client for the Docs and Drive REST APIs.

    The caller owns the instance and the OAuth access token it holds; the
    token is obtained by the caller's own sign-in flow.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        docs_base_url: Optional[str] = None,
        drive_base_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._access_token = access_token or None
        self.docs_base_url = (docs_base_url or settings.GOOGLE_DOCS_BASE_URL).rstrip("/")
        self.drive_base_url = (drive_base_url or settings.GOOGLE_DRIVE_BASE_URL).rstrip("/")
        self.transport = transport

    def sign_in(self, access_token: str) -> None:
        self._access_token = access_token

    def sign_out(self) -> None:
        self._access_token = None

    @property
    def is_signed_in(self) -> bool:
        return self._access_token is not None

    @retry(
        retry=retry_if_exception_type((_RetryableStatus, httpx.TransportError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        with httpx.Client(timeout=60.0, transport=self.transport) as client:
            response = client.request(
                method,
                url,
                headers={"Authorization": f"Bearer {self._access_token}"},
                **kwargs,
            )

        if response.status_code in RETRYABLE_STATUS_CODES:
            logger.warning(f"Retryable error {response.status_code} from Google API")
            raise _RetryableStatus(response)

        return response

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """Send a request, mapping every failure to DocumentExportError."""
        if not self.is_signed_in:
            raise DocumentExportError("User is not signed in")

        try:
            response = self._send(method, url, **kwargs)
        except _RetryableStatus as e:
            response = e.response
        except httpx.HTTPError as e:
            raise DocumentExportError(f"Google API request failed: {e}") from e

        if not response.is_success:
            raise DocumentExportError(
                f"Google API error: {response.status_code}",
                status_code=response.status_code,
            )

        return response.json() if response.content else {}

    def create(self, title: str) -> str:
        """Create an empty document and return its id."""
        data = self._request("POST", f"{self.docs_base_url}/documents", json={"title": title})
        return data["documentId"]

    def batch_update(self, document_id: str, requests: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Apply an ordered batch of edit requests."""
        return self._request(
            "POST",
            f"{self.docs_base_url}/documents/{document_id}:batchUpdate",
            json={"requests": requests},
        )

    def get_web_view_link(self, document_id: str) -> str:
        data = self._request(
            "GET",
            f"{self.drive_base_url}/files/{document_id}",
            params={"fields": "id,webViewLink"},
        )
        return data["webViewLink"]

    def create_document(self, title: str, content: str, logo_url: Optional[str] = None) -> str:
        """
        Create a formatted document from report text.

        Args:
            title: Document title
            content: Markdown-like report text
            logo_url: Optional image placed in the document header

        Returns:
            The document's web view link

        Raises:
            DocumentExportError: If not signed in or the API rejects a call
        """
        if not self.is_signed_in:
            raise DocumentExportError("User is not signed in")

        document_id = self.create(title)
        logger.info(f"Created Google Doc {document_id}")

        requests = []

        if logo_url:
            # The header id is only known after the header exists
            reply = self.batch_update(document_id, [create_header_request()])
            replies = reply.get("replies") or [{}]
            header_id = (replies[0].get("createHeader") or {}).get("headerId")
            if header_id:
                requests.extend(logo_requests(header_id, logo_url))
            else:
                logger.warning(f"No header id returned for document {document_id}, skipping logo")

        requests.extend(markdown_to_requests(content))

        if requests:
            self.batch_update(document_id, requests)
            logger.info(f"Applied {len(requests)} requests to Google Doc {document_id}")

        return self.get_web_view_link(document_id)
