"""Document service client answering whether required documents are on file"""

import uuid

import httpx

from loan_underwriting.config import settings
from loan_underwriting.domain.exceptions import DocumentServiceError


class DocumentClient:
    """Client for the external document checklist API"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url or settings.document_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def required_docs_satisfied(self, application_id: uuid.UUID) -> bool:
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = client.get(f"{self.base_url}/applications/{application_id}/documents/completeness")
                response.raise_for_status()
                satisfied = response.json()["satisfied"]
                if not isinstance(satisfied, bool):
                    raise TypeError(f"'satisfied' must be a boolean, got {satisfied!r}")
                return satisfied

            except httpx.TimeoutException as e:
                raise DocumentServiceError(f"Document API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise DocumentServiceError(f"Document API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise DocumentServiceError(f"Document API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise DocumentServiceError(f"Invalid completeness response: {e}") from e
