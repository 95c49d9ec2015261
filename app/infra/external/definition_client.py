"""Client for the workflow-definition-service API.

The instance engine never stores definitions of its own; it asks the
definition service for the current step graph whenever it needs one.

Failure policy:
- 404 (or an envelope reporting no data) means the definition is absent
- Anything else that prevents a usable answer (timeout, connection error,
  5xx, malformed body) raises UnavailableError
- Connection-level retries happen in the httpx transport only
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from app.config import settings
from app.domain.definitions import DefinitionAccessor, WorkflowDefinition
from app.domain.errors import ErrorCode, UnavailableError
from app.infra.logging import get_correlation_id
from app.infra.metrics import get_metrics


logger = logging.getLogger(__name__)


class DefinitionServiceClient(DefinitionAccessor):
    """HTTP implementation of the definition accessor.

    Usage:
        client = DefinitionServiceClient()
        definition = client.get_definition("onboarding-v2")
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the definition service client.

        Args:
            base_url: Base URL of the definition service API
                      (defaults to settings.workflow_definition_service_url)
            timeout: HTTP request timeout in seconds
            retries: Connection retries performed by the transport
            transport: Optional transport override (used by tests)
        """
        self.base_url = (base_url or settings.workflow_definition_service_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.definition_timeout_seconds
        if transport is None:
            transport = httpx.HTTPTransport(
                retries=retries if retries is not None else settings.definition_transport_retries
            )
        self.client = httpx.Client(timeout=self.timeout, transport=transport)
        self.metrics = get_metrics()
        logger.info(f"DefinitionServiceClient initialized with base_url: {self.base_url}")

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.client.close()

    def _headers(self) -> dict:
        correlation_id = get_correlation_id()
        return {"X-Correlation-ID": correlation_id} if correlation_id else {}

    def _unavailable(self, definition_id: str, reason: str, detail: str) -> UnavailableError:
        self.metrics.definition_fetch_failures.labels(reason=reason).inc()
        return UnavailableError(
            f"Workflow definition {definition_id} is unavailable: {detail}",
            code=ErrorCode.DEFINITION_UNAVAILABLE,
        )

    def get_definition(self, definition_id: str) -> Optional[WorkflowDefinition]:
        """Fetch a definition by ID.

        Args:
            definition_id: Definition identifier

        Returns:
            WorkflowDefinition if found, None if the service reports it absent

        Raises:
            UnavailableError: If the service cannot give a usable answer
        """
        try:
            with self.metrics.track_definition_fetch():
                response = self.client.get(
                    f"{self.base_url}/definitions/{definition_id}",
                    headers=self._headers(),
                )
        except httpx.TimeoutException as e:
            logger.warning(f"Timed out fetching definition {definition_id}: {e}")
            raise self._unavailable(definition_id, "timeout", "request timed out") from e
        except httpx.HTTPError as e:
            logger.warning(f"Transport error fetching definition {definition_id}: {e}")
            raise self._unavailable(definition_id, "transport", str(e)) from e

        if response.status_code == 404:
            logger.warning(f"Definition not found: {definition_id}")
            return None

        if response.status_code >= 400:
            logger.error(
                f"Definition service returned {response.status_code} for {definition_id}"
            )
            raise self._unavailable(
                definition_id, "status", f"HTTP {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise self._unavailable(definition_id, "payload", "response is not JSON") from e

        if not isinstance(body, dict) or not body.get("success") or body.get("data") is None:
            logger.warning(f"Definition service reported no data for {definition_id}")
            return None

        try:
            return WorkflowDefinition.model_validate(body["data"])
        except PydanticValidationError as e:
            logger.error(f"Malformed definition payload for {definition_id}: {e}")
            raise self._unavailable(definition_id, "payload", "malformed definition") from e


# Singleton instance
_client_instance: Optional[DefinitionServiceClient] = None


def get_definition_client() -> DefinitionServiceClient:
    """Get singleton DefinitionServiceClient instance.

    Returns:
        DefinitionServiceClient instance
    """
    global _client_instance

    if _client_instance is None:
        _client_instance = DefinitionServiceClient()

    return _client_instance
