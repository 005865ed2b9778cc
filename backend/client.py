"""
Client for the query generation service.

Every failure comes back as a GenerationResult with success=False, so callers
only branch on `success`:
  - service unreachable            -> CONNECTION_FAILURE_MESSAGE
  - non-2xx with a JSON error body -> the service's own error message
  - anything else                  -> GENERIC_ERROR_MESSAGE
"""
from typing import List, Optional

import httpx

from backend import monitoring
from backend.errors import TransportFailure, E_UPSTREAM, E_VALIDATION, E_INTERNAL
from backend.schemas import GenerationResult, HistoryRecord

CONNECTION_FAILURE_MESSAGE = "Connection failure: could not reach the query generation service"
GENERIC_ERROR_MESSAGE = "An error occurred while connecting to the AI service"
DEFAULT_FAILURE_MESSAGE = "Failed to generate GraphQL query"


class QueryClient:
    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 120.0,
                 http_client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self._http = http_client or httpx.Client(timeout=timeout)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _post(self, path: str, body: dict) -> httpx.Response:
        try:
            return self._http.post(self._url(path), json=body)
        except httpx.TransportError as e:
            raise TransportFailure(CONNECTION_FAILURE_MESSAGE, details=type(e).__name__) from e

    def generate(self, schema: str, user_story: str) -> GenerationResult:
        try:
            resp = self._post("/api/generate", {"schema": schema, "userStory": user_story})
        except TransportFailure as e:
            monitoring.logger.warning("Generation service unreachable", extra={"reason": e.details})
            return GenerationResult.fail(e.message, error_code=e.error_code)
        except Exception:
            monitoring.logger.exception("Unexpected error calling generation service")
            return GenerationResult.fail(GENERIC_ERROR_MESSAGE, error_code=E_INTERNAL)

        try:
            payload = resp.json()
        except ValueError:
            monitoring.logger.warning("Generation service returned non-JSON body",
                                      extra={"status_code": resp.status_code})
            return GenerationResult.fail(GENERIC_ERROR_MESSAGE, error_code=E_INTERNAL)
        if not isinstance(payload, dict):
            return GenerationResult.fail(GENERIC_ERROR_MESSAGE, error_code=E_INTERNAL)

        if resp.is_error or not payload.get("success"):
            return GenerationResult.fail(
                payload.get("error") or DEFAULT_FAILURE_MESSAGE,
                details=payload.get("details"),
                error_code=E_VALIDATION if resp.status_code == 400 else E_UPSTREAM,
            )

        data = payload.get("data")
        if not isinstance(data, str):
            return GenerationResult.fail(GENERIC_ERROR_MESSAGE, error_code=E_INTERNAL)
        return GenerationResult.ok(data)

    def list_history(self, limit: int = 10) -> List[HistoryRecord]:
        """Recent history records; [] on any failure."""
        try:
            resp = self._http.get(self._url("/api/history"), params={"limit": limit})
            resp.raise_for_status()
            return [HistoryRecord.model_validate(r) for r in resp.json().get("data", [])]
        except Exception as e:
            monitoring.logger.warning("Could not load history", extra={"reason": type(e).__name__})
            return []

    def close(self):
        self._http.close()
