# backend/errors.py
"""
Error taxonomy for the query generation pipeline.

- ValidationError            missing/empty input, never reaches the LLM
- UpstreamError              LLM provider failed or could not be reached
- MalformedUpstreamResponse  provider answered 2xx with an unexpected shape
- StoreUnavailable           history persistence failed (always absorbed)
- TransportFailure           client could not reach the generation service
"""
from typing import Optional

# Error codes carried in GenerationResult.error_code
E_VALIDATION = "E_VALIDATION"
E_UPSTREAM = "E_UPSTREAM"
E_MALFORMED_UPSTREAM = "E_MALFORMED_UPSTREAM"
E_TRANSPORT = "E_TRANSPORT"
E_INTERNAL = "E_INTERNAL"


class QueryGenError(Exception):
    error_code = E_INTERNAL

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(QueryGenError):
    error_code = E_VALIDATION


class UpstreamError(QueryGenError):
    error_code = E_UPSTREAM

    def __init__(self, message: str, details: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message, details)
        self.status_code = status_code


class MalformedUpstreamResponse(UpstreamError):
    error_code = E_MALFORMED_UPSTREAM


class StoreUnavailable(QueryGenError):
    pass


class TransportFailure(QueryGenError):
    error_code = E_TRANSPORT
