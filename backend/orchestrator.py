# backend/orchestrator.py
import time
from typing import List

from backend import monitoring
from backend.db import HistoryStore
from backend.errors import (
    ValidationError,
    UpstreamError,
    E_VALIDATION,
)
from backend.llm_wrapper import LLMGatewayClient
from backend.prompt_builder import build_prompt
from backend.schemas import GenerationResult, HistoryRecord

MISSING_SCHEMA_MESSAGE = "Please upload a GraphQL schema file"
MISSING_USER_STORY_MESSAGE = "Please upload a user story file"


class QueryGenerationOrchestrator:
    def __init__(self, gateway: LLMGatewayClient, store: HistoryStore):
        self.gateway = gateway
        self.store = store

    @staticmethod
    def _validate(schema: str, user_story: str) -> None:
        if not schema or not schema.strip():
            raise ValidationError(MISSING_SCHEMA_MESSAGE)
        if not user_story or not user_story.strip():
            raise ValidationError(MISSING_USER_STORY_MESSAGE)

    def _persist(self, schema: str, user_story: str, query: str) -> None:
        """Record the generation (best-effort). Never fails the request."""
        try:
            rec = self.store.append(schema, user_story, query)
            monitoring.logger.info("Stored history record", extra={"record_id": rec.id})
        except Exception as e:
            monitoring.inc_history_failure("write")
            monitoring.logger.warning("History write failed; generation result unaffected",
                                      extra={"reason": str(e)})

    def handle_request(self, schema: str, user_story: str) -> GenerationResult:
        """
        Full synchronous flow:
        1. Validate inputs (no network or store call on failure)
        2. Build prompt
        3. Call LLM gateway
        4. Persist history (best-effort)
        5. Return envelope
        """
        try:
            self._validate(schema, user_story)
        except ValidationError as e:
            monitoring.inc_generation("validation_error")
            monitoring.logger.info("Rejected generation request", extra={"reason": e.message})
            return GenerationResult.fail(e.message, error_code=E_VALIDATION)

        monitoring.logger.info(
            "Generating query",
            extra={"schema_chars": len(schema), "user_story_chars": len(user_story)},
        )
        prompt = build_prompt(schema, user_story)

        start = time.time()
        try:
            query = self.gateway.generate(prompt)
        except UpstreamError as e:
            monitoring.inc_generation("upstream_error")
            monitoring.logger.error(
                "Query generation failed",
                extra={"error_code": e.error_code, "elapsed": round(time.time() - start, 3)},
            )
            return GenerationResult.fail(e.message, details=e.details, error_code=e.error_code)

        monitoring.inc_generation("success")
        monitoring.logger.info("Generated query", extra={"query_chars": len(query)})
        self._persist(schema, user_story, query)
        return GenerationResult.ok(query)

    def list_history(self, limit: int = 10) -> List[HistoryRecord]:
        return self.store.list_recent(limit)
