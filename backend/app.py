import time
from typing import Optional

# Load .env BEFORE building settings
from dotenv import load_dotenv
load_dotenv(override=True)

from fastapi import FastAPI, Request, Query, Path
from fastapi.exceptions import RequestValidationError
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, PlainTextResponse

from backend.config import Settings
from backend.db import HistoryStore
from backend.errors import E_VALIDATION, E_UPSTREAM, E_MALFORMED_UPSTREAM, E_INTERNAL
from backend.llm_wrapper import LLMGatewayClient
from backend.orchestrator import QueryGenerationOrchestrator
from backend.schemas import GenerationRequest, GenerationResult
from backend import monitoring

settings = Settings.from_env()

app = FastAPI(title="Declarative BFF (GraphQL query generator)")

# Pre-flight requests are answered here with permissive headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

history_store = HistoryStore(settings.database_url)
history_store.init_schema()

# instantiate orchestrator once
orchestrator = QueryGenerationOrchestrator(
    gateway=LLMGatewayClient(
        api_key=settings.anthropic_api_key,
        model=settings.llm_model,
        max_tokens=settings.llm_max_tokens,
        base_url=settings.anthropic_base_url,
        timeout=settings.llm_timeout,
        mock=settings.mock_llm,
    ),
    store=history_store,
)

STATUS_BY_ERROR_CODE = {
    E_VALIDATION: 400,
    E_UPSTREAM: 502,
    E_MALFORMED_UPSTREAM: 502,
}

INVALID_BODY_MESSAGE = "Request body must be JSON with string fields 'schema' and 'userStory'"


@app.exception_handler(RequestValidationError)
async def generation_body_error_handler(request: Request, exc: RequestValidationError):
    """Keep the {success, error} envelope on /api/generate; default 422 elsewhere."""
    if request.url.path != "/api/generate":
        return await request_validation_exception_handler(request, exc)
    monitoring.inc_generation("validation_error")
    monitoring.logger.info("Rejected malformed generation body", extra={"error_count": len(exc.errors())})
    result = GenerationResult.fail(INVALID_BODY_MESSAGE, error_code=E_VALIDATION)
    return JSONResponse(status_code=400, content=result.to_dict())


# ---------------------------------------------------------------------------
# Metrics middleware
# ---------------------------------------------------------------------------
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.time()
    endpoint = request.url.path
    method = request.method
    status = "500"
    try:
        response = await call_next(request)
        status = str(response.status_code)
        return response
    except Exception:
        monitoring.logger.exception("Unhandled exception in request", extra={"path": endpoint})
        raise
    finally:
        monitoring.observe_request(start, endpoint, method, status)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@app.post("/api/generate")
def generate_query(req: GenerationRequest):
    """
    POST /api/generate
    Body: { "schema": "...", "userStory": "..." }
    """
    monitoring.logger.info(
        "Received /api/generate request",
        extra={"schema_chars": len(req.graphql_schema), "user_story_chars": len(req.user_story)},
    )
    try:
        result = orchestrator.handle_request(req.graphql_schema, req.user_story)
    except Exception as e:
        monitoring.logger.exception("Unexpected error in /api/generate handler")
        result = GenerationResult.fail(
            "An unexpected error occurred", details=str(e), error_code=E_INTERNAL
        )
    if result.success:
        return JSONResponse(status_code=200, content=result.to_dict())
    status = STATUS_BY_ERROR_CODE.get(result.error_code, 500)
    return JSONResponse(status_code=status, content=result.to_dict())


@app.get("/api/history")
def list_history(limit: Optional[int] = Query(None, ge=1, le=100, description="Max records to return")):
    """
    GET /api/history?limit=N
    Most recent generations, newest first. Empty list when the store is unavailable.
    """
    records = orchestrator.list_history(limit or settings.history_limit)
    return {"success": True, "data": [r.to_dict() for r in records]}


@app.get("/api/history/{record_id}")
def get_history_record(record_id: int = Path(..., description="History record id")):
    rec = history_store.get(record_id)
    if rec is None:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "History record not found"},
        )
    return {"success": True, "data": rec.to_dict()}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/metrics")
async def metrics():
    if not monitoring.PROMETHEUS_ENABLED:
        return PlainTextResponse("Prometheus disabled", status_code=404)
    payload, content_type = monitoring.prometheus_metrics_response()
    return Response(content=payload, media_type=content_type)
