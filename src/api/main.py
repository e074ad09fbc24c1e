import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.models import ErrorResponse
from src.api.routes.catalog import router as catalog_router
from src.api.routes.query import router as query_router
from src.api.routes.transcripts import router as transcripts_router
from src.api.sessions import SessionStore
from src.config import settings
from src.errors import ErrorKind, FailureReason, GenerationFailureError, PipelineError
from src.pipeline_config import PipelineConfig

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Transcript Q&A API",
    description="Ask questions about a video transcript using lexical retrieval",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_origin_regex=r"https://.*\.vercel\.app|http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.sessions = SessionStore(PipelineConfig.from_settings(settings))

app.include_router(transcripts_router)
app.include_router(query_router)
app.include_router(catalog_router)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_TRANSCRIPT: 400,
    ErrorKind.INVALID_PARAMETER: 400,
    ErrorKind.INVALID_QUERY: 400,
    ErrorKind.NOT_INITIALIZED: 409,
    ErrorKind.NO_CONTEXT_AVAILABLE: 422,
    ErrorKind.GENERATION_TIMEOUT: 504,
    ErrorKind.GENERATION_FAILURE: 503,
}


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    status_code = STATUS_BY_KIND[exc.kind]
    reason = None
    if isinstance(exc, GenerationFailureError):
        reason = exc.reason.value
        if exc.reason is FailureReason.RATE_LIMITED:
            status_code = 429
    body = ErrorResponse(detail=exc.message, kind=exc.kind.value, stage=exc.stage, reason=reason)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
