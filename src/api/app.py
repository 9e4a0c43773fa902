"""FastAPI application for the ingredient scanner.

Provides the label analysis endpoint, the caller's analysis history,
Firebase token verification under ``/api/auth`` and a health check.
"""

import shutil
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from src import __version__
from src.analysis.pipeline import AnalysisRequest, CallerIdentity
from src.errors import MissingImageError, ScanError
from src.storage.mongo_store import Location
from src.utils.logger import get_logger

from .dependencies import Components, get_caller, get_components
from .schemas import AnalysesResponse, CallerResponse, ErrorResponse, HealthResponse

logger = get_logger(__name__)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

app = FastAPI(
    title="Ingredient Scanner API",
    description="Analyse packaged food ingredients from a photo of the label",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ScanError)
async def scan_error_handler(request: Request, exc: ScanError) -> JSONResponse:
    """Report pipeline errors as ``{"error": message}``."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed form fields in the same error shape."""
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {details}"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Report anything uncaught outside the analysis run as a 500."""
    logger.exception("%s %s failed", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.get("/health", response_model=HealthResponse)
async def health_check(
    components: Annotated[Components, Depends(get_components)],
) -> HealthResponse:
    """Return service health and the active configuration switches."""
    config = components.config
    return HealthResponse(
        status="healthy",
        version=__version__,
        tesseract_available=shutil.which(config.ocr.tesseract_cmd or "tesseract")
        is not None,
        schema_version=config.analysis.schema_version,
        storage_enabled=components.store is not None,
        auth_enabled=components.verifier is not None,
    )


@app.post("/analyze", responses=_ERROR_RESPONSES)
async def analyze_label(
    caller: Annotated[CallerIdentity, Depends(get_caller)],
    components: Annotated[Components, Depends(get_components)],
    image: Annotated[UploadFile | None, File()] = None,
    latitude: Annotated[float | None, Form()] = None,
    longitude: Annotated[float | None, Form()] = None,
) -> JSONResponse:
    """Analyse the ingredients printed on an uploaded label photo.

    Args:
        caller: Authenticated caller, anonymous when auth is disabled.
        components: Shared pipeline components.
        image: Photo of the ingredient section.
        latitude: Where the photo was taken.
        longitude: Where the photo was taken.

    Returns:
        The analysis result exactly as returned by the model.
    """
    if image is None:
        raise MissingImageError()

    try:
        content = await image.read()
        if not content:
            raise MissingImageError()

        request = AnalysisRequest(
            image=content,
            caller=caller,
            location=Location(latitude=latitude, longitude=longitude),
        )
        outcome = await run_in_threadpool(components.pipeline.run, request)
    except ScanError:
        raise
    except Exception as exc:
        logger.exception("Analysis of %s failed", image.filename)
        raise ScanError(str(exc)) from exc

    return JSONResponse(content=outcome.result)


@app.get("/analyses", response_model=AnalysesResponse, responses=_ERROR_RESPONSES)
async def list_analyses(
    caller: Annotated[CallerIdentity, Depends(get_caller)],
    components: Annotated[Components, Depends(get_components)],
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> AnalysesResponse:
    """List the caller's stored analyses, newest first."""
    if components.store is None:
        return AnalysesResponse(analyses=[])
    documents = await run_in_threadpool(components.store.list_for_user, caller.uid, limit)
    return AnalysesResponse(analyses=documents)


auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


@auth_router.post("/verify", response_model=CallerResponse, responses=_ERROR_RESPONSES)
async def verify_token(
    caller: Annotated[CallerIdentity, Depends(get_caller)],
) -> CallerResponse:
    """Verify the bearer token and return the identity it carries."""
    return CallerResponse(uid=caller.uid, phone_number=caller.phone_number)


app.include_router(auth_router)
