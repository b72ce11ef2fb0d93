from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request, status

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import settings, setup_logging
from app.database import close_db, init_db
from app.dependencies import get_store_provider
from app.schemas import ErrorDetail, StandardErrorResponse
from app.services.storage_service import (
    PersistentStore,
    RecordNotFoundError,
    StorageReadError,
    create_backend,
)

from app.routers import main_router


setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting EPG Changes Tracker...")

    try:
        if settings.storage_backend == "sqlite":
            logger.info("Initializing database...")
            await init_db()

        get_store_provider().register(PersistentStore(create_backend(settings.storage_backend)))
        logger.info("EPG Changes Tracker started successfully (storage: %s)", settings.storage_backend)
    except Exception as e:
        logger.error(f"Failed to start EPG Changes Tracker: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down EPG Changes Tracker...")

    try:
        await close_db()
    except Exception as e:
        logger.error(f"Error during database shutdown: {e}", exc_info=True)

    get_store_provider().reset()
    logger.info("EPG Changes Tracker stopped")


app = FastAPI(
    title="EPG Changes Tracker",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(main_router)


@app.exception_handler(RecordNotFoundError)
async def not_found_exception_handler(request: Request, exc: RecordNotFoundError):
    """Map missing records to a standard 404 error body"""
    logger.warning(f"{request.method} {request.url.path}: {exc}")
    response = StandardErrorResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        error=ErrorDetail(
            code="NOT_FOUND",
            message=str(exc),
            context={"kind": exc.kind, "id": exc.record_id},
        ),
    )
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=response.model_dump())


@app.exception_handler(StorageReadError)
async def storage_read_exception_handler(request: Request, exc: StorageReadError):
    """Refuse the write when stored records could not be loaded"""
    logger.error(f"{request.method} {request.url.path}: {exc}")
    response = StandardErrorResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        error=ErrorDetail(
            code="STORAGE_UNAVAILABLE",
            message=str(exc),
            context={"key": exc.key},
        ),
    )
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=response.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors with details"""
    logger.error(f"Validation error for {request.method} {request.url.path}")
    logger.error(f"Validation details: {exc.errors()}")

    try:
        body = await request.body()
        logger.error(f"Request body: {body.decode('utf-8')}")

    except (ValueError, UnicodeDecodeError, RuntimeError):
        logger.error("Could not read request body")

    # Create a properly serializable error response
    errors = []
    for error in exc.errors():
        error_dict = {
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "input": str(error.get("input", ""))[:100]
        }
        errors.append(error_dict)

    return JSONResponse(
        status_code=422,
        content={
            "detail": errors
        }
    )
