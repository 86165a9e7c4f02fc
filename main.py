from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from salonbook.api.api_v1.api import router as api_router
from salonbook.core.auth import TokenVerifier
from salonbook.core.config import Settings, settings as default_settings
from salonbook.core.exceptions import BookingError
from salonbook.db.memory import InMemoryBookingStore
from salonbook.db.mongodb import MongoBookingStore
from salonbook.db.store import BookingStore

logger = logging.getLogger(__name__)

async def build_store(settings: Settings) -> BookingStore:
    """Construct the configured store once at process start."""
    if settings.STORE_BACKEND == "memory":
        logger.warning("Using in-memory store; data is lost on restart")
        return InMemoryBookingStore()
    return await MongoBookingStore.connect(settings)

def create_app(settings: Settings = default_settings, store: Optional[BookingStore] = None) -> FastAPI:
    """
    Build the API with explicit dependencies.

    When no store is given one is built from settings during start-up and
    closed at shutdown.
    """
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s | %(levelname)-8s | %(name)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_store = store is None
        if owns_store:
            app.state.store = await build_store(settings)
        logger.info(f"Starting {settings.APP_NAME}")
        yield
        if owns_store:
            await app.state.store.close()
        logger.info(f"Shutting down {settings.APP_NAME}")

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="Salon booking API",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.verifier = TokenVerifier.from_settings(settings)
    if store is not None:
        app.state.store = store

    # Set up CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # Report the first problem only, e.g. "customerEmail: value is not a valid email address"
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"] if part != "body")
        message = f"{location}: {first['msg']}" if location else first["msg"]
        return JSONResponse(status_code=422, content={"error": message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # Include routers
    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get(f"{settings.API_PREFIX}/health")
    async def health_check():
        return {
            "status": "OK",
            "message": "Salon booking API is running!",
            "timestamp": datetime.utcnow().isoformat(),
        }

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
