from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import httpx
import time
import uuid
from .config import settings
from .db import init_models
from .logger import logger
from .schemas import HealthResponse
from .storage import BlobStore
from .inference.fal_runner import FalVideoClient
from .services.notifications import Mailer
from .routes import characters, generate, generations, reference_images, stats, uploads
from .exceptions import (
    FacecastBaseException,
    facecast_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Face Swap API")
    try:
        await init_models()
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    http = httpx.AsyncClient()
    app.state.http = http
    app.state.blob_store = BlobStore.from_settings(settings)
    app.state.video_provider = FalVideoClient.from_settings(http, settings)
    app.state.mailer = Mailer.from_settings(settings)
    try:
        yield
    finally:
        logger.info("Shutting down Face Swap API")
        await http.aclose()


app = FastAPI(
    title="Face Swap API",
    version="1.0.0",
    description="Record a clip, pick a character, get a face-swapped video",
    lifespan=lifespan,
)

app.add_exception_handler(FacecastBaseException, facecast_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
    start_time = time.time()

    logger.info(
        f"Request: {request.method} {request.url.path}",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
        }
    )

    response = await call_next(request)

    duration = time.time() - start_time
    response.headers["X-Request-ID"] = request_id
    logger.info(
        f"Response: {response.status_code}",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration * 1000, 2),
        }
    )

    return response

app.include_router(generations.router)
app.include_router(generate.router)
app.include_router(reference_images.router)
app.include_router(uploads.router)
app.include_router(characters.router)
app.include_router(stats.router)

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(status="ok", service="facecast")
