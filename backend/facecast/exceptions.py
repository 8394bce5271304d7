from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import traceback
from .logger import logger


class FacecastBaseException(Exception):
    """Base exception for the face swap service"""
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(self.message)


class UnauthorizedError(FacecastBaseException):
    """Raised when the caller has neither a session nor an anonymous id"""
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, "UNAUTHORIZED", 401)


class GenerationNotFoundError(FacecastBaseException):
    """Raised when a generation is missing or not owned by the caller"""
    def __init__(self, generation_id: int):
        super().__init__(f"Generation {generation_id} not found", "GENERATION_NOT_FOUND", 404)


class ReferenceImageNotFoundError(FacecastBaseException):
    """Raised when a reference image is missing or not owned by the caller"""
    def __init__(self, image_id: int):
        super().__init__(f"Image {image_id} not found", "IMAGE_NOT_FOUND", 404)


class SubmissionNotFoundError(FacecastBaseException):
    """Raised when a character submission does not exist"""
    def __init__(self, submission_id: int):
        super().__init__(f"Submission {submission_id} not found", "SUBMISSION_NOT_FOUND", 404)


class InvalidStatusTransitionError(FacecastBaseException):
    """Raised when a client asks for a status change that is not allowed"""
    def __init__(self, generation_id: int, requested: str):
        super().__init__(
            f"Generation {generation_id} cannot be moved to '{requested}'",
            "INVALID_STATUS_TRANSITION",
            400,
        )


class BlobStorageError(FacecastBaseException):
    """Raised when blob storage operations fail"""
    def __init__(self, message: str = "Blob storage operation failed"):
        super().__init__(message, "BLOB_STORAGE_ERROR", 502)


class ProviderError(FacecastBaseException):
    """Raised when the video provider cannot be reached or times out"""
    def __init__(self, message: str = "Video provider request failed"):
        super().__init__(message, "PROVIDER_ERROR", 502)


class GenerationFailedError(FacecastBaseException):
    """Raised by the direct trigger after the generation row was marked failed"""
    def __init__(self, generation_id: int, message: str):
        self.generation_id = generation_id
        super().__init__(message, "GENERATION_FAILED", 502)


async def facecast_exception_handler(request: Request, exc: FacecastBaseException):
    """Handle custom application exceptions"""
    logger.error(
        f"Application exception: {exc.code} - {exc.message}",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "request_path": request.url.path,
        }
    )
    content = {
        "error": exc.code,
        "message": exc.message,
        "status_code": exc.status_code,
    }
    if isinstance(exc, GenerationFailedError):
        content["generationId"] = exc.generation_id
    return JSONResponse(status_code=exc.status_code, content=content)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Route-level HTTP errors, including unknown paths and methods"""
    logger.warning(
        f"HTTP {exc.status_code}: {exc.detail}",
        extra={
            "http_status_code": exc.status_code,
            "http_detail": exc.detail,
            "request_path": request.url.path,
        }
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTP_ERROR",
            "message": exc.detail,
            "status_code": exc.status_code,
        },
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed or missing fields are a plain 400"""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
    logger.warning(
        f"Validation error: {message}",
        extra={"request_path": request.url.path, "error_count": len(errors)}
    )
    return JSONResponse(
        status_code=400,
        content={
            "error": "VALIDATION_ERROR",
            "message": message,
            "status_code": 400,
        }
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions"""
    logger.error(
        f"Unhandled exception: {type(exc).__name__} - {str(exc)}",
        extra={
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
            "request_path": request.url.path,
            "exc_traceback": traceback.format_exc(),
        }
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_SERVER_ERROR",
            "message": "An internal error occurred. Please try again later.",
        }
    )
