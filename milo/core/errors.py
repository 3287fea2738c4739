from __future__ import annotations

import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"
INVALID_REQUEST_MESSAGE = "Invalid request"


class ResumeProcessingError(Exception):
    """Base for every failure that is reported to the caller as ``{"error": ...}``."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "resume_processing_error"

    def __init__(self, message: str, *, code: str | None = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details


class AuthError(ResumeProcessingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "unauthorized"


class InvalidInputError(ResumeProcessingError):
    default_code = "invalid_input"


class FetchError(ResumeProcessingError):
    default_code = "fetch_failed"


class DownloadError(ResumeProcessingError):
    default_code = "download_failed"


class SizeLimitError(ResumeProcessingError):
    default_code = "file_too_large"


class ExtractionError(ResumeProcessingError):
    default_code = "extraction_failed"


class UnextractableError(ResumeProcessingError):
    default_code = "unextractable"


class NotFoundError(ResumeProcessingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


async def resume_error_handler(request: Request, exc: ResumeProcessingError) -> JSONResponse:
    _ = request
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("request_validation_failed path=%s errors=%s", request.url.path, len(exc.errors()))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": INVALID_REQUEST_MESSAGE})


def unexpected_error_response(exc: Exception, *, include_details: bool) -> JSONResponse:
    content: dict[str, Any] = {"error": UNEXPECTED_ERROR_MESSAGE}
    if include_details:
        content["details"] = str(exc) or exc.__class__.__name__
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)
