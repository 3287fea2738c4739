import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from pydantic import ValidationError

from milo.core.config import settings
from milo.core.errors import InvalidInputError, ResumeProcessingError, unexpected_error_response
from milo.core.rate_limit import rate_limit
from milo.core.security import require_user
from milo.schemas.resume import ProcessResumeRequest, ProcessResumeResponse, ResumeCapabilities
from milo.services.resume_pipeline import process_resume

logger = logging.getLogger(__name__)

router = APIRouter()

PROCESS_RESUME_PATH = "/onboarding/process-resume"


def _requested_resume_url(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        raise InvalidInputError("Resume URL is required")
    try:
        return ProcessResumeRequest.model_validate(payload).resume_url
    except ValidationError as exc:
        raise InvalidInputError("Invalid resume URL.") from exc


def _max_file_size_label() -> str:
    return f"{settings.resume_max_bytes // (1024 * 1024)}MB"


@router.post(PROCESS_RESUME_PATH, response_model=ProcessResumeResponse)
@rate_limit()
def onboarding_process_resume(
    request: Request,
    payload: Any = Body(default=None),
    user_id: str = Depends(require_user),
):
    _ = request
    try:
        return process_resume(user_id=user_id, resume_url=_requested_resume_url(payload))
    except ResumeProcessingError:
        raise
    except Exception as exc:
        logger.exception("resume_processing_unexpected_error")
        return unexpected_error_response(exc, include_details=not settings.is_production)


@router.get(PROCESS_RESUME_PATH, response_model=ResumeCapabilities)
def onboarding_resume_capabilities():
    return ResumeCapabilities(
        message="Resume API is working",
        endpoints={
            "process": f"/v1{PROCESS_RESUME_PATH}",
            "profile": "/v1/user/profile/resume",
        },
        supported_formats=["PDF", "DOCX", "TXT"],
        max_file_size=_max_file_size_label(),
    )
