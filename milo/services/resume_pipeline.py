"""Resume ingestion: fetch, extract, sanitize, structure, persist.

Only fetching and text extraction can fail the request. Structured extraction
and persistence substitute defaults or log, so a caller that got past text
extraction always receives a successful response.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import hashlib
import logging
import time
import uuid

import httpx

from milo.analytics.db import log_resume_processing_run
from milo.core.config import settings
from milo.core.errors import ResumeProcessingError, UnextractableError
from milo.db.users import save_resume_record
from milo.parsing.extract import MIN_TEXT_CHARS, TOO_SHORT_MESSAGE, detect_format, extract_text
from milo.parsing.sanitize import sanitize_resume_text
from milo.schemas.resume import FileMetadata, ProcessResumeResponse, ResumeRecord
from milo.services.resume_extraction import extract_resume_fields, generate_user_summary
from milo.services.resume_fetcher import fetch_resume

logger = logging.getLogger(__name__)


@dataclass
class _RunStats:
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    started: float = field(default_factory=time.perf_counter)
    document_format: str | None = None
    size_bytes: int | None = None
    text_chars: int | None = None
    readability: float | None = None
    truncated: bool = False
    fields_fallback: bool = False
    summary_fallback: bool = False
    persisted: bool = False


def _short_hash(value: str | None) -> str:
    normalized = (value or "").strip()
    if not normalized:
        return ""
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:12]


def _record_run(stats: _RunStats, *, user_hash: str, status: str, error_code: str | None = None) -> None:
    try:
        log_resume_processing_run(
            run_id=stats.run_id,
            user_hash=user_hash,
            status=status,
            error_code=error_code,
            document_format=stats.document_format,
            size_bytes=stats.size_bytes,
            text_chars=stats.text_chars,
            readability=stats.readability,
            truncated=stats.truncated,
            fields_fallback=stats.fields_fallback,
            summary_fallback=stats.summary_fallback,
            persisted=stats.persisted,
            latency_ms=int((time.perf_counter() - stats.started) * 1000),
        )
    except Exception:  # pragma: no cover - analytics must not break resume processing
        logger.debug("resume_run_logging_failed", exc_info=True)


def _persist(user_id: str, record: ResumeRecord, *, user_hash: str) -> bool:
    try:
        save_resume_record(user_id, record)
    except Exception as exc:  # noqa: BLE001 - the caller still gets the extracted data
        logger.warning("resume_persist_failed user=%s: %s", user_hash, exc, exc_info=True)
        return False
    return True


def process_resume(
    *,
    user_id: str,
    resume_url: str | None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProcessResumeResponse:
    user_hash = _short_hash(user_id)
    stats = _RunStats()
    logger.info("resume_processing_started user=%s run=%s", user_hash, stats.run_id)

    try:
        document = fetch_resume(
            resume_url,
            timeout_s=settings.resume_fetch_timeout_s,
            max_bytes=settings.resume_max_bytes,
            block_private_hosts=settings.resume_block_private_hosts,
            transport=transport,
        )
        stats.size_bytes = document.size
        stats.document_format = detect_format(document.content_type, document.url)

        text = extract_text(document)
        if len(text.strip()) < MIN_TEXT_CHARS:
            raise UnextractableError(TOO_SHORT_MESSAGE)
    except ResumeProcessingError as exc:
        logger.info("resume_processing_rejected user=%s code=%s", user_hash, exc.code)
        _record_run(stats, user_hash=user_hash, status="rejected", error_code=exc.code)
        raise
    except Exception as exc:
        _record_run(stats, user_hash=user_hash, status="error", error_code=type(exc).__name__)
        raise

    try:
        extracted = sanitize_resume_text(text, max_chars=settings.resume_max_text_chars)
        stats.text_chars = len(extracted.text)
        stats.readability = extracted.readability
        stats.truncated = extracted.truncated

        resume_data, stats.fields_fallback = extract_resume_fields(extracted.text)
        user_summary, stats.summary_fallback = generate_user_summary(resume_data)

        record = ResumeRecord(
            extracted_data=resume_data,
            user_summary=user_summary,
            processed_at=datetime.now(timezone.utc).isoformat(),
            file_metadata=FileMetadata(size=document.size, type=document.content_type or "unknown"),
        )
    except Exception as exc:
        _record_run(stats, user_hash=user_hash, status="error", error_code=type(exc).__name__)
        raise

    stats.persisted = _persist(user_id, record, user_hash=user_hash)

    _record_run(stats, user_hash=user_hash, status="success")
    logger.info(
        "resume_processing_completed user=%s run=%s format=%s fields_fallback=%s summary_fallback=%s persisted=%s",
        user_hash,
        stats.run_id,
        stats.document_format,
        stats.fields_fallback,
        stats.summary_fallback,
        stats.persisted,
    )
    return ProcessResumeResponse(
        extracted_data=resume_data,
        user_summary=user_summary,
        persisted=stats.persisted,
    )
