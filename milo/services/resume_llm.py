from __future__ import annotations

import json
import logging
import os
import time
import uuid
from functools import lru_cache
from typing import TypeVar

from openai import OpenAI
from pydantic import BaseModel, ValidationError

from milo.analytics.db import log_ai_analysis_run

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


def resume_llm_enabled() -> bool:
    if not _env_bool("RESUME_LLM_ENABLED", True):
        return False
    provider = (os.getenv("AI_PROVIDER") or "openai").strip().lower()
    if provider != "openai":
        return False
    api_key = (os.getenv("OPENAI_API_KEY") or "").strip()
    return bool(api_key) and not _looks_like_placeholder(api_key)


@lru_cache(maxsize=1)
def _client() -> OpenAI:
    # Failures fall back to static defaults, so the client never retries.
    return OpenAI(
        api_key=(os.getenv("OPENAI_API_KEY") or "").strip(),
        base_url=(os.getenv("OPENAI_BASE_URL") or None),
        timeout=float(os.getenv("RESUME_LLM_TIMEOUT_S", "600")),
        max_retries=int(os.getenv("OPENAI_MAX_RETRIES", "0")),
    )


def model_name() -> str:
    return (os.getenv("AI_MODEL") or os.getenv("OPENAI_MODEL") or "gpt-4o-mini").strip()


def _log_ai_run(
    *,
    run_id: str,
    tool_slug: str,
    schema_valid: bool,
    status: str,
    latency_ms: int | None,
    error_code: str | None = None,
) -> None:
    try:
        log_ai_analysis_run(
            run_id=run_id,
            tool_slug=tool_slug or "unknown",
            model=model_name(),
            schema_valid=schema_valid,
            status=status,
            error_code=error_code,
            latency_ms=latency_ms,
        )
    except Exception:  # pragma: no cover - analytics must not break resume processing
        logger.debug("ai_run_logging_failed", exc_info=True)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _request_json(*, system_prompt: str, user_prompt: str, temperature: float, max_output_tokens: int) -> str:
    response = _client().chat.completions.create(
        model=model_name(),
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        temperature=temperature,
        response_format={"type": "json_object"},
        max_tokens=max_output_tokens,
    )
    return (response.choices[0].message.content if response.choices else "") or ""


def structured_completion(
    schema: type[ModelT],
    *,
    system_prompt: str,
    user_prompt: str,
    temperature: float = 0.2,
    max_output_tokens: int = 900,
    tool_slug: str = "unknown",
) -> ModelT | None:
    """One JSON-mode call validated against ``schema``.

    Returns ``None`` when generation is disabled, the provider fails, or the
    reply does not match the schema; callers substitute their own default.
    Each call writes exactly one ``ai_analysis_runs`` row.
    """
    run_id = uuid.uuid4().hex
    started = time.perf_counter()

    def finish(status: str, error_code: str | None = None, schema_valid: bool = False) -> None:
        _log_ai_run(
            run_id=run_id,
            tool_slug=tool_slug,
            schema_valid=schema_valid,
            status=status,
            error_code=error_code,
            latency_ms=_elapsed_ms(started),
        )

    if not resume_llm_enabled():
        finish("skipped", "llm_disabled")
        return None

    try:
        content = _request_json(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )
    except Exception as exc:  # noqa: BLE001 - static fallback is expected
        logger.warning("resume_llm_request_failed tool=%s model=%s: %s", tool_slug, model_name(), exc)
        finish("error", "llm_exception")
        return None

    if not content.strip():
        finish("empty", "empty_response")
        return None

    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        logger.warning("resume_llm_invalid_json tool=%s chars=%s: %s", tool_slug, len(content), exc)
        finish("invalid_json", "invalid_json")
        return None

    if not isinstance(parsed, dict):
        finish("invalid_schema", "not_an_object")
        return None

    try:
        result = schema.model_validate(parsed)
    except ValidationError as exc:
        logger.warning("resume_llm_schema_rejected tool=%s errors=%s", tool_slug, exc.error_count())
        finish("invalid_schema", "schema_mismatch")
        return None

    finish("success", schema_valid=True)
    return result
