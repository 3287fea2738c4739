from __future__ import annotations

import logging
import re

from milo.parsing.models import ExtractedText

logger = logging.getLogger(__name__)

MIN_READABILITY = 0.5
DEFAULT_MAX_TEXT_CHARS = 10000
UNREADABLE_PLACEHOLDER = (
    "[PDF contains unreadable content - likely a scanned image. "
    "Please upload a text-based PDF or Word document.]"
)

_READABLE_CHAR_RE = re.compile(r"[A-Za-z0-9\s]")


def readability_ratio(text: str) -> float:
    if not text:
        return 0.0
    return len(_READABLE_CHAR_RE.findall(text)) / len(text)


def sanitize_resume_text(text: str, *, max_chars: int = DEFAULT_MAX_TEXT_CHARS) -> ExtractedText:
    """Replace garbled text with a warning and cap the length sent to the model.

    The readability decision is all-or-nothing: below ``MIN_READABILITY`` the
    original text is discarded. Truncation is a hard cut at ``max_chars``.
    """
    ratio = readability_ratio(text)
    readable = ratio >= MIN_READABILITY
    cleaned = text
    if not readable:
        logger.warning("resume_text_unreadable ratio=%.3f chars=%s", ratio, len(text))
        cleaned = UNREADABLE_PLACEHOLDER

    truncated = len(cleaned) > max_chars
    if truncated:
        logger.info("resume_text_truncated from=%s to=%s", len(cleaned), max_chars)
        cleaned = cleaned[:max_chars]

    return ExtractedText(
        text=cleaned,
        readability=round(ratio, 4),
        readable=readable,
        truncated=truncated,
        source_chars=len(text),
    )
