from __future__ import annotations

from datetime import datetime, timezone
from io import BytesIO
import logging
import re
from urllib.parse import unquote, urlparse

from milo.core.errors import ExtractionError, UnextractableError
from milo.parsing.models import DocumentFormat, RawDocument

logger = logging.getLogger(__name__)

# Extracted text must be strictly longer than this to be accepted by a decoder.
MIN_TEXT_CHARS = 50

TOO_SHORT_MESSAGE = "Resume appears to be empty or too short. Please upload a complete resume."
UNSUPPORTED_MESSAGE = "Unable to extract text from file. Please upload a PDF, DOCX, or TXT file."

_CONTENT_TYPE_MARKERS: tuple[tuple[str, DocumentFormat], ...] = (
    ("pdf", "pdf"),
    ("wordprocessingml", "docx"),
    ("text", "text"),
)
_URL_SUFFIXES: tuple[tuple[str, DocumentFormat], ...] = (
    (".pdf", "pdf"),
    (".docx", "docx"),
    (".txt", "text"),
)
_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E\n\r]")
_WHITESPACE_RE = re.compile(r"\s+")
_PERCENT_ESCAPE_RE = re.compile(r"%[0-9A-Fa-f]{2}")


def detect_format(content_type: str, url: str) -> DocumentFormat:
    """Pick a decoder from the declared content type, falling back to the URL suffix."""
    declared = (content_type or "").lower()
    for marker, fmt in _CONTENT_TYPE_MARKERS:
        if marker in declared:
            return fmt
    path = (urlparse(url or "").path or "").lower()
    for suffix, fmt in _URL_SUFFIXES:
        if path.endswith(suffix):
            return fmt
    return "unknown"


def pdf_placeholder_text(size_bytes: int, uploaded_at: datetime | None = None) -> str:
    timestamp = (uploaded_at or datetime.now(timezone.utc)).isoformat()
    return (
        f"[Resume PDF Uploaded - {size_bytes / 1024:.2f} KB]\n\n"
        "Note: The PDF could not be automatically parsed. This might be because:\n"
        "- The PDF contains scanned images instead of text\n"
        "- The PDF is password protected\n"
        "- The PDF uses an unsupported encoding\n\n"
        "For best results, please upload a Word document (.docx) or text file (.txt).\n\n"
        f"Upload time: {timestamp}"
    )


def _collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _decode_run(text: str) -> str:
    """Undo URI escaping in a text run; literal percent signs stay as they are."""
    if not _PERCENT_ESCAPE_RE.search(text):
        return text
    try:
        return unquote(text, errors="strict")
    except UnicodeDecodeError:
        return text


def _read_pdf_pages(content: bytes) -> list[str]:
    from pypdf import PdfReader

    reader = PdfReader(BytesIO(content))
    pages: list[str] = []
    for page in reader.pages:
        runs: list[str] = []

        def collect(text, _cm, _tm, _font_dict, _font_size, runs=runs):
            if text and text.strip():
                runs.append(_decode_run(text.strip()))

        page.extract_text(visitor_text=collect)
        pages.append(" ".join(runs))
    return pages


def extract_pdf_text(content: bytes) -> str:
    """Decode a PDF; scanned or broken files degrade to a placeholder instead of failing."""
    try:
        text = _collapse_whitespace(" ".join(_read_pdf_pages(content)))
    except Exception as exc:  # noqa: BLE001 - any decoder failure degrades to the placeholder
        logger.warning("resume_pdf_parse_failed size=%s: %s", len(content), exc)
        return pdf_placeholder_text(len(content))
    if len(text) <= MIN_TEXT_CHARS:
        logger.info("resume_pdf_text_insufficient size=%s chars=%s", len(content), len(text))
        return pdf_placeholder_text(len(content))
    return text


def extract_docx_text(content: bytes) -> str:
    try:
        from docx import Document

        document = Document(BytesIO(content))
        parts = [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    parts.append(" ".join(cells))
    except Exception as exc:
        logger.warning("resume_docx_parse_failed size=%s: %s", len(content), exc)
        raise ExtractionError("Failed to parse DOCX file.") from exc
    return "\n".join(parts)


def decode_plain_text(content: bytes) -> str:
    return content.decode("utf-8", errors="replace")


def extract_printable_text(content: bytes) -> str:
    """Last resort for unknown or near-empty documents: keep printable ASCII only."""
    cleaned = _NON_PRINTABLE_RE.sub("", decode_plain_text(content)).strip()
    if len(cleaned) > MIN_TEXT_CHARS:
        logger.info("resume_text_fallback_used chars=%s", len(cleaned))
        return cleaned
    raise UnextractableError(TOO_SHORT_MESSAGE if cleaned else UNSUPPORTED_MESSAGE)


def extract_text(document: RawDocument) -> str:
    fmt = detect_format(document.content_type, document.url)
    if fmt == "pdf":
        return extract_pdf_text(document.content)

    text = ""
    if fmt == "docx":
        text = extract_docx_text(document.content)
    elif fmt == "text":
        text = decode_plain_text(document.content)

    if len(text.strip()) > MIN_TEXT_CHARS:
        return text
    return extract_printable_text(document.content)
