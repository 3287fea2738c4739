from __future__ import annotations

import argparse
import json
import mimetypes
import sys
from pathlib import Path

from milo.core.config import settings
from milo.core.errors import ResumeProcessingError
from milo.parsing.extract import detect_format, extract_text
from milo.parsing.models import RawDocument
from milo.parsing.sanitize import sanitize_resume_text
from milo.services.resume_extraction import extract_resume_fields, generate_user_summary
from milo.services.resume_fetcher import fetch_resume


def _load_document(source: str) -> RawDocument:
    path = Path(source)
    if path.exists():
        content_type = mimetypes.guess_type(path.name)[0] or ""
        return RawDocument(content=path.read_bytes(), content_type=content_type, url=path.as_uri())
    return fetch_resume(
        source,
        timeout_s=settings.resume_fetch_timeout_s,
        max_bytes=settings.resume_max_bytes,
        block_private_hosts=settings.resume_block_private_hosts,
    )


def main() -> int:
    parser = argparse.ArgumentParser(description="Run resume text extraction on a local file or URL.")
    parser.add_argument("source", help="Path to a .pdf/.docx/.txt file, or a resume URL")
    parser.add_argument(
        "--structured",
        action="store_true",
        help="Also run structured extraction and the profile summary (needs OPENAI_API_KEY).",
    )
    parser.add_argument("--preview-chars", type=int, default=400, help="Characters of text to print")
    args = parser.parse_args()

    try:
        document = _load_document(args.source)
        text = extract_text(document)
    except ResumeProcessingError as exc:
        print(json.dumps({"error": exc.message, "code": exc.code}), file=sys.stderr)
        return 1

    extracted = sanitize_resume_text(text, max_chars=settings.resume_max_text_chars)
    report = {
        "format": detect_format(document.content_type, document.url),
        "size_bytes": document.size,
        "content_type": document.content_type or "unknown",
        "characters": len(extracted.text),
        "readability": extracted.readability,
        "readable": extracted.readable,
        "truncated": extracted.truncated,
        "preview": extracted.text[: max(0, args.preview_chars)],
    }
    if args.structured:
        resume_data, fields_fallback = extract_resume_fields(extracted.text)
        user_summary, summary_fallback = generate_user_summary(resume_data)
        report["extractedData"] = resume_data.to_wire()
        report["userSummary"] = user_summary.to_wire()
        report["fallbacks"] = {"fields": fields_fallback, "summary": summary_fallback}

    print(json.dumps(report, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
