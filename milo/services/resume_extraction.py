from __future__ import annotations

import json
import logging

from milo.schemas.resume import ResumeData, UserSummary
from milo.services import resume_llm

logger = logging.getLogger(__name__)

RESUME_FIELDS_SLUG = "resume-fields"
USER_SUMMARY_SLUG = "resume-user-summary"

DEFAULT_RESUME_SUMMARY = "Resume uploaded successfully. Manual review recommended."
DEFAULT_PROFESSIONAL_SUMMARY = "Professional seeking new opportunities."
DEFAULT_CAREER_FOCUS = "Career development and growth"
DEFAULT_VALUE_PROPOSITION = "Dedicated professional with diverse skills and experience."
MAX_KEY_STRENGTHS = 5

RESUME_FIELDS_SYSTEM_PROMPT = """You extract structured data from resumes for a career advisor.
Return one JSON object with exactly these keys:
- "summary": a comprehensive 2-3 sentence summary of the candidate
- "skills": list of technical and soft skills (strings)
- "experience": list of {"title", "company", "duration", "description"}
- "education": list of {"degree", "institution", "year", "gpa" (optional)}
- "projects": list of {"name", "description", "technologies": [strings]}
- "achievements": list of key achievements (strings)
- "interests": list of professional interests (strings)
Use empty lists when a section is absent. Do not invent facts."""

RESUME_FIELDS_USER_PROMPT = """Extract structured data from this resume.
If the text appears garbled or contains encoding issues, do your best to extract meaningful information.
Focus on identifying:
- Names (look for capitalized words that could be names)
- Email addresses (anything with @ symbol)
- Phone numbers (numeric patterns)
- Skills (technical terms, programming languages, tools)
- Companies and job titles
- Education institutions

If the resume text is completely unreadable, return minimal placeholder data.

Resume text:
{resume_text}

Return structured JSON with all available information."""

USER_SUMMARY_SYSTEM_PROMPT = """You write short professional profiles for job seekers.
Return one JSON object with exactly these keys:
- "professionalSummary": string
- "keyStrengths": list of at most 5 strings
- "careerFocus": string
- "valueProposition": string"""

USER_SUMMARY_USER_PROMPT = """Create a professional summary based on this resume data:
{resume_json}

Generate a compelling summary that highlights their unique value."""


def default_resume_data() -> ResumeData:
    return ResumeData(summary=DEFAULT_RESUME_SUMMARY, skills=[], experience=[], education=[])


def default_user_summary(resume_data: ResumeData | None = None) -> UserSummary:
    skills = list(resume_data.skills) if resume_data else []
    summary = resume_data.summary if resume_data else ""
    return UserSummary(
        professional_summary=summary or DEFAULT_PROFESSIONAL_SUMMARY,
        key_strengths=skills[:MAX_KEY_STRENGTHS],
        career_focus=DEFAULT_CAREER_FOCUS,
        value_proposition=DEFAULT_VALUE_PROPOSITION,
    )


def extract_resume_fields(resume_text: str) -> tuple[ResumeData, bool]:
    """Return the structured resume and whether the static default was used."""
    data = resume_llm.structured_completion(
        ResumeData,
        system_prompt=RESUME_FIELDS_SYSTEM_PROMPT,
        user_prompt=RESUME_FIELDS_USER_PROMPT.format(resume_text=resume_text),
        temperature=0.1,
        max_output_tokens=2000,
        tool_slug=RESUME_FIELDS_SLUG,
    )
    if data is None:
        logger.warning("resume_fields_fallback text_chars=%s", len(resume_text))
        return default_resume_data(), True
    return data, False


def generate_user_summary(resume_data: ResumeData) -> tuple[UserSummary, bool]:
    summary = resume_llm.structured_completion(
        UserSummary,
        system_prompt=USER_SUMMARY_SYSTEM_PROMPT,
        user_prompt=USER_SUMMARY_USER_PROMPT.format(
            resume_json=json.dumps(resume_data.to_wire(), indent=2, ensure_ascii=False)
        ),
        temperature=0.3,
        max_output_tokens=500,
        tool_slug=USER_SUMMARY_SLUG,
    )
    if summary is None:
        logger.warning("resume_summary_fallback skills=%s", len(resume_data.skills))
        return default_user_summary(resume_data), True
    return summary, False
