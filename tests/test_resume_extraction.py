import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

_TEST_DATA_DIR = Path(tempfile.gettempdir()) / "milo-tests"
os.environ.setdefault("USERS_DB_PATH", str(_TEST_DATA_DIR / "users.db"))
os.environ.setdefault("ANALYTICS_DB_PATH", str(_TEST_DATA_DIR / "analytics.db"))
os.environ.setdefault("RESUME_LLM_ENABLED", "0")

from milo.analytics.db import clear_analytics, get_latest_ai_runs  # noqa: E402
from milo.schemas.resume import ResumeData  # noqa: E402
from milo.services import resume_llm  # noqa: E402
from milo.services.resume_extraction import (  # noqa: E402
    DEFAULT_CAREER_FOCUS,
    DEFAULT_PROFESSIONAL_SUMMARY,
    DEFAULT_RESUME_SUMMARY,
    RESUME_FIELDS_SLUG,
    default_resume_data,
    default_user_summary,
    extract_resume_fields,
    generate_user_summary,
)

RESUME_PAYLOAD = {
    "summary": "Backend engineer with five years of Python experience.",
    "skills": ["Python", "Go", "PostgreSQL"],
    "experience": [
        {"title": "Software Engineer", "company": "Acme Corp", "duration": "2020-2023", "description": "APIs"}
    ],
    "education": [{"degree": "BSc Computer Science", "institution": "State University", "year": 2019}],
}

SUMMARY_PAYLOAD = {
    "professionalSummary": "Pragmatic backend engineer.",
    "keyStrengths": ["Python", "APIs"],
    "careerFocus": "Platform engineering",
    "valueProposition": "Ships reliable services quickly.",
}


LLM_ENV = {"RESUME_LLM_ENABLED": "1", "AI_PROVIDER": "openai", "OPENAI_API_KEY": "sk-test-key"}


def _completion(content: str | None):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client_replying(*contents, error=None):
    client = MagicMock()
    if error is not None:
        client.chat.completions.create.side_effect = error
    else:
        client.chat.completions.create.side_effect = [
            _completion(content if isinstance(content, str) else json.dumps(content)) for content in contents
        ]
    return client


def _resume(**overrides) -> ResumeData:
    fields = {"summary": "", "skills": [], "experience": [], "education": []}
    fields.update(overrides)
    return ResumeData(**fields)


class DefaultFactoryTests(unittest.TestCase):
    def test_default_resume_data_has_empty_sections(self):
        data = default_resume_data()
        self.assertEqual(data.summary, DEFAULT_RESUME_SUMMARY)
        for section in (data.skills, data.experience, data.education, data.projects, data.achievements):
            self.assertEqual(section, [])

    def test_default_summary_uses_first_five_skills(self):
        summary = default_user_summary(_resume(skills=["a", "b", "c", "d", "e", "f"]))
        self.assertEqual(summary.key_strengths, ["a", "b", "c", "d", "e"])
        self.assertEqual(summary.professional_summary, DEFAULT_PROFESSIONAL_SUMMARY)
        self.assertEqual(summary.career_focus, DEFAULT_CAREER_FOCUS)

    def test_default_summary_keeps_resume_summary(self):
        summary = default_user_summary(_resume(summary="Analyst."))
        self.assertEqual(summary.professional_summary, "Analyst.")
        self.assertEqual(summary.key_strengths, [])


class StructuredExtractionTests(unittest.TestCase):
    def setUp(self):
        clear_analytics()

    def _with_replies(self, client):
        env = patch.dict(os.environ, LLM_ENV)
        env.start()
        self.addCleanup(env.stop)
        client_patch = patch.object(resume_llm, "_client", return_value=client)
        client_patch.start()
        self.addCleanup(client_patch.stop)

    def test_disabled_generation_falls_back(self):
        with patch.dict(os.environ, {"RESUME_LLM_ENABLED": "0"}):
            data, data_fallback = extract_resume_fields("Some resume text")
            summary, summary_fallback = generate_user_summary(data)
        self.assertTrue(data_fallback)
        self.assertTrue(summary_fallback)
        self.assertEqual(data.summary, DEFAULT_RESUME_SUMMARY)
        self.assertEqual(summary.key_strengths, [])

    def test_valid_payloads_are_parsed(self):
        client = _client_replying(RESUME_PAYLOAD, SUMMARY_PAYLOAD)
        self._with_replies(client)
        data, data_fallback = extract_resume_fields("resume text here")
        summary, summary_fallback = generate_user_summary(data)

        self.assertFalse(data_fallback)
        self.assertFalse(summary_fallback)
        self.assertEqual(data.skills, ["Python", "Go", "PostgreSQL"])
        self.assertEqual(data.education[0].year, "2019")
        self.assertEqual(data.projects, [])
        self.assertEqual(summary.career_focus, "Platform engineering")

        first_call, second_call = client.chat.completions.create.call_args_list
        self.assertIn("resume text here", first_call.kwargs["messages"][1]["content"])
        self.assertEqual(first_call.kwargs["temperature"], 0.1)
        self.assertEqual(first_call.kwargs["max_tokens"], 2000)
        self.assertEqual(first_call.kwargs["response_format"], {"type": "json_object"})
        self.assertIn('"skills": [', second_call.kwargs["messages"][1]["content"])
        self.assertEqual(second_call.kwargs["max_tokens"], 500)

    def test_null_optional_sections_become_empty_lists(self):
        payload = dict(RESUME_PAYLOAD, projects=None, achievements=None, interests=None)
        self._with_replies(_client_replying(payload))
        data, fell_back = extract_resume_fields("text")
        self.assertFalse(fell_back)
        self.assertEqual(data.projects, [])
        self.assertEqual(data.interests, [])

    def test_empty_object_falls_back(self):
        self._with_replies(_client_replying({}))
        data, fell_back = extract_resume_fields("x" * 100)
        self.assertTrue(fell_back)
        self.assertEqual(data.summary, DEFAULT_RESUME_SUMMARY)

    def test_missing_required_sections_fall_back(self):
        for missing in ("summary", "skills", "experience", "education"):
            with self.subTest(missing=missing):
                payload = {key: value for key, value in RESUME_PAYLOAD.items() if key != missing}
                with patch.dict(os.environ, LLM_ENV), patch.object(
                    resume_llm, "_client", return_value=_client_replying(payload)
                ):
                    data, fell_back = extract_resume_fields("text")
                self.assertTrue(fell_back)
                self.assertEqual(data.summary, DEFAULT_RESUME_SUMMARY)

    def test_incomplete_experience_entry_falls_back(self):
        payload = dict(RESUME_PAYLOAD, experience=[{"title": "Engineer", "company": "Acme"}])
        self._with_replies(_client_replying(payload))
        _, fell_back = extract_resume_fields("text")
        self.assertTrue(fell_back)

    def test_null_required_section_falls_back(self):
        self._with_replies(_client_replying(dict(RESUME_PAYLOAD, skills=None)))
        _, fell_back = extract_resume_fields("text")
        self.assertTrue(fell_back)

    def test_schema_mismatch_falls_back(self):
        self._with_replies(_client_replying(dict(RESUME_PAYLOAD, skills="Python, Go")))
        data, fell_back = extract_resume_fields("text")
        self.assertTrue(fell_back)
        self.assertEqual(data.summary, DEFAULT_RESUME_SUMMARY)

    def test_too_many_strengths_falls_back_to_skills(self):
        payload = dict(SUMMARY_PAYLOAD, keyStrengths=["1", "2", "3", "4", "5", "6"])
        self._with_replies(_client_replying(payload))
        summary, fell_back = generate_user_summary(_resume(summary="Engineer.", skills=["Python", "Go"]))
        self.assertTrue(fell_back)
        self.assertEqual(summary.key_strengths, ["Python", "Go"])
        self.assertEqual(summary.professional_summary, "Engineer.")

    def test_schema_rejection_is_logged_once(self):
        self._with_replies(_client_replying({}))
        extract_resume_fields("text")
        runs = get_latest_ai_runs()
        self.assertEqual(len(runs), 1)
        self.assertEqual(runs[0]["tool_slug"], RESUME_FIELDS_SLUG)
        self.assertEqual(runs[0]["status"], "invalid_schema")
        self.assertEqual(runs[0]["schema_valid"], 0)


@patch.dict(os.environ, LLM_ENV)
class StructuredCompletionTests(unittest.TestCase):
    def setUp(self):
        clear_analytics()

    def _complete(self, client):
        with patch.object(resume_llm, "_client", return_value=client):
            return resume_llm.structured_completion(
                ResumeData, system_prompt="s", user_prompt="u", tool_slug="test"
            )

    def test_enabled_only_with_real_openai_key(self):
        self.assertTrue(resume_llm.resume_llm_enabled())
        with patch.dict(os.environ, {"OPENAI_API_KEY": "your_openai_key"}):
            self.assertFalse(resume_llm.resume_llm_enabled())
        with patch.dict(os.environ, {"AI_PROVIDER": "gemini"}):
            self.assertFalse(resume_llm.resume_llm_enabled())

    def test_valid_reply_is_returned_and_logged_once(self):
        result = self._complete(_client_replying(RESUME_PAYLOAD))
        self.assertIsInstance(result, ResumeData)
        runs = get_latest_ai_runs()
        self.assertEqual([(run["status"], run["schema_valid"]) for run in runs], [("success", 1)])

    def test_malformed_json_returns_none(self):
        self.assertIsNone(self._complete(_client_replying("not json")))
        self.assertEqual(get_latest_ai_runs()[0]["status"], "invalid_json")

    def test_non_object_json_returns_none(self):
        self.assertIsNone(self._complete(_client_replying("[1, 2]")))
        self.assertEqual(get_latest_ai_runs()[0]["error_code"], "not_an_object")

    def test_empty_content_returns_none(self):
        self.assertIsNone(self._complete(_client_replying("")))
        self.assertEqual(get_latest_ai_runs()[0]["status"], "empty")

    def test_provider_error_returns_none_without_retry(self):
        client = _client_replying(error=RuntimeError("provider down"))
        self.assertIsNone(self._complete(client))
        self.assertEqual(client.chat.completions.create.call_count, 1)
        self.assertEqual(get_latest_ai_runs()[0]["status"], "error")


if __name__ == "__main__":
    unittest.main()
