import os
import sys
import tempfile
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

_TEST_DATA_DIR = Path(tempfile.gettempdir()) / "milo-tests"
os.environ.setdefault("USERS_DB_PATH", str(_TEST_DATA_DIR / "users.db"))
os.environ.setdefault("ANALYTICS_DB_PATH", str(_TEST_DATA_DIR / "analytics.db"))

from milo.db.users import clear_resume_records, get_resume_record, save_resume_record  # noqa: E402
from milo.schemas.resume import FileMetadata, ResumeData, ResumeRecord, UserSummary  # noqa: E402


def _record(summary: str, size: int) -> ResumeRecord:
    return ResumeRecord(
        extracted_data=ResumeData(summary=summary, skills=["Python"], experience=[], education=[]),
        user_summary=UserSummary(
            professional_summary=summary,
            key_strengths=["Python"],
            career_focus="Backend",
            value_proposition="Reliable",
        ),
        processed_at="2024-05-01T10:00:00+00:00",
        file_metadata=FileMetadata(size=size, type="application/pdf"),
    )


class UserStoreTests(unittest.TestCase):
    def setUp(self):
        clear_resume_records()

    def test_missing_user_has_no_record(self):
        self.assertIsNone(get_resume_record("nobody"))

    def test_record_is_stored_and_read_back(self):
        save_resume_record("user-1", _record("First upload", 1024))
        stored = get_resume_record("user-1")
        self.assertIsNotNone(stored)
        self.assertEqual(stored.extracted_data.summary, "First upload")
        self.assertEqual(stored.file_metadata.size, 1024)
        self.assertEqual(stored.processed_at, "2024-05-01T10:00:00+00:00")

    def test_reupload_overwrites_previous_record(self):
        save_resume_record("user-1", _record("First upload", 1024))
        save_resume_record("user-1", _record("Second upload", 2048))
        stored = get_resume_record("user-1")
        self.assertEqual(stored.extracted_data.summary, "Second upload")
        self.assertEqual(stored.file_metadata.size, 2048)

    def test_records_are_kept_per_user(self):
        save_resume_record("user-1", _record("One", 1))
        save_resume_record("user-2", _record("Two", 2))
        self.assertEqual(get_resume_record("user-1").extracted_data.summary, "One")
        self.assertEqual(get_resume_record("user-2").extracted_data.summary, "Two")


if __name__ == "__main__":
    unittest.main()
