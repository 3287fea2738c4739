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

from milo.core.config import settings  # noqa: E402
from milo.main import app  # noqa: E402


class PipelineSmokeTests(unittest.TestCase):
    def test_safe_imports_and_routes(self):
        paths = {route.path for route in app.routes}
        self.assertIn("/v1/onboarding/process-resume", paths)
        self.assertIn("/v1/user/profile/resume", paths)
        self.assertIn("/v1/health", paths)

    def test_default_limits(self):
        self.assertEqual(settings.resume_fetch_timeout_s, 30.0)
        self.assertEqual(settings.resume_max_bytes, 10 * 1024 * 1024)
        self.assertEqual(settings.resume_max_text_chars, 10000)


if __name__ == "__main__":
    unittest.main()
