import sys
import os
from pathlib import Path

import pytest

# Ensure project root is on sys.path for `import app.*`
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
TESTS = Path(__file__).resolve().parent
if str(TESTS) not in sys.path:
    sys.path.insert(0, str(TESTS))

# Settings are read at import time; keep every external service pointed at nothing
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("FIREBASE_PROJECT_ID", "risetwice-test")
os.environ.setdefault("TEXTBELT_API_KEY", "")

from fastapi.testclient import TestClient  # noqa: E402

from app.main import app  # noqa: E402
from app.core.dependencies import get_current_user  # noqa: E402
from app.database.supabase_client import get_supabase  # noqa: E402
from app.modules.auth.service import clear_token_cache  # noqa: E402
from fakes import FakeSupabase  # noqa: E402


@pytest.fixture
def db():
    fake = FakeSupabase()
    app.dependency_overrides[get_supabase] = lambda: fake
    yield fake
    app.dependency_overrides.clear()
    clear_token_cache()


@pytest.fixture
def client(db):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login():
    """Authenticate subsequent requests as the given Firebase uid"""
    def _login(user_id: str, email: str = None, phone_number: str = None):
        user = {"id": user_id, "email": email, "phone_number": phone_number, "sign_in_provider": "password"}
        app.dependency_overrides[get_current_user] = lambda: user
        return user
    return _login
