import os
import tempfile

# Settings are read at import time, so the environment must be prepared first.
os.environ.setdefault("ENVIRONMENT", "staging")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("OPENAI_API_KEY", "sk-test-key-0123456789")
os.environ.setdefault("TEMP_DIR", tempfile.mkdtemp(prefix="chartmind_test_"))
os.environ.setdefault("STATIC_DIR", tempfile.mkdtemp(prefix="chartmind_static_"))

import pytest
from fastapi.testclient import TestClient

from chartmind.main import app


@pytest.fixture
def client():
    return TestClient(app)
