"""
Pytest configuration & fixtures for MediMate backend tests.

Key design decisions:
  - Uses sqlite:///:memory: for speed and isolation.
  - Never talks to Gemini: tests patch GeminiClient.generate on the app's
    client, or hand a mock HTTP session to a standalone client.
  - Rate limiting is disabled so the suite can hammer the API.
"""

import io
import os
import sys
import uuid
from unittest import mock

import pytest
from PIL import Image

# ── 1. Ensure backend package is importable ──
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# ── 2. Set test environment BEFORE anything else ──
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["GEMINI_API_URL"] = "https://gemini.invalid/v1beta/models/test:generateContent"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["FLASK_SECRET_KEY"] = "test-secret-key"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["APP_ENV"] = "testing"
os.environ["RATELIMIT_ENABLED"] = "false"

# ── 3. NOW safe to import application modules ──
from app.main import create_app
from app.extensions import EXTENSION_KEY


ACME_ANALYSIS = '```json\n{"manufacturer":"Acme"}\n```'

FULL_ANALYSIS = """```json
{
    "patient_name": "Jane Roe",
    "date": "2024-03-01",
    "prescriber": "Dr. House",
    "medicines": [
        {
            "name": "Amoxicillin",
            "dosage": "500 mg",
            "purpose": "Bacterial infection",
            "instructions": "Three times daily for 7 days",
            "warnings": "Penicillin allergy",
            "dosage_appropriate": true,
            "generic_alternatives": [{"name": "Amoxil", "cost_saving": 40}]
        }
    ],
    "dietary_recommendations": {
        "foods_to_eat": ["Yogurt"],
        "foods_to_avoid": ["Alcohol"]
    },
    "manufacturer": "Acme",
    "lot_number": "L-123",
    "expiration_date": "2026-01-01"
}
```"""


def png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), color=(255, 0, 0)).save(buf, format="PNG")
    return buf.getvalue()


def jpeg_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), color=(0, 0, 255)).save(buf, format="JPEG")
    return buf.getvalue()


def mpo_bytes() -> bytes:
    """Multi-picture JPEG, as written by many phone cameras."""
    buf = io.BytesIO()
    first = Image.new("RGB", (4, 4), color=(0, 255, 0))
    second = Image.new("RGB", (4, 4), color=(0, 0, 0))
    first.save(buf, format="MPO", save_all=True, append_images=[second])
    return buf.getvalue()


def gemini_envelope(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


# ═══════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """Create application for testing."""
    application = create_app()
    application.config["TESTING"] = True
    return application


@pytest.fixture
def services(app):
    return app.extensions[EXTENSION_KEY]


@pytest.fixture
def client(app):
    """Flask test client with database ready."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def fake_gemini(services):
    """Replace the app's Gemini call; set .return_value / .side_effect per test."""
    with mock.patch.object(services.gemini, "generate") as generate:
        generate.return_value = FULL_ANALYSIS
        yield generate


def _headers_for(client, username: str) -> dict:
    client.post("/api/auth/register", json={"username": username, "password": "Pass1234"})
    resp = client.post("/api/auth/login", json={"username": username, "password": "Pass1234"})
    token = resp.get_json()["token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(client):
    """Logged-in patient 'alice'."""
    return _headers_for(client, "alice")


@pytest.fixture
def other_headers(client):
    """A second patient, 'bob', who must never see alice's records."""
    return _headers_for(client, "bob")


@pytest.fixture
def fresh_headers(client):
    """A brand-new patient with no records yet."""
    return _headers_for(client, f"patient-{uuid.uuid4().hex[:8]}")
