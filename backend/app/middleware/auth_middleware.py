"""
Authentication middleware – JWT-based patient access.
All /api/* routes (except /api/auth/* and /api/health) require a valid JWT.
"""

from typing import NamedTuple, Optional

from flask import request, g
import jwt as pyjwt

from app.config import Config
from app.errors import Unauthorized
from app.models.models import Patient

# Routes that do not require authentication
PUBLIC_PREFIXES = ("/api/auth", "/api/health")


class Identity(NamedTuple):
    owner: str
    role: str
    is_logged_in: bool


ANONYMOUS = Identity(owner="", role="", is_logged_in=False)


def jwt_required_middleware():
    """Before-request hook: validates JWT bearer token, raising Unauthorized."""
    if request.method == "OPTIONS":
        return None

    path = request.path
    if any(path.startswith(p) for p in PUBLIC_PREFIXES):
        return None

    if not path.startswith("/api/"):
        return None

    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise Unauthorized("Unauthorized")

    token = auth_header.split(" ", 1)[1]
    try:
        payload = pyjwt.decode(token, Config.JWT_SECRET, algorithms=["HS256"])
    except pyjwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired.")
    except pyjwt.InvalidTokenError:
        raise Unauthorized("Invalid token.")

    patient = Patient.query.filter_by(username=payload.get("username")).first()
    if not patient:
        raise Unauthorized("Unauthorized")

    g.current_patient = patient
    return None


def get_current_patient() -> Optional[Patient]:
    """Convenience accessor for the authenticated patient."""
    return getattr(g, "current_patient", None)


def current_identity() -> Identity:
    patient = get_current_patient()
    if patient is None:
        return ANONYMOUS
    return Identity(owner=patient.username, role=patient.role, is_logged_in=True)
