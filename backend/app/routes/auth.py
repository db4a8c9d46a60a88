"""
Authentication routes – patient registration and login.
Returns JWT tokens for authenticated sessions.
"""

import logging
from datetime import datetime, timedelta, timezone
from flask import Blueprint, request, jsonify
import bcrypt
import jwt as pyjwt

from app.config import Config
from app.database import db
from app.models.models import Patient

logger = logging.getLogger("medimate.auth")

auth_bp = Blueprint("auth", __name__)

PATIENT_ROLE = "patient"


@auth_bp.route("/register", methods=["POST"])
def register():
    """Register a new patient account."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request"}), 400

    username = str(data.get("username", "")).strip()
    password = str(data.get("password", ""))
    missing = [f for f, v in (("username", username), ("password", password)) if not v]
    if missing:
        return jsonify({"error": f"Missing required fields: {', '.join(missing)}"}), 400

    if Patient.query.filter_by(username=username).first():
        return jsonify({"error": "Username already exists"}), 409

    pw_hash = bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()

    patient = Patient(username=username, password_hash=pw_hash, role=PATIENT_ROLE)
    db.session.add(patient)
    db.session.commit()
    logger.info("Registered patient '%s'", username)

    token = _issue_token(patient)
    return jsonify({"token": token, "patient": patient.to_dict()}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    """Authenticate a patient and return a JWT."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request"}), 400
    username = str(data.get("username", ""))
    password = str(data.get("password", ""))

    patient = Patient.query.filter_by(username=username).first()
    if not patient or not bcrypt.checkpw(password.encode(), patient.password_hash.encode()):
        return jsonify({"error": "Invalid credentials"}), 401

    token = _issue_token(patient)
    return jsonify({"token": token, "patient": patient.to_dict()}), 200


def _issue_token(patient: Patient) -> str:
    payload = {
        "username": patient.username,
        "role": patient.role,
        "exp": datetime.now(timezone.utc) + timedelta(hours=Config.JWT_EXPIRY_HOURS),
        "iat": datetime.now(timezone.utc),
    }
    return pyjwt.encode(payload, Config.JWT_SECRET, algorithm="HS256")
