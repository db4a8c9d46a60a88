"""
Audit logger – after-request hook that records every API interaction
(who, which endpoint, outcome) in the audit_log table.
Request bodies are not stored: they carry prescription images and health data.
"""

import logging
from flask import request
from sqlalchemy.exc import SQLAlchemyError

from app.database import db
from app.middleware.auth_middleware import get_current_patient
from app.models.models import AuditLog

logger = logging.getLogger("medimate.audit")


def audit_after_request(response):
    """Log every API request/response pair."""
    if not request.path.startswith("/api/"):
        return response

    # Skip health checks from filling the log
    if request.path == "/api/health":
        return response

    try:
        patient = get_current_patient()
        entry = AuditLog(
            username=patient.username if patient else None,
            endpoint=request.path,
            method=request.method,
            status_code=response.status_code,
        )
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError as exc:
        logger.warning("Audit logging failed: %s", exc)
        db.session.rollback()

    return response
