"""
SQLAlchemy ORM models – patients, their analysed prescriptions, and the
request audit trail.
"""

from datetime import datetime, timezone
from app.database import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Patient(db.Model):
    __tablename__ = "patients"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    username = db.Column(db.String(150), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default="patient")
    created_at = db.Column(db.DateTime, default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
        }


class Prescription(db.Model):
    """One AI analysis of an uploaded prescription photo. Never updated in place."""
    __tablename__ = "prescriptions"

    id = db.Column(db.String(32), primary_key=True)               # uuid4 hex
    patient_id = db.Column(db.String(150), nullable=False, index=True)  # owner username
    analysis = db.Column(db.Text, nullable=False)                  # raw AI text
    upload_date = db.Column(db.DateTime, nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "upload_date": self.upload_date.isoformat() if self.upload_date else None,
        }


class AuditLog(db.Model):
    __tablename__ = "audit_log"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    username = db.Column(db.String(150))
    endpoint = db.Column(db.String(255))
    method = db.Column(db.String(10))
    status_code = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, default=_utcnow)
