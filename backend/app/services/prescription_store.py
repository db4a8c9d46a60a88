"""
Prescription store – persistence for raw AI analyses.

Every read and delete takes the owner and folds it into the query filter,
so a record belonging to another patient is indistinguishable from one
that does not exist.
"""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from app.errors import BadInput, NotFound, PersistenceFailure
from app.models.models import Prescription

logger = logging.getLogger("medimate.store")

_RECORD_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def parse_record_id(raw: Optional[str]) -> str:
    """Validate an externally supplied record id (uuid4 hex)."""
    value = (raw or "").strip().lower()
    if not value:
        raise BadInput("Prescription ID is required.")
    if not _RECORD_ID_RE.match(value):
        raise BadInput("Invalid prescription ID format.")
    return value


class PrescriptionStore:
    def __init__(self, database):
        self._db = database

    # ── lifecycle ──

    def ensure_indexes(self) -> None:
        """Create the table and its patient_id index if missing."""
        self._db.create_all()

    def close(self) -> None:
        self._db.session.remove()
        self._db.engine.dispose()

    # ── operations ──

    def _owned(self, record_id: str, owner: str):
        return Prescription.query.filter_by(id=record_id, patient_id=owner)

    def create(self, owner: str, raw_analysis: str,
               uploaded_at: Optional[datetime] = None) -> str:
        record = Prescription(
            id=uuid.uuid4().hex,
            patient_id=owner,
            analysis=raw_analysis,
            upload_date=uploaded_at or datetime.now(timezone.utc),
        )
        try:
            self._db.session.add(record)
            self._db.session.commit()
        except SQLAlchemyError as exc:
            self._db.session.rollback()
            raise PersistenceFailure(f"Could not save prescription: {exc}") from exc
        logger.info("Stored prescription %s for '%s'", record.id, owner)
        return record.id

    def get(self, record_id: str, owner: str) -> Prescription:
        try:
            record = self._owned(record_id, owner).first()
        except SQLAlchemyError as exc:
            self._db.session.rollback()
            raise PersistenceFailure(f"Could not load prescription: {exc}") from exc
        if record is None:
            raise NotFound("Prescription not found.")
        return record

    def list_by_owner(self, owner: str) -> list:
        try:
            return (
                Prescription.query
                .filter_by(patient_id=owner)
                .order_by(Prescription.upload_date.desc())
                .all()
            )
        except SQLAlchemyError as exc:
            self._db.session.rollback()
            raise PersistenceFailure(f"Could not list prescriptions: {exc}") from exc

    def delete(self, record_id: str, owner: str) -> bool:
        try:
            deleted = self._owned(record_id, owner).delete(synchronize_session=False)
            self._db.session.commit()
        except SQLAlchemyError as exc:
            self._db.session.rollback()
            raise PersistenceFailure(f"Could not delete prescription: {exc}") from exc
        if deleted:
            logger.info("Deleted prescription %s for '%s'", record_id, owner)
        return deleted > 0
