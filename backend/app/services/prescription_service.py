"""
Prescription analysis service.
Sends an uploaded prescription photo to Gemini, keeps the raw answer, and
later rebuilds it into structured data or a PDF report for its owner.

This is an INFORMATION tool, NOT a substitute for a pharmacist or physician.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from app.errors import PersistenceFailure
from app.models.models import Prescription
from app.services.analysis_normalizer import AnalysisNode, parse_analysis
from app.services.gemini_client import GeminiClient
from app.services.prescription_store import PrescriptionStore
from app.services.report_renderer import (
    DEFAULT_PURCHASE_SEARCH_URL,
    ReportMeta,
    render_report,
)

logger = logging.getLogger("medimate.prescription")


# ── Prompt: read a prescription photo into JSON ────────────────────────────

ANALYSIS_PROMPT = """Analyze this prescription image and provide the following information in JSON format:
1. List of medicines with their:
   - Name and dosage
   - Purpose/disease
   - Usage instructions
   - Warnings or contraindications
   - Dosage appropriateness (flag if suspicious)
   - Generic alternatives (include name and approximate cost savings percentage)
2. Dietary recommendations:
   - List of foods to eat that can help with the condition
   - List of foods to avoid that might interfere with the medication or condition
3. Patient information (if available)
4. Prescriber information
5. Additional details like manufacturer, lot number, etc.

Format the response as a proper JSON object with the following structure:
{
    "patient_name": "...",
    "date": "...",
    "prescriber": "...",
    "medicines": [{
        "name": "...",
        "dosage": "...",
        "purpose": "...",
        "instructions": "...",
        "warnings": "...",
        "dosage_appropriate": "...",
        "generic_alternatives": [{
            "name": "...",
            "cost_saving": number
        }]
    }],
    "dietary_recommendations": {
        "foods_to_eat": ["..."],
        "foods_to_avoid": ["..."]
    },
    "manufacturer": "...",
    "lot_number": "...",
    "expiration_date": "..."
}"""


@dataclass
class AnalysisResult:
    analysis: str
    prescription_id: Optional[str]   # None when the analysis could not be saved


@dataclass
class ParsedPrescription:
    record: Prescription
    analysis: AnalysisNode

    @property
    def meta(self) -> ReportMeta:
        return ReportMeta.from_record(self.record)


class PrescriptionService:
    def __init__(self, store: PrescriptionStore, gemini: GeminiClient,
                 purchase_url_template: str = DEFAULT_PURCHASE_SEARCH_URL):
        self.store = store
        self.gemini = gemini
        self.purchase_url_template = purchase_url_template

    def analyze(self, owner: str, instruction: str, image: Optional[bytes] = None) -> AnalysisResult:
        """
        Ask Gemini about the image and save its answer for ``owner``.
        A failed save is logged and the answer is still returned.
        """
        analysis = self.gemini.generate(instruction, image)
        received_at = datetime.now(timezone.utc)

        try:
            record_id = self.store.create(owner, analysis, uploaded_at=received_at)
        except PersistenceFailure as exc:
            logger.error("Error saving prescription for '%s': %s", owner, exc.message)
            record_id = None

        return AnalysisResult(analysis=analysis, prescription_id=record_id)

    def fetch_parsed(self, record_id: str, owner: str) -> ParsedPrescription:
        record = self.store.get(record_id, owner)
        return ParsedPrescription(record=record, analysis=parse_analysis(record.analysis))

    def render_report(self, parsed: AnalysisNode, meta: ReportMeta,
                      generated_at: Optional[datetime] = None) -> bytes:
        return render_report(
            parsed, meta,
            generated_at=generated_at,
            purchase_url_template=self.purchase_url_template,
        )

    def list_for_owner(self, owner: str) -> list:
        return self.store.list_by_owner(owner)

    def remove(self, record_id: str, owner: str) -> bool:
        return self.store.delete(record_id, owner)
