"""
Prescription analysis report – PDF rendering.

Sections always appear in this order, whatever the analysis contains:
title, patient information, prescribed medicines, dietary recommendations,
additional information; every page carries a generation-time footer.

Each field is a paragraph whose label sits in a fixed 40 mm column (drawn
as the paragraph bullet) while the value wraps inside the remaining width,
so long values flow onto new lines and pages without shifting the fields
that follow.
"""

import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import quote_plus
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from app.services.analysis_normalizer import MISSING_TEXT, AnalysisNode

logger = logging.getLogger("medimate.report")

REPORT_TITLE = "MediMate Prescription Analysis Report"
DEFAULT_PURCHASE_SEARCH_URL = "https://pharmeasy.in/search/all?name={name}"

PAGE_MARGIN = 10 * mm
LABEL_WIDTH = 40 * mm
FOOD_BULLET_INDENT = 10 * mm
ALT_BULLET_INDENT = 10 * mm
LINK_COLOR = "blue"


def report_filename(record_id: str) -> str:
    return f"prescription-analysis-{record_id}.pdf"


def format_timestamp(moment: datetime) -> str:
    """e.g. ``March 7, 2025 14:05:09``"""
    return f"{moment:%B} {moment.day}, {moment:%Y %H:%M:%S}"


def purchase_link(name: str, template: str = DEFAULT_PURCHASE_SEARCH_URL) -> str:
    return template.format(name=quote_plus(name))


@dataclass
class ReportMeta:
    record_id: str
    owner: str
    uploaded_at: datetime

    @classmethod
    def from_record(cls, record) -> "ReportMeta":
        return cls(record_id=record.id, owner=record.patient_id, uploaded_at=record.upload_date)


def _build_styles() -> dict:
    base = getSampleStyleSheet()
    body = ParagraphStyle(
        "ReportBody",
        parent=base["Normal"],
        fontName="Helvetica",
        fontSize=11,
        leading=14,
        spaceAfter=2,
    )
    return {
        "title": ParagraphStyle(
            "ReportTitle",
            parent=base["Heading1"],
            fontName="Helvetica-Bold",
            fontSize=16,
            leading=20,
            spaceAfter=10,
        ),
        "section": ParagraphStyle(
            "ReportSection",
            parent=base["Heading2"],
            fontName="Helvetica-Bold",
            fontSize=12,
            leading=16,
            spaceBefore=8,
            spaceAfter=4,
        ),
        "subheading": ParagraphStyle(
            "ReportSubheading",
            parent=body,
            fontName="Helvetica-Bold",
            spaceBefore=4,
        ),
        "body": body,
        "field": ParagraphStyle(
            "ReportField",
            parent=body,
            leftIndent=LABEL_WIDTH,
            bulletIndent=0,
            bulletFontName="Helvetica",
            bulletFontSize=11,
        ),
        "food": ParagraphStyle(
            "ReportFoodBullet",
            parent=body,
            leftIndent=FOOD_BULLET_INDENT,
            bulletIndent=0,
            bulletFontName="Helvetica",
        ),
        "alternative": ParagraphStyle(
            "ReportAlternativeBullet",
            parent=body,
            leftIndent=LABEL_WIDTH + ALT_BULLET_INDENT,
            bulletIndent=LABEL_WIDTH,
            bulletFontName="Helvetica",
        ),
    }


class PrescriptionReport:
    """Builds the story for one analysis and renders it to PDF bytes."""

    def __init__(self, analysis: AnalysisNode, meta: ReportMeta,
                 generated_at: Optional[datetime] = None,
                 purchase_url_template: str = DEFAULT_PURCHASE_SEARCH_URL):
        self.analysis = analysis
        self.meta = meta
        self.generated_at = generated_at or datetime.now(timezone.utc)
        self.purchase_url_template = purchase_url_template
        self.styles = _build_styles()

    # ── paragraph helpers ──

    def _field(self, label: str, node: AnalysisNode) -> Paragraph:
        return self._field_markup(label, escape(node.text()))

    def _field_markup(self, label: str, markup: str) -> Paragraph:
        return Paragraph(markup, self.styles["field"], bulletText=label)

    def _section(self, title: str) -> Paragraph:
        return Paragraph(escape(title), self.styles["section"])

    def _bullets(self, items: AnalysisNode, style: str) -> List[Paragraph]:
        return [
            Paragraph(escape(item.text()), self.styles[style], bulletText="•")
            for item in items
        ]

    def _link(self, url: str) -> str:
        href = escape(url, {'"': "&quot;"})
        return f'<a href="{href}" color="{LINK_COLOR}">{escape(url)}</a>'

    # ── sections ──

    def _patient_information(self) -> list:
        a = self.analysis
        return [
            self._section("Patient Information"),
            self._field_markup("Date:", escape(format_timestamp(self.meta.uploaded_at))),
            self._field_markup("Patient ID:", escape(self.meta.owner or MISSING_TEXT)),
            self._field("Patient Name:", a.get("patient_name")),
            self._field("Prescriber:", a.get("prescriber")),
            self._field("Prescribed On:", a.get("date")),
            Spacer(1, 4 * mm),
        ]

    def _medicine(self, number: int, medicine: AnalysisNode) -> list:
        name = medicine.get("name")
        flow = [
            Paragraph(f"{number}. {escape(name.text())}", self.styles["subheading"]),
            self._field("Dosage:", medicine.get("dosage")),
            self._field("Purpose:", medicine.get("purpose")),
            self._field("Instructions:", medicine.get("instructions")),
        ]

        if "warnings" in medicine:
            warnings = medicine.get("warnings")
            if warnings.is_sequence and warnings:
                lines = "<br/>".join(escape(w.text()) for w in warnings)
                flow.append(self._field_markup("Warnings:", lines))
            else:
                flow.append(self._field("Warnings:", warnings))

        if "dosage_appropriate" in medicine:
            flow.append(self._field("Dosage Status:", medicine.get("dosage_appropriate")))

        if isinstance(name.value, str) and name.value.strip():
            url = purchase_link(name.value.strip(), self.purchase_url_template)
            flow.append(self._field_markup("Purchase Link:", self._link(url)))

        alternatives = [
            alt for alt in medicine.get("generic_alternatives") if alt.is_mapping
        ]
        if alternatives:
            flow.append(Paragraph("Generic Alternatives:", self.styles["body"]))
            for alt in alternatives:
                flow.append(Paragraph(
                    f"{escape(alt.get('name').text())} "
                    f"({escape(alt.get('cost_saving').text())}% cheaper)",
                    self.styles["alternative"],
                    bulletText="•",
                ))

        flow.append(Spacer(1, 3 * mm))
        return flow

    def _medicines(self) -> list:
        flow = [self._section("Prescribed Medicines")]
        for number, medicine in enumerate(self.analysis.get("medicines"), start=1):
            if not medicine.is_mapping:
                logger.warning("Skipping non-object medicine entry #%d", number)
                continue
            flow.extend(self._medicine(number, medicine))
        return flow

    def _dietary_recommendations(self) -> list:
        dietary = self.analysis.get("dietary_recommendations")
        flow = [self._section("Dietary Recommendations")]

        foods_to_eat = dietary.get("foods_to_eat")
        foods_to_avoid = dietary.first_of("foods_to_avoid", "foods_to avoid")

        if foods_to_eat.is_sequence and foods_to_eat:
            flow.append(Paragraph("Foods to Eat:", self.styles["subheading"]))
            flow.extend(self._bullets(foods_to_eat, "food"))
        if foods_to_avoid.is_sequence and foods_to_avoid:
            flow.append(Paragraph("Foods to Avoid:", self.styles["subheading"]))
            flow.extend(self._bullets(foods_to_avoid, "food"))
        if len(flow) == 1:
            flow.append(Paragraph("No dietary recommendations provided.", self.styles["body"]))

        flow.append(Spacer(1, 3 * mm))
        return flow

    def _additional_information(self) -> list:
        a = self.analysis
        return [
            self._section("Additional Information"),
            self._field("Manufacturer:", a.get("manufacturer")),
            self._field("Lot Number:", a.get("lot_number")),
            self._field("Expiration Date:", a.get("expiration_date")),
        ]

    def story(self) -> list:
        flow = [Paragraph(REPORT_TITLE, self.styles["title"])]
        flow.extend(self._patient_information())
        flow.extend(self._medicines())
        flow.extend(self._dietary_recommendations())
        flow.extend(self._additional_information())
        return flow

    # ── output ──

    def _draw_footer(self, canv, doc) -> None:
        canv.saveState()
        canv.setFont("Helvetica-Oblique", 8)
        canv.setFillColor(colors.black)
        canv.drawString(
            doc.leftMargin,
            PAGE_MARGIN / 2,
            f"Generated by MediMate on {format_timestamp(self.generated_at)}",
        )
        canv.restoreState()

    def render(self, compress: bool = True) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=PAGE_MARGIN,
            rightMargin=PAGE_MARGIN,
            topMargin=PAGE_MARGIN,
            bottomMargin=PAGE_MARGIN + 5 * mm,
            title=REPORT_TITLE,
            author="MediMate",
            invariant=1,
            pageCompression=1 if compress else 0,
        )
        doc.build(self.story(), onFirstPage=self._draw_footer, onLaterPages=self._draw_footer)
        pdf = buffer.getvalue()
        logger.info("Rendered report for prescription %s (%d bytes)", self.meta.record_id, len(pdf))
        return pdf


def render_report(analysis: AnalysisNode, meta: ReportMeta,
                  generated_at: Optional[datetime] = None,
                  purchase_url_template: str = DEFAULT_PURCHASE_SEARCH_URL,
                  compress: bool = True) -> bytes:
    return PrescriptionReport(
        analysis, meta,
        generated_at=generated_at,
        purchase_url_template=purchase_url_template,
    ).render(compress=compress)
