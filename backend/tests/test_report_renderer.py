"""
PDF report tests.
Story-level checks inspect the paragraphs that will be laid out;
byte-level checks render with page compression off so text is searchable.
"""

from datetime import datetime

import pytest
from reportlab.platypus import Paragraph

from app.services.analysis_normalizer import AnalysisNode, parse_analysis
from app.services.report_renderer import (
    REPORT_TITLE,
    PrescriptionReport,
    ReportMeta,
    format_timestamp,
    purchase_link,
    render_report,
    report_filename,
)
from conftest import ACME_ANALYSIS, FULL_ANALYSIS

SECTION_HEADERS = [
    "Patient Information",
    "Prescribed Medicines",
    "Dietary Recommendations",
    "Additional Information",
]

META = ReportMeta(
    record_id="0123456789abcdef0123456789abcdef",
    owner="alice",
    uploaded_at=datetime(2025, 3, 7, 14, 5, 9),
)
GENERATED_AT = datetime(2025, 3, 8, 9, 0, 0)


def _lines(tree: dict):
    """(label, plain text) for every paragraph in the story."""
    story = PrescriptionReport(AnalysisNode(tree), META, generated_at=GENERATED_AT).story()
    return [
        (p.bulletText, p.getPlainText())
        for p in story
        if isinstance(p, Paragraph)
    ]


def _texts(tree: dict):
    return [text for _, text in _lines(tree)]


def _field(tree: dict, label: str):
    return [text for lbl, text in _lines(tree) if lbl == label]


def _pdf(tree: dict) -> bytes:
    return render_report(AnalysisNode(tree), META, generated_at=GENERATED_AT, compress=False)


# ═══════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════

class TestHelpers:
    def test_report_filename(self):
        assert report_filename("abc123") == "prescription-analysis-abc123.pdf"

    def test_format_timestamp(self):
        assert format_timestamp(datetime(2025, 3, 7, 14, 5, 9)) == "March 7, 2025 14:05:09"

    @pytest.mark.parametrize("name,expected", [
        ("Paracetamol", "https://pharmeasy.in/search/all?name=Paracetamol"),
        ("Amoxicillin 500 mg", "https://pharmeasy.in/search/all?name=Amoxicillin+500+mg"),
        ("Co-amoxiclav & more", "https://pharmeasy.in/search/all?name=Co-amoxiclav+%26+more"),
    ])
    def test_purchase_link_encodes_name(self, name, expected):
        assert purchase_link(name) == expected

    def test_purchase_link_custom_template(self):
        assert purchase_link("A B", "https://shop.example/?q={name}") == "https://shop.example/?q=A+B"


# ═══════════════════════════════════════════
# STRUCTURE
# ═══════════════════════════════════════════

class TestStoryStructure:
    def test_fixed_section_order(self):
        texts = _texts(parse_analysis(FULL_ANALYSIS).to_python())
        assert texts[0] == REPORT_TITLE
        positions = [texts.index(h) for h in SECTION_HEADERS]
        assert positions == sorted(positions)

    def test_patient_block_uses_record_metadata(self):
        tree = {"patient_name": "Jane Roe", "prescriber": "Dr. House"}
        assert _field(tree, "Date:") == ["March 7, 2025 14:05:09"]
        assert _field(tree, "Patient ID:") == ["alice"]
        assert _field(tree, "Patient Name:") == ["Jane Roe"]
        assert _field(tree, "Prescriber:") == ["Dr. House"]

    def test_acme_scenario(self):
        tree = parse_analysis(ACME_ANALYSIS).to_python()
        texts = _texts(tree)
        assert _field(tree, "Manufacturer:") == ["Acme"]
        assert "Prescribed Medicines" in texts
        assert not any(t.startswith("1. ") for t in texts)
        assert _field(tree, "Dosage:") == []

    def test_medicines_numbered_in_original_order(self):
        tree = {"medicines": [{"name": "Zinc"}, {"name": "Aspirin"}, {"name": "Metformin"}]}
        texts = _texts(tree)
        headings = [t for t in texts if t[:3] in ("1. ", "2. ", "3. ")]
        assert headings == ["1. Zinc", "2. Aspirin", "3. Metformin"]

    def test_non_object_medicine_entries_skipped(self):
        texts = _texts({"medicines": ["junk", {"name": "Aspirin"}]})
        assert "2. Aspirin" in texts
        assert not any(t.startswith("1. ") for t in texts)

    def test_paracetamol_only_name(self):
        tree = {"medicines": [{"name": "Paracetamol"}]}
        assert _field(tree, "Purchase Link:") == ["https://pharmeasy.in/search/all?name=Paracetamol"]
        assert _field(tree, "Warnings:") == []
        assert _field(tree, "Dosage Status:") == []
        assert "Generic Alternatives:" not in _texts(tree)
        assert _field(tree, "Dosage:") == ["N/A"]

    @pytest.mark.parametrize("name", [None, "", "   ", 42])
    def test_no_purchase_link_without_name(self, name):
        assert _field({"medicines": [{"name": name}]}, "Purchase Link:") == []

    def test_full_medicine_fields(self):
        tree = parse_analysis(FULL_ANALYSIS).to_python()
        assert _field(tree, "Warnings:") == ["Penicillin allergy"]
        assert _field(tree, "Dosage Status:") == ["true"]
        lines = _lines(tree)
        assert ("•", "Amoxil (40% cheaper)") in lines
        assert ("•", "Yogurt") in lines
        assert ("•", "Alcohol") in lines

    def test_warning_list_kept_together(self):
        tree = {"medicines": [{"name": "X", "warnings": ["Drowsiness", "Avoid driving"]}]}
        assert len(_field(tree, "Warnings:")) == 1
        assert "Drowsiness" in _field(tree, "Warnings:")[0]
        assert "Avoid driving" in _field(tree, "Warnings:")[0]

    def test_foods_to_avoid_alternate_spelling(self):
        tree = {"dietary_recommendations": {"foods_to avoid": ["Grapefruit"]}}
        texts = _texts(tree)
        assert "Foods to Avoid:" in texts
        assert "Grapefruit" in texts

    def test_markup_in_values_is_escaped(self):
        tree = {"manufacturer": "<b>Acme & Sons</b>"}
        assert _field(tree, "Manufacturer:") == ["<b>Acme & Sons</b>"]


# ═══════════════════════════════════════════
# TOTALITY
# ═══════════════════════════════════════════

class TestRenderingIsTotal:
    @pytest.mark.parametrize("tree", [
        {},
        {"medicines": None},
        {"medicines": "one pill"},
        {"medicines": [{}]},
        {"medicines": [None, 5, []]},
        {"medicines": [{"generic_alternatives": "cheap ones"}]},
        {"medicines": [{"generic_alternatives": [None, "x", {"name": "Y"}]}]},
        {"dietary_recommendations": ["eat well"]},
        {"dietary_recommendations": {"foods_to_eat": "apples"}},
        {"manufacturer": {"name": "Acme"}, "lot_number": 12345, "expiration_date": None},
        {"patient_name": ["Jane", "Roe"], "prescriber": False},
    ])
    def test_partial_trees_render_with_all_headers(self, tree):
        texts = _texts(tree)
        for header in SECTION_HEADERS:
            assert header in texts
        pdf = _pdf(tree)
        assert pdf.startswith(b"%PDF")
        for header in SECTION_HEADERS:
            assert header.encode() in pdf

    def test_footer_carries_generation_time(self):
        pdf = _pdf({})
        assert b"Generated by MediMate on March 8, 2025 09:00:00" in pdf

    def test_purchase_link_is_colored_hyperlink(self):
        pdf = _pdf({"medicines": [{"name": "Paracetamol"}]})
        assert b"https://pharmeasy.in/search/all?name=Paracetamol" in pdf
        assert b"/URI" in pdf
        assert b"0 0 1 rg" in pdf

    def test_long_content_overflows_onto_more_pages(self):
        long_warning = "May cause dizziness and nausea. " * 120
        tree = {"medicines": [
            {"name": f"Drug{i}", "warnings": long_warning} for i in range(8)
        ]}
        pdf = _pdf(tree)
        assert pdf.count(b"Generated by MediMate on") > 1
        assert b"Additional Information" in pdf

    def test_deterministic_output(self):
        tree = parse_analysis(FULL_ANALYSIS).to_python()
        assert _pdf(tree) == _pdf(tree)

    def test_compressed_output_is_pdf(self):
        pdf = render_report(AnalysisNode({}), META, generated_at=GENERATED_AT)
        assert pdf.startswith(b"%PDF")
