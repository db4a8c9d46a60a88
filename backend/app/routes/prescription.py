"""
Prescription routes.
Upload a prescription photo for AI analysis, list past analyses, and fetch
one back as JSON or as a downloadable PDF report. Every lookup is scoped to
the logged-in patient.

This is an INFORMATION tool, NOT a substitute for a pharmacist or physician.
"""

from flask import Blueprint, request, jsonify, make_response

from app.extensions import get_services
from app.middleware.auth_middleware import current_identity
from app.services.prescription_service import ANALYSIS_PROMPT
from app.services.prescription_store import parse_record_id
from app.services.report_renderer import report_filename

prescription_bp = Blueprint("prescription", __name__)


@prescription_bp.route("/analyze", methods=["POST"])
def analyze():
    """
    Analyze an uploaded prescription photo.

    Form: multipart field "prescription" with the image file.
    Returns the raw AI analysis and the id it was stored under
    (null if it could not be stored).
    """
    upload = request.files.get("prescription")
    if upload is None:
        return jsonify({"error": "Error uploading file"}), 400

    image = upload.read()
    if not image:
        return jsonify({"error": "Uploaded file is empty."}), 400

    result = get_services().prescriptions.analyze(current_identity().owner, ANALYSIS_PROMPT, image)
    return jsonify({
        "analysis": result.analysis,
        "prescription_id": result.prescription_id,
    }), 200


@prescription_bp.route("/", methods=["GET"])
def list_prescriptions():
    """Dashboard listing of the patient's analyses, newest first."""
    records = get_services().prescriptions.list_for_owner(current_identity().owner)
    return jsonify({"prescriptions": [r.to_dict() for r in records]}), 200


@prescription_bp.route("/<record_id>", methods=["GET"])
def get_prescription(record_id):
    """Return one analysis parsed into structured JSON."""
    record_id = parse_record_id(record_id)
    parsed = get_services().prescriptions.fetch_parsed(record_id, current_identity().owner)
    return jsonify({
        "prescription": parsed.record.to_dict(),
        "analysis": parsed.analysis.to_python(),
    }), 200


@prescription_bp.route("/<record_id>/download", methods=["GET"])
def download_prescription(record_id):
    """Return one analysis as a PDF attachment."""
    record_id = parse_record_id(record_id)
    service = get_services().prescriptions
    parsed = service.fetch_parsed(record_id, current_identity().owner)
    pdf = service.render_report(parsed.analysis, parsed.meta)

    response = make_response(pdf)
    response.headers["Content-Type"] = "application/pdf"
    response.headers["Content-Disposition"] = f'attachment; filename="{report_filename(record_id)}"'
    response.headers["Content-Description"] = "File Transfer"
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"
    return response


@prescription_bp.route("/<record_id>", methods=["DELETE"])
def delete_prescription(record_id):
    return _delete(record_id)


@prescription_bp.route("/", methods=["DELETE"])
def delete_prescription_by_query():
    """Same as DELETE /<id>, with the id passed as ?id=."""
    return _delete(request.args.get("id", ""))


def _delete(raw_id):
    record_id = parse_record_id(raw_id)
    deleted = get_services().prescriptions.remove(record_id, current_identity().owner)
    if not deleted:
        return jsonify({"error": "Prescription not found or unauthorized", "deleted": False}), 404
    return jsonify({"message": "Prescription deleted successfully", "deleted": True}), 200
