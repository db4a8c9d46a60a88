"""
Assistant routes – short health Q&A and symptom-based disease prediction.
Answers are AI-generated information, not a diagnosis.
"""

from flask import Blueprint, request, jsonify

from app.extensions import get_services
from app.services.assistant_service import answer_health_query, predict_disease

assistant_bp = Blueprint("assistant", __name__)


@assistant_bp.route("/chat", methods=["POST"])
def chat():
    """
    Body: { "message": "Is it safe to take ibuprofen with food?" }
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request"}), 400

    message = str(data.get("message", "")).strip()
    if not message:
        return jsonify({"error": "Message cannot be empty."}), 400
    if len(message) > 1000:
        return jsonify({"error": "Message too long (max 1000 characters)."}), 400

    response = answer_health_query(get_services().gemini, message)
    return jsonify({"response": response}), 200


@assistant_bp.route("/predict-disease", methods=["POST"])
def predict():
    """
    Body: { "age": "34", "gender": "female", "symptoms": "...", "medical_history": "..." }
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request"}), 400

    symptoms = str(data.get("symptoms", "")).strip()
    if not symptoms:
        return jsonify({"error": "Symptoms are required."}), 400

    response = predict_disease(
        get_services().gemini,
        age=str(data.get("age", "")).strip(),
        gender=str(data.get("gender", "")).strip(),
        symptoms=symptoms,
        medical_history=str(data.get("medical_history", "")).strip(),
    )
    return jsonify({"response": response}), 200
