"""
Short-answer health assistant: free-text questions and symptom-based
disease prediction. Both are text-only Gemini calls.
"""

import logging

from app.services.gemini_client import GeminiClient

logger = logging.getLogger("medimate.assistant")

CHAT_PROMPT = (
    "Act as a medical expert and answer in 200 characters. "
    "Answer this health query in a professional but understandable way: "
)

PREDICTION_PROMPT = """Act as a medical expert. Predict possible diseases based on these details:
- Age: {age}
- Gender: {gender}
- Symptoms: {symptoms}
- Medical History: {medical_history}

Provide potential diagnoses in order of likelihood, possible next steps, and when to seek urgent care.
Use clear language without medical jargon. Answer in 450 characters."""


def answer_health_query(gemini: GeminiClient, message: str) -> str:
    return gemini.generate(CHAT_PROMPT + message)


def predict_disease(gemini: GeminiClient, age: str, gender: str,
                    symptoms: str, medical_history: str) -> str:
    prompt = PREDICTION_PROMPT.format(
        age=age or "not given",
        gender=gender or "not given",
        symptoms=symptoms,
        medical_history=medical_history or "none reported",
    )
    logger.info("Disease prediction requested (%d chars of symptoms)", len(symptoms))
    return gemini.generate(prompt)
