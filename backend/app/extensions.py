"""
Per-application service objects.

create_app() builds these once; request handlers reach them through
get_services() instead of module-level globals.
"""

import atexit
import logging
from dataclasses import dataclass

from flask import Flask, current_app

from app.config import Config
from app.database import db
from app.services.gemini_client import GeminiClient
from app.services.prescription_service import PrescriptionService
from app.services.prescription_store import PrescriptionStore

logger = logging.getLogger("medimate.extensions")

EXTENSION_KEY = "medimate"


@dataclass
class Services:
    gemini: GeminiClient
    store: PrescriptionStore
    prescriptions: PrescriptionService


def init_services(app: Flask) -> Services:
    """Construct the service graph, create indexes, and register shutdown."""
    gemini = GeminiClient(
        api_key=Config.GEMINI_API_KEY,
        api_url=Config.GEMINI_API_URL,
        timeout=Config.GEMINI_TIMEOUT_SECONDS,
    )
    store = PrescriptionStore(db)
    services = Services(
        gemini=gemini,
        store=store,
        prescriptions=PrescriptionService(
            store, gemini, purchase_url_template=Config.PURCHASE_SEARCH_URL,
        ),
    )

    with app.app_context():
        store.ensure_indexes()

    app.extensions[EXTENSION_KEY] = services
    atexit.register(_shutdown, app, services)
    return services


def _shutdown(app: Flask, services: Services) -> None:
    services.gemini.close()
    with app.app_context():
        services.store.close()
    logger.info("Services closed.")


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]
