"""
MediMate – Flask Application Factory
Serves the prescription analysis REST API.
"""

from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from app.config import Config
from app.database import db
from app.errors import register_error_handlers
from app.extensions import init_services
from app.routes.auth import auth_bp
from app.routes.assistant import assistant_bp
from app.routes.prescription import prescription_bp
from app.middleware.auth_middleware import jwt_required_middleware
from app.middleware.audit_logger import audit_after_request

limiter = Limiter(key_func=get_remote_address, default_limits=[Config.RATE_LIMIT_DEFAULT])


def create_app() -> Flask:
    Config.validate()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = Config.FLASK_SECRET_KEY
    app.config["SQLALCHEMY_DATABASE_URI"] = Config.DATABASE_URL
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["MAX_CONTENT_LENGTH"] = Config.MAX_UPLOAD_MB * 1024 * 1024
    app.config["RATELIMIT_ENABLED"] = Config.RATELIMIT_ENABLED
    app.config["DEBUG"] = Config.APP_ENV == "development"

    # Extensions
    CORS(app, resources={r"/api/*": {"origins": "*"}})
    limiter.init_app(app)
    db.init_app(app)

    # Register models, then build services (creates tables + indexes)
    from app.models import models as _models  # noqa: F401 – ensure all models are registered
    init_services(app)

    # Middleware
    app.before_request(jwt_required_middleware)
    app.after_request(audit_after_request)

    # Blueprints
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(prescription_bp, url_prefix="/api/prescriptions")
    app.register_blueprint(assistant_bp, url_prefix="/api")

    register_error_handlers(app)

    # Health check
    @app.route("/api/health")
    def health():
        return {"status": "ok", "service": "medimate"}

    return app
