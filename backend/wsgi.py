"""
Entry point for MediMate backend.
Run with: python wsgi.py
"""

import logging

from app.main import create_app

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()

if __name__ == "__main__":
    app.run(host="127.0.0.1", port=8080, debug=app.config.get("DEBUG", False))
