import os
import sys
import logging
from flask import Flask
from dotenv import load_dotenv


def create_app(service=None):
    load_dotenv()
    app = Flask(__name__)

    # =========================================================
    # Logging: gunicorn handlers when served by gunicorn, stdout always
    # =========================================================
    gunicorn_error = logging.getLogger("gunicorn.error")
    app.logger.handlers = list(gunicorn_error.handlers)
    app.logger.setLevel(logging.INFO)

    sh = logging.StreamHandler(sys.stdout)
    sh.setLevel(logging.INFO)
    sh.setFormatter(logging.Formatter("[%(asctime)s][%(levelname)s] %(message)s", "%H:%M:%S"))
    app.logger.addHandler(sh)

    from .utils.logger import set_level
    set_level(os.getenv("LOG_LEVEL", "INFO"))

    # =========================================================
    # Engine (config is read after .env is loaded)
    # =========================================================
    if service is None:
        from .services.comparison import ComparisonService
        service = ComparisonService()
    app.extensions["envsync"] = service

    # =========================================================
    # Blueprints
    # =========================================================
    from .routes.comparisons import bp as comparisons_bp

    app.register_blueprint(comparisons_bp, url_prefix="/comparisons")

    # =========================================================
    # Health check
    # =========================================================
    @app.get("/health")
    def health():
        app.logger.info("Health check endpoint called")
        return {"ok": True}, 200

    return app
