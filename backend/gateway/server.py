"""
API gateway: combines the users and events blueprints under /api.
This is the local entrypoint for development.
"""

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
import os
import logging
from dotenv import load_dotenv

load_dotenv()

# Basic console logging during API requests
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")

logger = logging.getLogger(__name__)

API_PREFIX = "/api"

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",  # Local frontend dev server
    "http://localhost:5173",  # Vite dev server
    "http://localhost:8080",  # Local static server
]


def get_cors_origins() -> list:
    """Origins allowed to call the API, from CORS_ORIGINS (comma-separated)."""
    raw = os.getenv("CORS_ORIGINS")
    if not raw:
        return DEFAULT_CORS_ORIGINS
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app() -> Flask:
    """
    Application factory for creating the Flask app.

    Returns:
        Flask: The configured Flask application.
    """
    app = Flask(__name__)
    CORS(app, resources={
        f"{API_PREFIX}/*": {
            "origins": get_cors_origins(),
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
            "expose_headers": ["Content-Type", "Authorization"],
        }
    })

    # --- REGISTER BLUEPRINTS ---
    from backend.auth_service.routes import users_bp
    from backend.events_service.routes import events_bp

    app.register_blueprint(users_bp, url_prefix=f"{API_PREFIX}/users")
    app.register_blueprint(events_bp, url_prefix=f"{API_PREFIX}/events")

    logger.info("All blueprints registered successfully.")

    # --- JSON ERROR BODIES ---
    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        """Every framework-level error answers with {message}."""
        return jsonify({"message": error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error: Exception):
        logger.error(f"Unhandled error: {error}", exc_info=True)
        return jsonify({"message": "Internal Server Error"}), 500

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def ping():
        """
        Root URL for simple 'online' check.
        """
        return jsonify({"status": "gateway_ok"}), 200

    @app.route("/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok"}), 200

    return app


if __name__ == "__main__":
    app = create_app()
    port = int(os.getenv("GATEWAY_PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=os.getenv("FLASK_DEBUG", "false").lower() in ("true", "1"))
