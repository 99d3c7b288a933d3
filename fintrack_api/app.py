# fintrack_api/app.py

import logging
from datetime import datetime, timezone

from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from werkzeug.exceptions import HTTPException

from . import db
from .auth import auth_bp
from .budgets import budgets_bp
from .config import Config
from .email_service import EmailService
from .goals import goals_bp
from .transactions import transactions_bp
from .users import users_bp

logger = logging.getLogger("fintrack-api")

AUTH_REQUIRED_MESSAGE = "Authentication required"


def _unauthorized(*_args):
    # one answer for missing, malformed, expired or revoked tokens
    return jsonify({"success": False, "message": AUTH_REQUIRED_MESSAGE}), 401


def register_jwt_handlers(jwt):
    jwt.unauthorized_loader(_unauthorized)
    jwt.invalid_token_loader(_unauthorized)
    jwt.expired_token_loader(_unauthorized)
    jwt.revoked_token_loader(_unauthorized)
    jwt.needs_fresh_token_loader(_unauthorized)
    jwt.user_lookup_error_loader(_unauthorized)


def register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"success": False, "message": e.description or e.name}), e.code

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"success": False, "message": "Route not found"}), 404

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        logger.exception("Unhandled error")
        return jsonify({"success": False, "message": "Internal server error"}), 500


# ---------------- Flask App Factory ----------------
def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(level=app.config.get("LOG_LEVEL", "INFO"))

    register_jwt_handlers(JWTManager(app))

    # CORS
    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",") if o.strip()]
    CORS(app, resources={r"/api/*": {"origins": origins}}, supports_credentials=True)

    app.extensions["email_service"] = app.config.get("EMAIL_SERVICE") or EmailService.from_config(app.config)

    # Blueprints
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(transactions_bp, url_prefix="/api/transactions")
    app.register_blueprint(budgets_bp, url_prefix="/api/budgets")
    app.register_blueprint(goals_bp, url_prefix="/api/goals")
    app.register_blueprint(users_bp, url_prefix="/api/users")

    register_error_handlers(app)

    # Initialize DB
    db.init_db(app.config["DB_PATH"])
    logger.info(f"Database initialized at {app.config['DB_PATH']}")

    app.teardown_appcontext(db.close_db)

    @app.route("/health")
    def health():
        return jsonify({
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": app.config.get("ENV_NAME", "development")
        })

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
