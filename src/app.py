"""Refuel Log - Flask Application."""

import os
from pathlib import Path

import click
from dotenv import load_dotenv
from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_migrate import Migrate

# Load environment variables from .env file
load_dotenv()

from config import config
from models import db
from security import SecurityConfig
from logging_config import setup_logging
from middleware.request_logger import init_request_logging

# Module-level logger (initialized in create_app)
logger = None
audit_logger = None


def create_app(config_name: str | None = None) -> Flask:
    """Application factory."""
    global logger, audit_logger

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config.get(config_name, config["default"]))

    # Initialize logging first (before other extensions)
    logger, audit_logger = setup_logging(
        log_level=app.config.get("LOG_LEVEL"),
        log_dir=app.config.get("LOG_DIR"),
        json_format=app.config.get("LOG_JSON_FORMAT", True),
    )

    # Store loggers on app for access in routes
    app.logger_instance = logger
    app.audit_logger = audit_logger

    init_request_logging(app)

    # SQLite needs its directory to exist before the first connection
    db_uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if db_uri.startswith("sqlite:///") and ":memory:" not in db_uri:
        Path(db_uri[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

    db.init_app(app)
    Migrate(app, db)

    CORS(app,
         origins=app.config["CORS_ORIGINS"],
         methods=SecurityConfig.CORS_METHODS,
         allow_headers=SecurityConfig.CORS_HEADERS)

    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses."""
        for header, value in SecurityConfig.SECURITY_HEADERS.items():
            response.headers[header] = value
        response.headers["Content-Security-Policy"] = SecurityConfig.CSP_POLICY
        return response

    @app.errorhandler(400)
    def bad_request(error):
        """Handle malformed requests."""
        return jsonify({"error": "Bad request"}), 400

    @app.errorhandler(404)
    def not_found_error(error):
        """Handle 404 errors."""
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(413)
    def too_large(error):
        """Handle oversized request bodies."""
        return jsonify({"error": "Request entity too large"}), 413

    @app.errorhandler(429)
    def ratelimit_handler(e):
        """Handle rate limit errors."""
        logger.warning("Rate limit exceeded", extra={
            "extra": {"path": request.path, "ip": request.remote_addr}
        })
        return jsonify({"error": "Rate limit exceeded. Please try again later."}), 429

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors with logging."""
        logger.error("Internal server error", extra={
            "extra": {"path": request.path, "method": request.method}
        })
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500

    # Health check endpoint (no user header required, for container orchestration)
    @app.route("/health")
    def health_check():
        """Health check endpoint for monitoring and container orchestration."""
        try:
            db.session.execute(db.text("SELECT 1"))
            return jsonify({
                "status": "healthy",
                "database": "connected",
                "version": app.config.get("APP_VERSION", "1.0.0"),
            }), 200
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return jsonify({
                "status": "unhealthy",
                "database": "disconnected",
                "version": app.config.get("APP_VERSION", "1.0.0"),
                "error": str(e),
            }), 503

    @app.cli.command("init-db")
    @click.option("--drop", is_flag=True, default=False, help="Drop existing tables first")
    def init_db(drop: bool) -> None:
        """Create database tables without running migrations."""
        if drop:
            db.drop_all()
        db.create_all()
        click.echo("Database initialized.")

    from routes.api import api_bp, init_api

    app.register_blueprint(api_bp, url_prefix="/api")
    init_api(app)

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True, host="0.0.0.0", port=5001)
