from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config, validate_config
from .errors import register_error_handlers
from .logger import configure_logging, register_request_logging
from models import storage  # DBStorage singleton (scoped_session)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Auth API",
        "version": "1.0.0",
        "description": "Cookie-based authentication: sign-up, email confirmation, sessions, "
                       "password reset and email change.",
    },
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "AccessCookie": {
            "type": "apiKey",
            "name": "access_token",
            "in": "cookie",
            "description": "HttpOnly access-token cookie set by log-in.",
        },
        "RefreshCookie": {
            "type": "apiKey",
            "name": "refresh_token",
            "in": "cookie",
            "description": "HttpOnly refresh-token cookie, sent only to /auth paths.",
        },
    },
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def build_email_sender(app):
    """Resend when an API key is configured, otherwise log the messages."""
    from services.email import LogEmailSender, ResendEmailSender

    expiry = app.config["AUTH_CODE_EXPIRY_SECONDS"]
    if app.config.get("RESEND_API_KEY"):
        return ResendEmailSender(
            app.config["RESEND_API_KEY"],
            app.config["RESEND_FROM_EMAIL"],
            code_expiry_seconds=expiry,
            logger=app.logger,
        )
    return LogEmailSender(code_expiry_seconds=expiry, logger=app.logger)


def create_app(config_name: str | None = None, email_sender=None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `email_sender` and `overrides` let tests inject a recording sender and
    tweak settings without touching the environment.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)
    validate_config(app.config)

    logger = configure_logging(app)
    register_request_logging(app, logger)

    # Cookies need credentialed CORS with explicit origins
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS")}}, supports_credentials=True)

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    storage.configure(app.config["DATABASE_URL"])
    if app.config.get("AUTO_CREATE_TABLES"):
        storage.reload()

    app.extensions["email_sender"] = email_sender or build_email_sender(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # calls scoped_session.remove(), rolling back anything left uncommitted
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Auth API",
            "docs": "/apidocs/",
            "health": "/health",
        }, 200

    return app
