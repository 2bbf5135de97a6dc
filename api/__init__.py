import logging

from flask import Flask, send_from_directory
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .dependencies import init_services
from .errors import register_error_handlers

SWAGGER_TEMPLATE = {
    "info": {
        "title": "Media Share API",
        "version": "1.0.0",
        "description": "Account registration, login and token-based sessions for the media sharing service.",
    },
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Bearer <accessToken>; the accessToken cookie is read first.",
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: rule.rule.startswith("/api/"),
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    Services (storage, hasher, token codec, auth) are built here and kept on
    app.extensions; a missing token secret aborts startup.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Cookies carry the tokens, so credentials must be allowed
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", [])}},
        supports_credentials=True,
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    services = init_services(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/users")
    app.register_blueprint(users_bp, url_prefix="/api/v1/users")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        services.storage.close()

    @app.get("/media/<path:filename>")
    def media(filename):
        return send_from_directory(app.config["MEDIA_ROOT"], filename)

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Media Share API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
