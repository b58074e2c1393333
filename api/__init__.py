import logging

import click
from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from models.account_store import AccountStore
from models.db_storage import DBStorage
from models.token_store import RefreshTokenStore
from utils.decorators import RequestAuthenticator
from utils.security import CredentialHasher, TokenSigner
from utils.sessions import SessionManager

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Task Manager API",
        "version": "1.0.0",
        "description": "REST API for personal task management: accounts, sessions, projects and tasks.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
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


def create_app(config_name: str | None = None, overrides: dict | None = None, storage: DBStorage | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    Storage, stores, signer, hasher and session manager are built here and
    kept in app.extensions; pass `storage` to reuse an existing database
    (tests do).
    """
    app = Flask(__name__)

    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Cross-Origin Resource Sharing: credentials are needed for the refresh cookie
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=app.config.get("CORS_ORIGINS", "*") != "*",
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)
    init_services(app, storage)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp
    from .projects import bp as projects_bp
    from .tasks import bp as tasks_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1")
    app.register_blueprint(projects_bp, url_prefix="/api/v1")
    app.register_blueprint(tasks_bp, url_prefix="/api/v1")

    register_commands(app)

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Task Manager API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app


def init_services(app: Flask, storage: DBStorage | None = None) -> None:
    """Wire the auth components together and attach them to the app."""
    if storage is None:
        storage = DBStorage(
            app.config["DATABASE_URL"],
            timeout=app.config.get("DB_TIMEOUT_SECONDS", 5),
            echo=app.config.get("DB_ECHO", False),
        )
        storage.reload()

    signer = TokenSigner.from_config(app.config)
    hasher = CredentialHasher.from_config(app.config)
    accounts = AccountStore(storage)
    refresh_tokens = RefreshTokenStore(storage, ttl=app.config["REFRESH_TOKEN_EXPIRES"])
    sessions = SessionManager(accounts, refresh_tokens, signer, hasher)

    app.extensions["storage"] = storage
    app.extensions["accounts"] = accounts
    app.extensions["session_manager"] = sessions
    app.extensions["authenticator"] = RequestAuthenticator(signer)


def register_commands(app: Flask) -> None:
    @app.cli.command("purge-tokens")
    def purge_tokens():
        """Delete expired refresh tokens. Meant to run from cron."""
        deleted = app.extensions["session_manager"].purge_expired()
        click.echo(f"purged {deleted} expired refresh token(s)")

    @app.cli.command("init-db")
    def init_db():
        """Create the tables."""
        app.extensions["storage"].reload()
        click.echo("database initialized")
