from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from .metrics import HitCounter
from models.db_storage import DBStorage
from models.stores import SqlRefreshTokenStore, SqlUserStore
from utils.security import PasswordHasher
from utils.sessions import SessionConfig, SessionManager

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Yapper API",
        "version": "1.0.0",
        "description": "Users, short posts (yaps), sessions and a payment webhook.",
    },
    "basePath": "/",
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        },
        "ApiKey": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Service key with the `ApiKey ` prefix, e.g. \"ApiKey f271c81ff7084ee5b99a5091b42d486e\"."
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


def build_session_manager(config, storage: DBStorage) -> SessionManager:
    """Wire the session core from a Flask config mapping and a storage handle."""
    hasher = PasswordHasher(
        time_cost=config["ARGON2_TIME_COST"],
        memory_cost=config["ARGON2_MEMORY_COST"],
        parallelism=config["ARGON2_PARALLELISM"],
        max_bytes=config["PASSWORD_MAX_BYTES"],
    )
    return SessionManager(
        SessionConfig.from_mapping(config),
        users=SqlUserStore(storage),
        refresh_tokens=SqlRefreshTokenStore(storage),
        hasher=hasher,
    )


def create_app(config_name=None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    ``config_name`` is an environment name ("dev", "prod", "test") or a config class.
    """
    app = Flask(__name__, static_folder=None)

    if config_name is None or isinstance(config_name, str):
        app.config.from_object(get_config(config_name))
    else:
        app.config.from_object(config_name)

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    storage = DBStorage(
        app.config["DATABASE_URL"],
        timeout=app.config["DB_TIMEOUT_SECONDS"],
        echo=app.config.get("SQL_ECHO", False),
    )
    storage.reload()
    app.extensions["storage"] = storage
    app.extensions["session_manager"] = build_session_manager(app.config, storage)
    app.extensions["hits"] = HitCounter()

    from .health import bp as health_bp
    from .admin import bp as admin_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp
    from .yaps import bp as yaps_bp
    from .webhooks import bp as webhooks_bp

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(auth_bp, url_prefix="/api")
    app.register_blueprint(users_bp, url_prefix="/api")
    app.register_blueprint(yaps_bp, url_prefix="/api")
    app.register_blueprint(webhooks_bp, url_prefix="/api")
    app.register_blueprint(admin_bp)

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        storage.close()

    return app
