import logging

from flask import Flask
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from .config import Config
from .extensions import cache, db, jwt, migrate
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def create_app(config_class: type[Config] = Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app.config.get("LOG_LEVEL", "INFO"))
    CORS(app)

    db.init_app(app)
    jwt.init_app(app)
    migrate.init_app(app, db)
    cache.init_app(app)

    register_blueprints(app)
    register_error_handlers(app)
    register_jwt_handlers()
    register_commands(app)

    @app.get("/health")
    def health_check() -> tuple[dict[str, object], int]:
        return {"status": "ok", "cache": "enabled" if cache.enabled else "disabled"}, 200

    return app


def register_blueprints(app: Flask) -> None:
    from .api.v1.admin_routes import admin_bp
    from .api.v1.auth_routes import auth_bp
    from .api.v1.order_tracking_routes import order_tracking_bp

    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(order_tracking_bp, url_prefix="/api/v1/order-tracking")
    app.register_blueprint(admin_bp, url_prefix="/api/v1/admin")


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException) -> tuple[dict[str, str], int]:
        return {"message": exc.description or exc.name}, exc.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception) -> tuple[dict[str, str], int]:
        logger.exception(f"Unhandled error: {exc}")
        db.session.rollback()
        return {"message": "internal server error"}, 500


def register_jwt_handlers() -> None:
    @jwt.unauthorized_loader
    def missing_token(reason: str) -> tuple[dict[str, str], int]:
        return {"message": reason}, 401

    @jwt.invalid_token_loader
    def invalid_token(reason: str) -> tuple[dict[str, str], int]:
        return {"message": reason}, 401

    @jwt.expired_token_loader
    def expired_token(_header: dict, _payload: dict) -> tuple[dict[str, str], int]:
        return {"message": "token has expired"}, 401


def register_commands(app: Flask) -> None:
    from .cli import seed_demo_command, seed_roles_command

    app.cli.add_command(seed_roles_command)
    app.cli.add_command(seed_demo_command)
