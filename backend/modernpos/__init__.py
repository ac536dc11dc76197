# backend/modernpos/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate, change_feed


def _engine_options(app: Flask) -> None:
    uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if not uri.startswith("sqlite"):
        return
    options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    connect_args = dict(options.get("connect_args") or {})
    # Writers queue on the SQLite lock for this long before OperationalError
    connect_args.setdefault("timeout", app.config["SQLITE_BUSY_TIMEOUT_SECONDS"])
    options["connect_args"] = connect_args
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = options


def create_app(config_object=Config, **overrides) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)
    app.config.update(overrides)

    logging.getLogger("modernpos").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    _engine_options(app)
    db.init_app(app)
    migrate.init_app(app, db)
    change_feed.init_app(app)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Operator sessions live for the lifetime of the app
    from .services.session_service import SessionRegistry
    from .services.state_store import DatabaseStateStore
    app.extensions["modernpos.sessions"] = SessionRegistry(store_factory=DatabaseStateStore)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.tenants import tenants_bp
    from .routes.products import products_bp
    from .routes.cart import cart_bp
    from .routes.sales import sales_bp
    from .routes.settings import settings_bp
    from .routes.employees import employees_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(tenants_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(employees_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = (
                "Content-Type, X-Operator-Id, X-Operator-Email, X-Session-Id"
            )
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
