# backend/stockflow/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_object=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)

    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if isinstance(level, int):
        app.logger.setLevel(level)
        logging.getLogger("stockflow").setLevel(level)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.locations import locations_bp
    from .routes.inventory import inventory_bp
    from .routes.transfers import transfers_bp
    from .routes.sales import sales_bp
    from .routes.shrinkage import shrinkage_bp
    from .routes.ledger import ledger_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(locations_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(transfers_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(shrinkage_bp)
    app.register_blueprint(ledger_bp)
    app.register_blueprint(reports_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config["CORS_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
