# backend/storecore/__init__.py
from flask import Flask, jsonify

from .config import Config
from .errors import CommerceError
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.sales import sales_bp
    from .routes.invoices import invoices_bp
    from .routes.inventory import inventory_bp
    from .routes.finance import finance_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(finance_bp)

    @app.errorhandler(CommerceError)
    def handle_commerce_error(error: CommerceError):
        return jsonify(error.to_dict()), error.status

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
