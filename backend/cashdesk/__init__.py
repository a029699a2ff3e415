# backend/cashdesk/__init__.py
from flask import Flask

from .config import Config
from .extensions import db


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)

    # Import models so metadata is complete before create_all
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.shifts import shifts_bp
    from .routes.orders import orders_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(shifts_bp)
    app.register_blueprint(orders_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
