# ==============================================================================
# app/__init__.py
# ------------------------------------------------------------------------------
# Application factory for creating and configuring the Flask app instance.
# ==============================================================================

import os
import logging
from flask import Flask
from config import Config
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFProtect

# Initialize extensions globally to be accessible by other modules
db = SQLAlchemy()
migrate = Migrate()
csrf = CSRFProtect()

def create_app(config_class=Config, **overrides):
    """
    Application factory function. Creates and configures the Flask application.

    Args:
        config_class (class): The configuration class to use.
        **overrides: Individual config keys applied on top of the class,
            e.g. an in-memory database URI for tests.

    Returns:
        Flask: The configured Flask application instance.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)
    app.config.update(overrides)

    # Configure logging
    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')

    # Ensure the instance folder exists for the SQLite database and uploads
    os.makedirs(app.instance_path, exist_ok=True)

    # Initialize extensions with the application instance
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    # Register blueprints with the application
    from app.main import bp as main_bp
    app.register_blueprint(main_bp)

    @app.cli.command("seed")
    def seed():
        """Seeds the database with the default admin account."""
        from app.seed import seed_data
        seed_data()
        app.logger.info("Database has been seeded with default values.")

    app.logger.info('BN Cabs payroll startup complete')

    return app
