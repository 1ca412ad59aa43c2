"""Flask application factory module.

Provides create_app() factory function. Creates and configures the
application with the history database, the reverse geocoder and the
API blueprints.
"""
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


# Initialize SQLAlchemy with custom base
db = SQLAlchemy(model_class=Base)


def ensure_directories(app):
    """Create the instance directory if it doesn't exist.

    Args:
        app: Flask application instance with config loaded
    """
    instance_path = app.config.get('INSTANCE_DIR')
    if instance_path:
        instance_path.mkdir(parents=True, exist_ok=True)


def create_app(config_name='development'):
    """Application factory function.

    Args:
        config_name: Configuration environment ('development', 'production'
            or 'testing')

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    from config import config as config_dict, INSTANCE_DIR
    config_class = config_dict[config_name]
    app.config.from_object(config_class)
    app.config.setdefault('INSTANCE_DIR', INSTANCE_DIR)

    config_class.validate()

    db.init_app(app)

    # Reverse geocoder is shared across requests so its cache survives
    from imgverify.lib.geocoding import ReverseGeocoder
    if app.config['GEOCODING_ENABLED']:
        app.extensions['imgverify.geocoder'] = ReverseGeocoder(
            url=app.config['GEOCODER_URL'],
            timeout=app.config['GEOCODER_TIMEOUT'],
            user_agent=app.config['GEOCODER_USER_AGENT'],
        )
    else:
        app.extensions['imgverify.geocoder'] = None

    from imgverify.routes import verify_bp, history_bp, debug_bp
    app.register_blueprint(verify_bp)
    app.register_blueprint(history_bp)
    app.register_blueprint(debug_bp)

    with app.app_context():
        ensure_directories(app)

        # Import models to register them with SQLAlchemy
        from imgverify import models  # noqa: F401 - registers models

        # Enable SQLite WAL mode for file-backed databases
        uri = app.config.get('SQLALCHEMY_DATABASE_URI', '')
        if uri.startswith('sqlite:///'):
            with db.engine.connect() as conn:
                conn.execute(text('PRAGMA journal_mode=WAL'))
                conn.execute(text('PRAGMA busy_timeout=5000'))
                conn.commit()

        db.create_all()

    return app
