"""
Easy Kanban application factory.

Configuration comes from environment variables (optionally via a .env file):
DATABASE_URL, SESSION_SECRET, REDIS_URL, LOG_LEVEL, KANBAN_CONFLICT_RETRIES, FLASK_ENV.
"""

import os
import logging
import secrets

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_login import LoginManager
from werkzeug.exceptions import HTTPException

from models import db, User
from services.errors import KanbanError
from services.notification_service import notifier
from services.settings_service import SettingsCache
from utils.db import configure_sqlite_engine, DEFAULT_CONFLICT_RETRIES
from utils.startup_validation import StartupValidator

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///easy_kanban.db"

login_manager = LoginManager()


def _database_url() -> str:
    url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    # Heroku-style URLs are rejected by SQLAlchemy 1.4+
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def _configure_logging(level_name: str):
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@login_manager.user_loader
def load_user(user_id):
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'success': False, 'message': 'Authentication required'}), 401


def register_error_handlers(app):
    @app.errorhandler(KanbanError)
    def handle_kanban_error(e):
        db.session.rollback()
        if e.http_status >= 500:
            logger.error(f"{e.code}: {e.message} {e.details}")
        else:
            logger.info(f"{e.code}: {e.message}")
        return jsonify(e.to_dict()), e.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'success': False, 'message': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        db.session.rollback()
        logger.exception(f"Unhandled error: {e}")
        return jsonify({'success': False, 'message': 'Internal server error'}), 500


def register_blueprints(app):
    from routes.auth import auth_bp
    from routes.boards import boards_bp
    from routes.columns import columns_bp
    from routes.tasks import api_tasks_bp
    from routes.comments import comments_bp
    from routes.tags import tags_bp
    from routes.priorities import priorities_bp
    from routes.settings import settings_bp
    from routes.health import health_bp

    for blueprint in (auth_bp, boards_bp, columns_bp, api_tasks_bp, comments_bp,
                      tags_bp, priorities_bp, settings_bp, health_bp):
        app.register_blueprint(blueprint)


def create_app(config_overrides=None):
    """Build a configured Flask app. `config_overrides` wins over the environment."""
    load_dotenv()

    app = Flask(__name__)
    app.config.update(
        SQLALCHEMY_DATABASE_URI=_database_url(),
        SQLALCHEMY_ENGINE_OPTIONS={"pool_pre_ping": True},
        SECRET_KEY=os.getenv("SESSION_SECRET"),
        REDIS_URL=os.getenv("REDIS_URL"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        KANBAN_CONFLICT_RETRIES=int(os.getenv("KANBAN_CONFLICT_RETRIES", DEFAULT_CONFLICT_RETRIES)),
        ENV_NAME=os.getenv("FLASK_ENV", "development"),
        RUN_STARTUP_VALIDATION=True,
        SQLITE_BEGIN_IMMEDIATE=True,
    )
    if config_overrides:
        app.config.update(config_overrides)

    _configure_logging(app.config["LOG_LEVEL"])

    db.init_app(app)
    login_manager.init_app(app)
    SettingsCache().init_app(app)
    notifier.init_app(app)

    with app.app_context():
        configure_sqlite_engine(db.engine, begin_immediate=app.config["SQLITE_BEGIN_IMMEDIATE"])
        if app.config["RUN_STARTUP_VALIDATION"]:
            app.extensions["startup_report"] = StartupValidator(app.config, db.engine).run_all_validations()

    if not app.config.get("SECRET_KEY"):
        if app.config["ENV_NAME"] == "production":
            raise RuntimeError("SESSION_SECRET must be set in production")
        app.config["SECRET_KEY"] = secrets.token_hex(32)
        logger.warning("SESSION_SECRET not set - using a random per-process key")

    register_error_handlers(app)
    register_blueprints(app)

    logger.info(f"Easy Kanban app created ({app.config['ENV_NAME']})")
    return app
