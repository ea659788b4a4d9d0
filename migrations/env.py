"""
Alembic environment.

Runs against the same engine and metadata as the application, so
`alembic upgrade head` honours DATABASE_URL exactly like create_app().
"""
import logging
from logging.config import fileConfig

from alembic import context

from app import create_app
from models import db

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

app = create_app({"RUN_STARTUP_VALIDATION": False})
target_metadata = db.metadata


def run_migrations_offline():
    """Emit SQL to stdout instead of executing it."""
    context.configure(
        url=app.config["SQLALCHEMY_DATABASE_URI"],
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    with app.app_context():
        engine = db.engine
        with engine.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                render_as_batch=engine.dialect.name == "sqlite",
            )
            with context.begin_transaction():
                context.run_migrations()
    logger.info("Migrations applied")


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
