"""
Alembic migration environment.

Migrations run synchronously. PostgreSQL uses DATABASE_URL_SYNC (psycopg2);
a SQLite DATABASE_URL is migrated through the stdlib driver, with batch mode
so ALTERs work on SQLite.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from rsvp_admission.core.config import get_settings
from rsvp_admission.db.base import Base
from rsvp_admission.models import Attendee, Event, Member  # noqa: F401 - registers tables on Base.metadata

config = context.config
settings = get_settings()


def _migration_url() -> str:
    if settings.DATABASE_URL.startswith("sqlite"):
        return settings.DATABASE_URL.replace("+aiosqlite", "")
    return settings.DATABASE_URL_SYNC


config.set_main_option("sqlalchemy.url", _migration_url())

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
render_as_batch = _migration_url().startswith("sqlite")


def run_migrations_offline() -> None:
    """Emit the migration as a SQL script."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=render_as_batch,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=render_as_batch,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
