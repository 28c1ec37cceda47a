"""
Alembic migration environment for the DineFlow schema.

Runs against DATABASE_URL_SYNC (psycopg2) unless a URL is passed on the
command line:  alembic -x db_url=postgresql://... upgrade head
Offline mode (--sql) renders the migration as a SQL script instead.
"""

from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

from dineflow.db.base import Base
from dineflow.models import User, Restaurant, RestaurantTable, Booking  # noqa: F401 - registers tables on Base.metadata
from dineflow.core.config import get_settings

config = context.config
settings = get_settings()

db_url = context.get_x_argument(as_dictionary=True).get("db_url") or settings.DATABASE_URL_SYNC
config.set_main_option("sqlalchemy.url", db_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure_kwargs() -> dict:
    return {"target_metadata": target_metadata, "compare_type": True}


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs())
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
