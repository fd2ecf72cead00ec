# Alembic migration environment for the Rentwise schema (users, profiles, properties, reviews).
# The database URL is resolved the same way the application resolves it, so
# `alembic upgrade head` migrates the database the API will talk to.
from logging.config import fileConfig
from typing import Any, Dict

from sqlalchemy import engine_from_config, pool
from alembic import context

from rentwise.db import DATABASE_URL, Base
from rentwise import models  # noqa: F401  registers every table on Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def database_url() -> str:
    """
    URL to migrate: `alembic -x url=...` wins, otherwise the application's
    DATABASE_URL (which itself defaults to sqlite:///./data.db).
    """
    return context.get_x_argument(as_dictionary=True).get("url") or DATABASE_URL


def _configure_options(url: str) -> Dict[str, Any]:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        # SQLite cannot ALTER most constraints in place; batch mode rebuilds the table
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout instead of executing it."""
    url = database_url()
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = database_url()
    section = dict(config.get_section(config.config_ini_section) or {})
    section["sqlalchemy.url"] = url

    # One short-lived connection per run; the app's pooled engine is not reused here
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_options(url))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
