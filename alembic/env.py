from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from db.base import Base
from db.config import load_env_files, normalize_postgres_url, resolve_database_url
from db.models import SalesRecord, UploadedFile  # noqa: F401 registers tables on Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _sqlite_allowed() -> bool:
    return os.getenv("SALES_ALLOW_SQLITE", "").strip().lower() in {"1", "true", "yes", "on"}


def _resolve_database_url() -> str:
    """
    Resolve the migration target.

    Order: `-x db_url=...`, ALEMBIC_DATABASE_URL, sqlalchemy.url from
    alembic.ini, then the application's own resolution
    (DATABASE_URL / CLOUD_DATABASE_URL / LOCAL_DATABASE_URL).
    """

    load_env_files()

    x_args = context.get_x_argument(as_dictionary=True)
    candidates = (
        x_args.get("db_url"),
        os.getenv("ALEMBIC_DATABASE_URL"),
        (config.get_main_option("sqlalchemy.url") or "").strip(),
    )
    url = next((normalize_postgres_url(value) for value in candidates if value), None)
    if url is None:
        url = resolve_database_url()

    if url.startswith("sqlite") and _sqlite_allowed():
        return url
    if not url.startswith("postgresql"):
        raise RuntimeError(
            "Migrations target PostgreSQL; set SALES_ALLOW_SQLITE=true for a local SQLite file."
        )
    return url


def _configure_options(url: str) -> dict[str, object]:
    # SQLite cannot ALTER constraints in place.
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    url = _resolve_database_url()

    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = _resolve_database_url()
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = url

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        future=True,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_options(url))

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
