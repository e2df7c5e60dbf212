import os
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine.url import make_url

# 1) Load variables from .env
load_dotenv()

# 2) Alembic config (reads alembic.ini)
config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# 3) Import Base and every model so the metadata is complete
from subtracker.core.database import Base  # noqa: E402
from subtracker.domain.users.models import User  # noqa: F401,E402
from subtracker.domain.categories.models import Category  # noqa: F401,E402
from subtracker.domain.subscriptions.models import Subscription  # noqa: F401,E402

target_metadata = Base.metadata

# ------------------------------------------
# Helpers
# ------------------------------------------

def _sync_url_from_env() -> str:
    """
    Convert the async DATABASE_URL into a synchronous one for migrations.
    """
    db_url = os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url")
    if not db_url:
        raise RuntimeError("DATABASE_URL is not set.")
    url = make_url(db_url)

    # Swap async drivers for their sync equivalents
    if url.drivername == "sqlite+aiosqlite":
        url = url.set(drivername="sqlite+pysqlite")
    elif url.drivername == "postgresql+asyncpg":
        url = url.set(drivername="postgresql+psycopg2")

    return url.render_as_string(hide_password=False)


def _configure_sqlalchemy_url():
    config.set_main_option("sqlalchemy.url", _sync_url_from_env())


# ------------------------------------------
# Alembic configuration (offline/online)
# ------------------------------------------

def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    _configure_sqlalchemy_url()
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
        render_as_batch=url.startswith("sqlite"),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    _configure_sqlalchemy_url()
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        future=True,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
