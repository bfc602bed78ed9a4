"""
Alembic environment for the car rental schema.

The URL comes from DATABASE_URL_SYNC unless overridden on the command line:
    alembic -x db_url=postgresql://... upgrade head
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from car_rental.core.config import get_settings
from car_rental.db.base import Base
from car_rental.models import Booking, Car  # noqa: F401 - registers tables on Base.metadata

config = context.config
config.set_main_option(
    "sqlalchemy.url",
    context.get_x_argument(as_dictionary=True).get("db_url", get_settings().DATABASE_URL_SYNC),
)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)


def run_migrations_offline() -> None:
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
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
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
