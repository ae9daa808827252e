from logging.config import fileConfig

from alembic import context

from transport_py.postgres.postgres_utils import DatabaseIndex
from transport_py.postgres.catalog_schema import CatalogSqlBase

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# gate to make sure alembic is run using -n flag
if config.config_ini_section == "alembic":
    raise SyntaxError("Run alembic with -n flag to specifiy Database name.")

# get database name from -n flag when alembic is run from cmd line
db_name_env = config.config_ini_section

# Interpret the config file for Python logging.
# This line sets up loggers basically.
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# each dictionary name should have a section defined in alembic.ini that
# matches the key used in the db_details dictionary
db_details = {
    "catalog": {
        "db_index": DatabaseIndex.CATALOG,
        "target_metadata": CatalogSqlBase.metadata,
    },
}


def run_migrations_online() -> None:
    """Run migrations in 'online' mode.

    In this scenario we need to create an Engine
    and associate a connection with the context.

    """
    # strip off the environment name at the end of the db_name_env.
    # expected format is "<db_name>_<env>"
    db_name = db_name_env.rsplit("_", 1)[0]
    details = db_details[db_name]
    connectable = details["db_index"].get_args_from_env().get_local_engine()

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=details["target_metadata"],
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    raise NotImplementedError("Alembic offline migration not implemented.")
else:
    run_migrations_online()
