import os
import urllib.parse as urlparse
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import boto3
import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker

from transport_py.runtime_utils.process_logger import ProcessLogger


def running_in_docker() -> bool:
    """
    return true if running inside of a docker container
    """
    path = "/proc/self/cgroup"
    if os.path.exists("/.dockerenv"):
        return True
    if not os.path.isfile(path):
        return False
    with open(path, encoding="UTF-8") as cgroup:
        return any("docker" in line for line in cgroup)


def running_in_aws() -> bool:
    """
    return True if running on aws, else False
    """
    return bool(os.getenv("AWS_DEFAULT_REGION"))


def environ_get(var_name: str) -> str:
    """
    get an environment variable, raising an error if it does not exist. this
    utility helps with type checking.
    """
    value = os.environ.get(var_name)
    if value is None:
        raise KeyError(f"Unable to find {var_name} in environment")
    return value


class PsqlArgs:
    """
    container class for arguments needed to log into postgres db
    """

    def __init__(self, prefix: str):
        self.host: str
        if not running_in_docker() and not running_in_aws():
            # running on the command line. use localhost ip
            self.host = "127.0.0.1"
        else:
            # running in docker, use the env variable pointing to the image
            #   name in the container.
            # OR
            # running on aws, use the env variable resolving to the aws rds
            #   instance
            self.host = environ_get(f"{prefix}_DB_HOST")

        self.port: str
        if running_in_docker():
            # running in docker, use the default port for postgres
            self.port = "5432"
        else:
            self.port = environ_get(f"{prefix}_DB_PORT")

        self.name: str = environ_get(f"{prefix}_DB_NAME")
        self.user: str = environ_get(f"{prefix}_DB_USER")
        self.password: Optional[str] = os.environ.get(f"{prefix}_DB_PASSWORD")

    def get_password(self) -> str:
        """
        function to provide rds password

        used to refresh auth token, if required
        """
        if self.password is not None:
            return self.password

        region = os.environ.get("DB_REGION", None)

        # generate ws db auth token if in rds
        client = boto3.client("rds")
        return client.generate_db_auth_token(
            DBHostname=self.host,
            Port=self.port,
            DBUsername=self.user,
            Region=region,
        )

    def get_local_engine(
        self,
        echo: bool = False,
    ) -> sa.engine.Engine:
        """
        Get an SQL Alchemy engine that connects to the catalog database using
        env variables
        """
        process_logger = ProcessLogger("create_sql_engine")
        process_logger.log_start()
        try:
            process_logger.add_metadata(**self.metadata())

            # use presence of password as indicator of connection type.
            #
            # if its not provided, assume cloud database where ssl is used and
            # passwords are generated on the fly
            #
            # if it is provided, assume local docker database
            db_ssl_options = ""
            db_password = self.password
            if db_password is None:
                db_password = urlparse.quote_plus(self.get_password())

                # set the ssl cert path to the file that should be added to the
                # image at deploy time
                db_ssl_cert = os.path.abspath(os.path.join("/", "usr", "local", "share", "amazon-certs.pem"))

                if not os.path.isfile(db_ssl_cert):
                    raise FileNotFoundError(f"missing rds ssl certificate {db_ssl_cert}")

                db_ssl_options = f"?sslmode=verify-full&sslrootcert={db_ssl_cert}"

            database_url = (
                f"postgresql+psycopg2://{self.user}:"
                f"{db_password}@{self.host}:{self.port}/{self.name}"
                f"{db_ssl_options}"
            )

            engine = sa.create_engine(
                database_url,
                echo=echo,
                pool_pre_ping=True,
                pool_use_lifo=True,
                pool_size=5,
                max_overflow=2,
                connect_args={
                    "keepalives": 1,
                    "keepalives_idle": 60,
                    "keepalives_interval": 60,
                },
            )

            process_logger.log_complete()
            return engine
        except Exception as exception:
            process_logger.log_failure(exception)
            raise exception

    def metadata(self) -> Dict[str, str]:
        """
        generate a dict to add to logs for psql connection details
        """
        return {
            "host": self.host,
            "database_name": self.name,
            "user": self.user,
            "port": self.port,
        }


class DatabaseIndex(Enum):
    """
    enum for different databases the projects can use
    """

    CATALOG = auto()

    def get_env_prefix(self) -> str:
        """
        in the environment, all keys for this database have this prefix
        """
        if self == DatabaseIndex.CATALOG:
            return "CAT"
        raise NotImplementedError(f"No environment prefix for index {self.name}")

    def get_args_from_env(self) -> PsqlArgs:
        """
        generate a sql argument instance for this ind
        """
        prefix = self.get_env_prefix()
        return PsqlArgs(prefix)


def generate_update_db_password_func(psql_args: PsqlArgs) -> Callable:
    """
    create a function to update the password for a database when a new
    connection is created
    """

    def postgres_event_update_db_password(
        _: sa.engine.interfaces.Dialect,
        __: Any,
        ___: Tuple[Any, ...],
        cparams: Dict[str, Any],
    ) -> None:
        """
        update database password on every new connection attempt
        this will refresh db auth token passwords
        """
        process_logger = ProcessLogger("password_refresh")
        process_logger.log_start()
        cparams["password"] = psql_args.get_password()
        process_logger.log_complete()

    return postgres_event_update_db_password


class DatabaseManager:
    """
    manager class for rds application operations
    """

    def __init__(
        self,
        db_index: DatabaseIndex = DatabaseIndex.CATALOG,
        verbose: bool = False,
        engine: Optional[sa.engine.Engine] = None,
    ):
        """
        initialize db manager object, creates engine and sessionmaker

        an already built engine can be passed in, in which case no connection
        details are read from the environment
        """
        self.db_index = db_index

        if engine is None:
            psql_args = db_index.get_args_from_env()
            engine = psql_args.get_local_engine(echo=verbose)
            sa.event.listen(
                engine,
                "do_connect",
                generate_update_db_password_func(psql_args),
            )

        self.engine = engine
        self.session = sessionmaker(bind=self.engine)

    def execute(
        self,
        statement: Union[
            sa.sql.selectable.Select,
            sa.sql.dml.Update,
            sa.sql.dml.Delete,
            sa.sql.dml.Insert,
            sa.sql.elements.TextClause,
        ],
    ) -> sa.engine.CursorResult:
        """
        execute db action WITHOUT data
        """
        with self.session.begin() as cursor:
            result = cursor.execute(statement)

        return result  # type: ignore

    def select_as_list(self, select_query: sa.sql.selectable.Select) -> List[Dict[str, Any]]:
        """
        select data from db table and return list
        """
        with self.session.begin() as cursor:
            return [row._asdict() for row in cursor.execute(select_query)]
