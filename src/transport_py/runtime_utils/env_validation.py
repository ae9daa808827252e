import os
from typing import Dict, Iterable, List, Optional

from transport_py.runtime_utils.process_logger import ProcessLogger

MASKED_VALUE = "**********"

# variables whose values never reach the logs
PRIVATE_SUFFIXES = ("_PASSWORD", "_SECRET_ACCESS_KEY", "_TOKEN")


def is_private(key: str) -> bool:
    """credentials are recognised by their name"""
    return key.endswith(PRIVATE_SUFFIXES)


def database_variables(prefix: str) -> List[str]:
    """
    connection variables of the database behind a prefix, as read by
    DatabaseManager. without a password the connection uses an IAM token,
    which needs DB_REGION instead.
    """
    variables = [
        f"{prefix}_DB_HOST",
        f"{prefix}_DB_NAME",
        f"{prefix}_DB_PORT",
        f"{prefix}_DB_USER",
    ]
    if os.environ.get(f"{prefix}_DB_PASSWORD") is None:
        variables.append("DB_REGION")
    return variables


def _loggable(keys: Iterable[str]) -> Dict[str, Optional[str]]:
    values: Dict[str, Optional[str]] = {}
    for key in keys:
        value = os.environ.get(key)
        if value is not None and is_private(key):
            value = MASKED_VALUE
        values[key] = value
    return values


def validate_environment(
    required_variables: List[str],
    optional_variables: Optional[List[str]] = None,
    db_prefixes: Optional[List[str]] = None,
) -> None:
    """
    check the environment before the pipeline starts, so that a missing
    variable fails at startup rather than at the first job.

    SERVICE_NAME and the connection variables of every database prefix are
    always required. required and set optional variables are logged, with
    credentials masked.
    """
    process_logger = ProcessLogger("validate_env")
    process_logger.log_start()

    required = ["SERVICE_NAME", *required_variables]
    for prefix in db_prefixes or []:
        required += database_variables(prefix)
    # prefixes share DB_REGION
    required = list(dict.fromkeys(required))

    required_values = _loggable(required)
    process_logger.add_metadata(**required_values)

    optional_values = _loggable(optional_variables or [])
    process_logger.add_metadata(**{k: v for k, v in optional_values.items() if v is not None})

    missing_required = [key for key, value in required_values.items() if value is None]
    if missing_required:
        exception = EnvironmentError(f"Missing required environment variables {missing_required}")
        process_logger.log_failure(exception)
        raise exception

    process_logger.log_complete()
