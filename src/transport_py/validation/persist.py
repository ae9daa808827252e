from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa

from transport_py.postgres.catalog_schema import LogsValidation, Resource, Validation
from transport_py.postgres.postgres_utils import DatabaseManager
from transport_py.runtime_utils.process_logger import ProcessLogger
from transport_py.validation.report import ValidationReport

# matches the error_msg column size
MAX_ERROR_MSG_LENGTH = 1024


def save_validation(db_manager: DatabaseManager, resource_id: int, report: ValidationReport) -> None:
    """
    store a report: merged into the resource metadata under "validation" and
    inserted as a new validation row. both writes share one transaction so a
    report is either fully stored or not at all.
    """
    process_logger = ProcessLogger(
        "save_gtfs_rt_validation",
        resource_id=resource_id,
        max_severity=report.max_severity,
        errors_count=report.errors_count,
    )
    process_logger.log_start()

    details = report.to_dict()

    try:
        with db_manager.session.begin() as session:
            current_metadata = session.execute(
                sa.select(Resource.resource_metadata).where(Resource.id == resource_id)
            ).scalar_one()

            merged_metadata = dict(current_metadata or {})
            merged_metadata["validation"] = details

            session.execute(
                sa.update(Resource).where(Resource.id == resource_id).values({Resource.resource_metadata: merged_metadata})
            )
            session.execute(
                sa.insert(Validation).values(
                    resource_id=resource_id,
                    date=report.datetime,
                    details=details,
                    max_error=report.max_severity,
                )
            )
    except Exception as exception:
        process_logger.log_failure(exception)
        raise exception

    process_logger.log_complete()


def log_validation(
    db_manager: DatabaseManager,
    resource_id: int,
    is_success: bool,
    error_msg: Optional[str] = None,
) -> None:
    """write the audit row for one validation attempt of a resource"""
    if error_msg is not None:
        error_msg = error_msg[:MAX_ERROR_MSG_LENGTH]

    db_manager.execute(
        sa.insert(LogsValidation).values(
            resource_id=resource_id,
            timestamp=datetime.now(timezone.utc).replace(microsecond=0),
            is_success=is_success,
            error_msg=error_msg,
        )
    )
