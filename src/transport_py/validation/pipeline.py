#!/usr/bin/env python

import os
import time
import logging
import signal
from functools import partial
from typing import Optional

from transport_py.aws.ecs import handle_ecs_sigterm, check_for_sigterm
from transport_py.postgres.postgres_utils import DatabaseManager, DatabaseIndex
from transport_py.runtime_utils.alembic_migration import alembic_upgrade_to_head
from transport_py.runtime_utils.env_validation import validate_environment
from transport_py.runtime_utils.process_logger import ProcessLogger
from transport_py.validation.dispatcher import dispatch_validation_jobs
from transport_py.validation.jobs import InProcessJobQueue
from transport_py.validation.orchestrator import validation_job

logging.getLogger().setLevel("INFO")
DESCRIPTION = """Entry Point For GTFS-RT Validation"""

# seconds between two dispatches of validation jobs
DISPATCH_INTERVAL_SECONDS = int(os.environ.get("DISPATCH_INTERVAL_SECONDS", str(6 * 60 * 60)))

# seconds to sleep between checks for sigterm while waiting to dispatch
POLL_SECONDS = 30


def main() -> None:
    """
    run the validation pipeline

    * create one catalog database engine for the whole process
    * on a loop
        * check to see if the pipeline should be terminated
        * if the dispatch interval elapsed, enqueue one job per candidate
          dataset
        * run queued jobs that are due, failed ones come back after their
          retry delay
    """
    db_manager = DatabaseManager(db_index=DatabaseIndex.CATALOG)
    job_queue = InProcessJobQueue(window_seconds=DISPATCH_INTERVAL_SECONDS)
    run_job = partial(validation_job, db_manager)

    last_dispatch: Optional[float] = None
    while True:
        check_for_sigterm()

        if last_dispatch is None or time.monotonic() - last_dispatch >= DISPATCH_INTERVAL_SECONDS:
            process_logger = ProcessLogger(process_name="dispatch")
            process_logger.log_start()
            dispatch_validation_jobs(db_manager, job_queue)
            last_dispatch = time.monotonic()
            process_logger.log_complete()

        job_queue.run_pending(run_job)

        time.sleep(POLL_SECONDS)


def start() -> None:
    """configure and start the validation process"""
    # setup handling shutdown commands
    signal.signal(signal.SIGTERM, handle_ecs_sigterm)

    # configure the environment
    os.environ["SERVICE_NAME"] = "gtfs_rt_validation"

    validate_environment(
        required_variables=[
            "HISTORY_BUCKET",
            "TRANSPORT_TOOLS_FOLDER",
            "ALEMBIC_CATALOG_DB_NAME",
        ],
        optional_variables=[
            "S3_HOST",
            "TEMP_DIR",
            "JAVA_BINARY",
            "HTTP_TIMEOUT_SECONDS",
            "DISPATCH_INTERVAL_SECONDS",
            "RETRY_BASE_SECONDS",
            "VALIDATOR_TIMEOUT_SECONDS",
        ],
        db_prefixes=["CAT"],
    )

    # run catalog rds migrations
    alembic_upgrade_to_head(db_name=os.environ["ALEMBIC_CATALOG_DB_NAME"])

    # run the main method
    main()


if __name__ == "__main__":
    start()
