from datetime import date, datetime, timezone
from typing import Optional, Set

import sqlalchemy as sa

from transport_py.postgres.catalog_schema import GTFS_FORMAT, GTFS_RT_FORMATS, Dataset, Resource
from transport_py.postgres.postgres_utils import DatabaseManager
from transport_py.runtime_utils.process_logger import ProcessLogger
from transport_py.validation.jobs import JobQueue


def utc_today() -> date:
    """current date in UTC"""
    return datetime.now(timezone.utc).date()


def select_validation_candidates(db_manager: DatabaseManager, today: Optional[date] = None) -> Set[int]:
    """
    ids of the datasets that can be validated today. a dataset qualifies when
    it is active, has at least one available gtfs-rt resource, and exactly
    one available GTFS resource whose validity window contains today.
    datasets with several valid GTFS resources are skipped, there is no way
    to pick one.
    """
    if today is None:
        today = utc_today()

    single_valid_gtfs = (
        sa.select(Resource.dataset_id)
        .where(
            Resource.format == GTFS_FORMAT,
            Resource.is_available == sa.true(),
            Resource.start_date <= today,
            Resource.end_date >= today,
        )
        .group_by(Resource.dataset_id)
        .having(sa.func.count(Resource.id) == 1)
    )

    candidates_query = (
        sa.select(Dataset.id)
        .join(Resource, Resource.dataset_id == Dataset.id)
        .where(
            Resource.format.in_(GTFS_RT_FORMATS),
            Resource.is_available == sa.true(),
            Dataset.is_active == sa.true(),
            Dataset.id.in_(single_valid_gtfs),
        )
        .distinct()
    )

    return {row["id"] for row in db_manager.select_as_list(candidates_query)}


def dispatch_validation_jobs(
    db_manager: DatabaseManager,
    job_queue: JobQueue,
    today: Optional[date] = None,
) -> Set[int]:
    """
    enqueue one validation job per candidate dataset. jobs only carry the
    dataset id, everything else is re-read when the job runs.
    """
    process_logger = ProcessLogger("dispatch_gtfs_rt_validation")
    process_logger.log_start()

    try:
        candidates = select_validation_candidates(db_manager, today)
        enqueued = 0
        for dataset_id in sorted(candidates):
            if job_queue.enqueue(dataset_id):
                enqueued += 1
    except Exception as exception:
        process_logger.log_failure(exception)
        raise exception

    process_logger.add_metadata(candidate_count=len(candidates), enqueued_count=enqueued)
    process_logger.log_complete()

    return candidates
