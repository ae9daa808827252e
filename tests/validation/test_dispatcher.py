from datetime import date
from typing import Any

from transport_py.postgres.postgres_utils import DatabaseManager
from transport_py.validation.dispatcher import dispatch_validation_jobs, select_validation_candidates
from transport_py.validation.jobs import InProcessJobQueue

TODAY = date(2026, 10, 17)


def test_eligible_dataset(catalog: Any, db_manager: DatabaseManager) -> None:
    """It selects an active dataset with one valid GTFS and an available gtfs-rt."""
    dataset_id = catalog.add_dataset()
    catalog.add_gtfs(dataset_id)
    catalog.add_gtfs_rt(dataset_id)
    catalog.add_gtfs_rt(dataset_id, format="gtfsrt")

    assert select_validation_candidates(db_manager, TODAY) == {dataset_id}


def test_validity_window_excludes_today(catalog: Any, db_manager: DatabaseManager) -> None:
    """It skips datasets whose GTFS is not valid today, the window bounds included."""
    expired = catalog.add_dataset()
    catalog.add_gtfs(expired, start_date=date(2025, 1, 1), end_date=date(2026, 10, 16))
    catalog.add_gtfs_rt(expired)

    not_started = catalog.add_dataset()
    catalog.add_gtfs(not_started, start_date=date(2026, 10, 18), end_date=date(2027, 10, 18))
    catalog.add_gtfs_rt(not_started)

    ends_today = catalog.add_dataset()
    catalog.add_gtfs(ends_today, start_date=date(2026, 1, 1), end_date=TODAY)
    catalog.add_gtfs_rt(ends_today)

    starts_today = catalog.add_dataset()
    catalog.add_gtfs(starts_today, start_date=TODAY, end_date=date(2027, 1, 1))
    catalog.add_gtfs_rt(starts_today)

    assert select_validation_candidates(db_manager, TODAY) == {ends_today, starts_today}


def test_ambiguous_or_missing_gtfs(catalog: Any, db_manager: DatabaseManager) -> None:
    """It skips datasets with zero or several valid GTFS resources."""
    no_gtfs = catalog.add_dataset()
    catalog.add_gtfs_rt(no_gtfs)

    two_gtfs = catalog.add_dataset()
    catalog.add_gtfs(two_gtfs)
    catalog.add_gtfs(two_gtfs)
    catalog.add_gtfs_rt(two_gtfs)

    # an unavailable GTFS does not make the choice ambiguous
    one_available = catalog.add_dataset()
    catalog.add_gtfs(one_available)
    catalog.add_gtfs(one_available, is_available=False)
    catalog.add_gtfs_rt(one_available)

    assert select_validation_candidates(db_manager, TODAY) == {one_available}


def test_inactive_or_without_realtime(catalog: Any, db_manager: DatabaseManager) -> None:
    """It skips inactive datasets and datasets without an available gtfs-rt."""
    inactive = catalog.add_dataset(is_active=False)
    catalog.add_gtfs(inactive)
    catalog.add_gtfs_rt(inactive)

    no_rt = catalog.add_dataset()
    catalog.add_gtfs(no_rt)

    unavailable_rt = catalog.add_dataset()
    catalog.add_gtfs(unavailable_rt)
    catalog.add_gtfs_rt(unavailable_rt, is_available=False)

    assert select_validation_candidates(db_manager, TODAY) == set()


def test_dispatch_enqueues_once_per_window(catalog: Any, db_manager: DatabaseManager) -> None:
    """It enqueues one job per dataset, and re-dispatching the same window adds nothing."""
    first = catalog.add_dataset()
    catalog.add_gtfs(first)
    catalog.add_gtfs_rt(first)
    catalog.add_gtfs_rt(first)

    second = catalog.add_dataset()
    catalog.add_gtfs(second)
    catalog.add_gtfs_rt(second)

    job_queue = InProcessJobQueue(window_seconds=3600, clock=lambda: 7200.0)

    assert dispatch_validation_jobs(db_manager, job_queue, TODAY) == {first, second}
    assert len(job_queue) == 2

    assert dispatch_validation_jobs(db_manager, job_queue, TODAY) == {first, second}
    assert len(job_queue) == 2
