from datetime import date
from typing import Any, List, Tuple

import pytest
from _pytest.monkeypatch import MonkeyPatch

from transport_py.postgres.postgres_utils import DatabaseManager
from transport_py.validation import pipeline


def test_main_dispatches_and_runs_jobs(catalog: Any, db_manager: DatabaseManager, monkeypatch: MonkeyPatch) -> None:
    """One loop of the service validates every candidate dataset, then stops on SIGTERM."""
    eligible = catalog.add_dataset()
    catalog.add_gtfs(eligible)
    catalog.add_gtfs_rt(eligible)
    ineligible = catalog.add_dataset()
    catalog.add_gtfs_rt(ineligible)

    jobs: List[Tuple[DatabaseManager, int]] = []

    def sleep_then_terminate(_: float) -> None:
        monkeypatch.setenv("GOT_SIGTERM", "TRUE")

    monkeypatch.setattr(pipeline, "DatabaseManager", lambda **_: db_manager)
    monkeypatch.setattr(pipeline, "validation_job", lambda manager, dataset_id: jobs.append((manager, dataset_id)))
    monkeypatch.setattr("time.sleep", sleep_then_terminate)
    monkeypatch.setattr("transport_py.validation.dispatcher.utc_today", lambda: date(2026, 10, 17))

    with pytest.raises(SystemExit):
        pipeline.main()

    assert jobs == [(db_manager, eligible)]
