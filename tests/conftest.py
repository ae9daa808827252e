"""
this file contains fixtures that are intended to be used across multiple test
files
"""

import json
import os
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

import pytest
import sqlalchemy as sa
from _pytest.monkeypatch import MonkeyPatch
from sqlalchemy.pool import StaticPool

from transport_py.postgres.catalog_schema import CatalogSqlBase, Dataset, Resource, ResourceHistory
from transport_py.postgres.postgres_utils import DatabaseManager
from transport_py.runtime_utils.http_client import HttpResponse
from transport_py.runtime_utils.remote_files import BucketCategory, S3Location
from transport_py.validation.validator import GtfsRtValidator, ValidatorResult


@pytest.fixture(autouse=True, name="scratch_dir")
def fixture_scratch_dir(monkeypatch: MonkeyPatch, tmp_path: Path) -> Path:
    """
    scratch files are written under TEMP_DIR. point it at a per test
    directory so tests can check that nothing is left behind.
    """
    scratch = tmp_path.joinpath("scratch")
    scratch.mkdir()
    monkeypatch.setenv("TEMP_DIR", scratch.as_posix())
    monkeypatch.delenv("GOT_SIGTERM", raising=False)
    return scratch


@pytest.fixture(name="db_manager")
def fixture_db_manager() -> Iterator[DatabaseManager]:
    """
    catalog tables in an in memory sqlite database. the static pool keeps a
    single connection so every session sees the same database.
    """
    engine = sa.create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    CatalogSqlBase.metadata.create_all(engine)

    yield DatabaseManager(engine=engine)

    engine.dispose()


class Catalog:
    """helper for seeding catalog rows in tests"""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.next_id = 1

    def _id(self) -> int:
        next_id = self.next_id
        self.next_id += 1
        return next_id

    def add_dataset(self, is_active: bool = True) -> int:
        dataset_id = self._id()
        self.db_manager.execute(
            sa.insert(Dataset).values(id=dataset_id, datagouv_id=f"dataset-{dataset_id}", is_active=is_active)
        )
        return dataset_id

    def add_gtfs(
        self,
        dataset_id: int,
        start_date: date = date(2026, 1, 1),
        end_date: date = date(2026, 12, 31),
        is_available: bool = True,
    ) -> int:
        resource_id = self._id()
        self.db_manager.execute(
            sa.insert(Resource).values(
                id=resource_id,
                dataset_id=dataset_id,
                datagouv_id=f"gtfs-{resource_id}",
                url=f"https://example.com/gtfs-{resource_id}.zip",
                format="GTFS",
                is_available=is_available,
                start_date=start_date,
                end_date=end_date,
            )
        )
        return resource_id

    def add_gtfs_rt(
        self,
        dataset_id: int,
        is_available: bool = True,
        format: str = "gtfs-rt",  # pylint: disable=redefined-builtin
        metadata: Optional[Dict[str, Any]] = None,
    ) -> int:
        resource_id = self._id()
        self.db_manager.execute(
            sa.insert(Resource).values(
                {
                    Resource.id: resource_id,
                    Resource.dataset_id: dataset_id,
                    Resource.datagouv_id: f"rt-{resource_id}",
                    Resource.url: f"https://example.com/rt-{resource_id}.pb",
                    Resource.format: format,
                    Resource.is_available: is_available,
                    Resource.resource_metadata: metadata,
                }
            )
        )
        return resource_id

    def add_history(
        self,
        datagouv_id: str,
        uuid: str,
        inserted_at: datetime = datetime(2026, 10, 16, 12, tzinfo=timezone.utc),
    ) -> str:
        permanent_url = f"https://history.example.com/{datagouv_id}/{uuid}.zip"
        self.db_manager.execute(
            sa.insert(ResourceHistory).values(
                datagouv_id=datagouv_id,
                payload={"uuid": uuid, "permanent_url": permanent_url, "format": "GTFS"},
                inserted_at=inserted_at,
            )
        )
        return permanent_url


@pytest.fixture(name="catalog")
def fixture_catalog(db_manager: DatabaseManager) -> Catalog:
    """seeding helper bound to the test database"""
    return Catalog(db_manager)


class FakeHttpClient:
    """
    stands in for HttpClient. responses maps a url to either a response or an
    exception to raise. unknown urls answer 404.
    """

    def __init__(self, responses: Optional[Dict[str, Union[HttpResponse, Exception]]] = None):
        self.responses = responses or {}
        self.requested: List[str] = []

    async def get(self, url: str) -> HttpResponse:
        self.requested.append(url)
        response = self.responses.get(url, HttpResponse(status=404, body=b""))
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(name="http_client")
def fixture_http_client() -> FakeHttpClient:
    """http client without any configured responses"""
    return FakeHttpClient()


class FakeValidator(GtfsRtValidator):
    """
    stands in for the validator jar. outputs maps a gtfs-rt datagouv_id to
    what the run should do: a list is written as validator json output, a
    ValidatorResult is returned as is, an exception is raised.
    """

    def __init__(self, outputs: Optional[Dict[str, Union[List[Dict], ValidatorResult, Exception]]] = None):
        self.outputs = outputs or {}
        self.calls: List[Dict[str, Any]] = []

    async def invoke(self, gtfs_path: str, gtfs_rt_dir: str) -> ValidatorResult:
        folder_name = os.path.basename(gtfs_rt_dir)
        datagouv_id = folder_name[len("resource_") : -len("_gtfs_rt_validation")]
        self.calls.append(
            {
                "gtfs_path": gtfs_path,
                "gtfs_rt_dir": gtfs_rt_dir,
                "gtfs_exists": os.path.isfile(gtfs_path),
                "gtfs_rt_exists": os.path.isfile(os.path.join(gtfs_rt_dir, datagouv_id)),
            }
        )

        output = self.outputs.get(datagouv_id, [])
        if isinstance(output, Exception):
            raise output
        if isinstance(output, ValidatorResult):
            return output

        with open(os.path.join(gtfs_rt_dir, f"{datagouv_id}.results.json"), "w", encoding="utf8") as writer:
            json.dump(output, writer)
        return ValidatorResult(success=True)


@pytest.fixture(name="make_rule")
def fixture_make_rule() -> Callable[..., Dict[str, Any]]:
    """build one entry of raw validator output"""

    def _make_rule(error_id: str, severity: str, occurrences: int, suffix: str = "is wrong") -> Dict[str, Any]:
        return {
            "errorMessage": {
                "validationRule": {
                    "errorId": error_id,
                    "severity": severity,
                    "title": f"title {error_id}",
                    "errorDescription": f"description {error_id}",
                    "occurrenceSuffix": suffix,
                }
            },
            "occurrenceList": [{"prefix": f"trip_id {n}"} for n in range(occurrences)],
        }

    return _make_rule


@pytest.fixture(name="uploads")
def fixture_uploads(monkeypatch: MonkeyPatch) -> List[Dict[str, Any]]:
    """
    replace the s3 upload used for gtfs-rt captures with one that records
    what would have been uploaded
    """
    uploaded: List[Dict[str, Any]] = []

    def mock_upload_bytes(bucket_category: BucketCategory, body: bytes, key: str) -> str:
        uploaded.append({"bucket_category": bucket_category, "body": body, "key": key})
        return S3Location(bucket=bucket_category.bucket, prefix=key).permanent_url

    monkeypatch.setattr("transport_py.validation.snapshot.upload_bytes", mock_upload_bytes)

    return uploaded


@pytest.fixture(name="validator")
def fixture_validator() -> FakeValidator:
    """validator that reports no findings until outputs are configured"""
    return FakeValidator()
