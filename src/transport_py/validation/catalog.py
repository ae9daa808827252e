from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import sqlalchemy as sa

from transport_py.postgres.catalog_schema import (
    GTFS_FORMAT,
    GTFS_RT_FORMATS,
    Dataset,
    Resource,
    ResourceHistory,
)
from transport_py.postgres.postgres_utils import DatabaseManager
from transport_py.runtime_utils.transport_exception import DatasetNotFound


@dataclass(frozen=True)
class ResourceRecord:
    """read only view of a catalog resource row"""

    id: int
    dataset_id: int
    datagouv_id: str
    url: str
    format: str
    is_available: bool
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ResourceRecord":
        """build from a select_as_list row of the resource table"""
        return cls(
            id=row["id"],
            dataset_id=row["dataset_id"],
            datagouv_id=row["datagouv_id"],
            url=row["url"],
            format=row["format"],
            is_available=row["is_available"],
            start_date=row.get("start_date"),
            end_date=row.get("end_date"),
        )

    @property
    def is_gtfs(self) -> bool:
        return self.format == GTFS_FORMAT

    @property
    def is_gtfs_rt(self) -> bool:
        return self.format in GTFS_RT_FORMATS

    def valid_and_available(self, today: date) -> bool:
        """available and today falls inside of [start_date, end_date]"""
        if not self.is_available or self.start_date is None or self.end_date is None:
            return False
        return self.start_date <= today <= self.end_date


@dataclass(frozen=True)
class ResourceSnapshot:
    """latest resource_history entry of a static resource"""

    datagouv_id: str
    uuid: str
    permanent_url: str
    format: str
    inserted_at: datetime


def dataset_resources(db_manager: DatabaseManager, dataset_id: int) -> List[ResourceRecord]:
    """
    load every resource of a dataset, ordered by id so runs are deterministic

    raises DatasetNotFound if the dataset row is gone
    """
    dataset_query = sa.select(Dataset.id).where(Dataset.id == dataset_id)
    if not db_manager.select_as_list(dataset_query):
        raise DatasetNotFound(dataset_id)

    resource_query = (
        sa.select(
            Resource.id,
            Resource.dataset_id,
            Resource.datagouv_id,
            Resource.url,
            Resource.format,
            Resource.is_available,
            Resource.start_date,
            Resource.end_date,
        )
        .where(Resource.dataset_id == dataset_id)
        .order_by(Resource.id)
    )

    return [ResourceRecord.from_row(row) for row in db_manager.select_as_list(resource_query)]


def latest_resource_history(db_manager: DatabaseManager, datagouv_id: str) -> Optional[ResourceSnapshot]:
    """most recently inserted history entry for a resource, if any"""
    history_query = (
        sa.select(ResourceHistory.datagouv_id, ResourceHistory.payload, ResourceHistory.inserted_at)
        .where(ResourceHistory.datagouv_id == datagouv_id)
        .order_by(ResourceHistory.inserted_at.desc(), ResourceHistory.id.desc())
        .limit(1)
    )

    rows = db_manager.select_as_list(history_query)
    if not rows:
        return None

    payload = rows[0]["payload"]
    return ResourceSnapshot(
        datagouv_id=rows[0]["datagouv_id"],
        uuid=payload["uuid"],
        permanent_url=payload["permanent_url"],
        format=payload.get("format", GTFS_FORMAT),
        inserted_at=rows[0]["inserted_at"],
    )
