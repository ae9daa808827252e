from typing import Any

import sqlalchemy as sa
from sqlalchemy.orm import declarative_base

CatalogSqlBase: Any = declarative_base(name="Catalog")

GTFS_FORMAT = "GTFS"
GTFS_RT_FORMATS = ("gtfs-rt", "gtfsrt")


class Dataset(CatalogSqlBase):  # pylint: disable=too-few-public-methods
    """Catalog entry grouping static and realtime resources"""

    __tablename__ = "dataset"

    id = sa.Column(sa.Integer, primary_key=True)
    datagouv_id = sa.Column(sa.String(64), nullable=False, unique=True)
    is_active = sa.Column(sa.Boolean, nullable=False, default=sa.true())


class Resource(CatalogSqlBase):  # pylint: disable=too-few-public-methods
    """
    A single published file or feed of a dataset. start_date and end_date are
    only filled for GTFS resources.
    """

    __tablename__ = "resource"

    id = sa.Column(sa.Integer, primary_key=True)
    dataset_id = sa.Column(sa.Integer, sa.ForeignKey("dataset.id"), nullable=False, index=True)
    datagouv_id = sa.Column(sa.String(64), nullable=False)
    url = sa.Column(sa.String(1024), nullable=False)
    format = sa.Column(sa.String(32), nullable=False)
    is_available = sa.Column(sa.Boolean, nullable=False, default=sa.true())
    start_date = sa.Column(sa.Date, nullable=True)
    end_date = sa.Column(sa.Date, nullable=True)
    # "metadata" is reserved on declarative classes
    resource_metadata = sa.Column("metadata", sa.JSON, nullable=True)


class ResourceHistory(CatalogSqlBase):  # pylint: disable=too-few-public-methods
    """
    Point in time copies of static resources, written by the history
    pipeline. payload carries uuid, permanent_url and format.
    """

    __tablename__ = "resource_history"

    id = sa.Column(sa.Integer, primary_key=True)
    datagouv_id = sa.Column(sa.String(64), nullable=False, index=True)
    payload = sa.Column(sa.JSON, nullable=False)
    inserted_at = sa.Column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


class Validation(CatalogSqlBase):  # pylint: disable=too-few-public-methods
    """One gtfs-rt validation report, never updated once written"""

    __tablename__ = "validation"

    id = sa.Column(sa.Integer, primary_key=True)
    resource_id = sa.Column(sa.Integer, sa.ForeignKey("resource.id"), nullable=False, index=True)
    date = sa.Column(sa.String(64), nullable=False)
    details = sa.Column(sa.JSON, nullable=False)
    max_error = sa.Column(sa.String(16), nullable=True, index=True)
    inserted_at = sa.Column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


class LogsValidation(CatalogSqlBase):  # pylint: disable=too-few-public-methods
    """Audit trail, one row per validation attempt of a resource"""

    __tablename__ = "logs_validation"

    id = sa.Column(sa.Integer, primary_key=True)
    resource_id = sa.Column(sa.Integer, sa.ForeignKey("resource.id"), nullable=False, index=True)
    timestamp = sa.Column(sa.DateTime(timezone=True), nullable=False)
    is_success = sa.Column(sa.Boolean, nullable=False)
    error_msg = sa.Column(sa.String(1024), nullable=True)
