import asyncio
import os
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Union

from aiohttp import ClientError

from transport_py.aws.s3 import upload_bytes
from transport_py.runtime_utils.http_client import HttpClient
from transport_py.runtime_utils.process_logger import ProcessLogger
from transport_py.runtime_utils.remote_files import BucketCategory, scratch_root
from transport_py.runtime_utils.transport_exception import StaticFeedDownloadError
from transport_py.validation.catalog import ResourceRecord


@dataclass(frozen=True)
class RealtimeSnapshot:
    """a gtfs-rt capture written to scratch space and archived to s3"""

    resource: ResourceRecord
    scratch_path: str
    storage_key: str


@dataclass(frozen=True)
class SnapshotFailure:
    """a gtfs-rt resource that could not be downloaded"""

    resource: ResourceRecord
    message: str


def scratch_folder(resource: ResourceRecord) -> str:
    """
    folder dedicated to a resource, so that runs for different resources
    never share a directory
    """
    return os.path.join(scratch_root(), f"resource_{resource.datagouv_id}_gtfs_rt_validation")


def download_path(resource: ResourceRecord) -> str:
    """scratch file for a resource. the resource folder is created if needed."""
    folder = scratch_folder(resource)
    os.makedirs(folder, exist_ok=True)
    return os.path.join(folder, resource.datagouv_id)


def gtfs_rt_result_path(resource: ResourceRecord) -> str:
    """where the validator writes its findings for a gtfs-rt resource"""
    return f"{download_path(resource)}.results.json"


def upload_filename(resource: ResourceRecord, capture_time: datetime) -> str:
    """
    storage key for a gtfs-rt capture. microsecond timestamps keep keys
    unique and sorted across runs of the same resource.
    """
    time_part = capture_time.strftime("%Y%m%d.%H%M%S.%f")
    return f"{resource.datagouv_id}/{resource.datagouv_id}.{time_part}.bin"


def write_file(path: str, body: bytes) -> None:
    """write bytes to a scratch file"""
    with open(path, "wb") as writer:
        writer.write(body)


async def fetch_static(http_client: HttpClient, url: str) -> bytes:
    """
    download a GTFS snapshot. anything but a 200 is a StaticFeedDownloadError,
    there is nothing to validate against without it.
    """
    process_logger = ProcessLogger("fetch_static_gtfs", url=url)
    process_logger.log_start()

    try:
        response = await http_client.get(url)
    except (ClientError, asyncio.TimeoutError) as exception:
        error = StaticFeedDownloadError(f"Got an error while downloading {url}: {exception!r}")
        process_logger.log_failure(error)
        raise error from exception

    if response.status != 200:
        error = StaticFeedDownloadError(f"Got a non 200 status: {response.status} for {url}")
        process_logger.log_failure(error)
        raise error

    process_logger.add_metadata(size_bytes=len(response.body))
    process_logger.log_complete()
    return response.body


async def fetch_and_archive_realtime(
    http_client: HttpClient,
    resource: ResourceRecord,
    capture_time: Optional[datetime] = None,
) -> Union[RealtimeSnapshot, SnapshotFailure]:
    """
    download a gtfs-rt resource to its scratch path and archive the same bytes
    to the history bucket.

    realtime feeds are often flaky, so download problems are returned as a
    SnapshotFailure rather than raised.
    """
    process_logger = ProcessLogger(
        "fetch_and_archive_gtfs_rt",
        resource_id=resource.id,
        datagouv_id=resource.datagouv_id,
        url=resource.url,
    )
    process_logger.log_start()

    try:
        response = await http_client.get(resource.url)
    except (ClientError, asyncio.TimeoutError) as exception:
        process_logger.log_warning(exception)
        process_logger.log_complete()
        return SnapshotFailure(resource=resource, message=f"Got an error: {exception!r}")

    if response.status != 200:
        process_logger.add_metadata(status=response.status)
        process_logger.log_complete()
        return SnapshotFailure(resource=resource, message=f"Got a non 200 status: {response.status}")

    scratch_path = download_path(resource)
    write_file(scratch_path, response.body)

    if capture_time is None:
        capture_time = datetime.now(timezone.utc)
    storage_key = upload_filename(resource, capture_time)
    upload_bytes(BucketCategory.HISTORY, response.body, storage_key)

    process_logger.add_metadata(
        size_bytes=len(response.body),
        scratch_path=scratch_path,
        storage_key=storage_key,
    )
    process_logger.log_complete()

    return RealtimeSnapshot(resource=resource, scratch_path=scratch_path, storage_key=storage_key)


def _remove_file(path: str, process_logger: ProcessLogger) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exception:
        process_logger.log_warning(exception)


def _remove_folder(path: str, process_logger: ProcessLogger) -> None:
    try:
        os.rmdir(path)
    except FileNotFoundError:
        pass
    except OSError as exception:
        process_logger.log_warning(exception)


def remove_stale_result(resource: ResourceRecord) -> None:
    """
    drop validator output left by an earlier run that was killed before its
    cleanup, so only output of the coming run can be read
    """
    path = gtfs_rt_result_path(resource)
    try:
        os.remove(path)
    except FileNotFoundError:
        return

    process_logger = ProcessLogger("remove_stale_validator_output", resource_id=resource.id, path=path)
    process_logger.log_start()
    process_logger.log_complete()


def clean_resources(resources: List[ResourceRecord]) -> None:
    """
    best effort removal of every scratch file, validator result and scratch
    folder of the given resources. failures are logged, never raised.
    """
    process_logger = ProcessLogger("clean_scratch_files", resource_count=len(resources))
    process_logger.log_start()

    for resource in resources:
        folder = scratch_folder(resource)
        scratch_path = os.path.join(folder, resource.datagouv_id)
        _remove_file(scratch_path, process_logger)
        _remove_file(f"{scratch_path}.results.json", process_logger)
        _remove_folder(folder, process_logger)

    process_logger.log_complete()


@contextmanager
def scratch_space(gtfs: ResourceRecord, gtfs_rts: List[ResourceRecord]) -> Iterator[str]:
    """
    hand out the GTFS scratch path and remove every scratch file of the run
    on exit, whether the body returned, returned early, or raised.
    """
    try:
        yield download_path(gtfs)
    finally:
        clean_resources([*gtfs_rts, gtfs])
