import asyncio
import os
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from transport_py.aws.ecs import check_for_sigterm
from transport_py.postgres.postgres_utils import DatabaseManager
from transport_py.runtime_utils.http_client import HttpClient, new_session
from transport_py.runtime_utils.process_logger import ProcessLogger
from transport_py.runtime_utils.transport_exception import (
    NoRealtimeResources,
    NoSnapshotAvailable,
    NoStaticFeedResource,
)
from transport_py.validation.catalog import (
    ResourceRecord,
    ResourceSnapshot,
    dataset_resources,
    latest_resource_history,
)
from transport_py.validation.dispatcher import utc_today
from transport_py.validation.persist import log_validation, save_validation
from transport_py.validation.report import (
    ValidationReport,
    build_validation_report,
    read_validator_output,
)
from transport_py.validation.snapshot import (
    SnapshotFailure,
    fetch_and_archive_realtime,
    fetch_static,
    gtfs_rt_result_path,
    remove_stale_result,
    scratch_space,
    write_file,
)
from transport_py.validation.validator import GtfsRtValidator, JarValidator


@dataclass(frozen=True)
class ResourceOutcome:
    """result of the snapshot then validate cycle of one gtfs-rt resource"""

    resource_id: int
    success: bool
    error_msg: Optional[str] = None
    report: Optional[ValidationReport] = None


def select_gtfs(dataset_id: int, resources: List[ResourceRecord], today: date) -> ResourceRecord:
    """the one GTFS resource valid today, anything else is ambiguous"""
    valid_gtfs = [r for r in resources if r.is_gtfs and r.valid_and_available(today)]
    if len(valid_gtfs) != 1:
        raise NoStaticFeedResource(dataset_id, len(valid_gtfs))
    return valid_gtfs[0]


async def validate_gtfs_rt(
    db_manager: DatabaseManager,
    http_client: HttpClient,
    validator: GtfsRtValidator,
    resource: ResourceRecord,
    gtfs_path: str,
    gtfs_snapshot: ResourceSnapshot,
) -> ResourceOutcome:
    """
    snapshot, validate, parse and store one gtfs-rt resource. download and
    validator failures are returned as a failed outcome. exactly one audit
    row is written per call, including when something raises.
    """
    try:
        snapshot = await fetch_and_archive_realtime(http_client, resource)
        if isinstance(snapshot, SnapshotFailure):
            outcome = ResourceOutcome(
                resource_id=resource.id,
                success=False,
                error_msg=f"error while downloading the resource: {snapshot.message}",
            )
        else:
            remove_stale_result(resource)
            validator_result = await validator.invoke(gtfs_path, os.path.dirname(snapshot.scratch_path))
            if validator_result.success:
                findings = read_validator_output(gtfs_rt_result_path(resource))
                report = build_validation_report(gtfs_snapshot, findings, snapshot.storage_key)
                save_validation(db_manager, resource.id, report)
                outcome = ResourceOutcome(resource_id=resource.id, success=True, report=report)
            else:
                outcome = ResourceOutcome(
                    resource_id=resource.id,
                    success=False,
                    error_msg=f"error while calling the validator: {validator_result.message}",
                )
    except Exception as exception:
        try:
            log_validation(db_manager, resource.id, is_success=False, error_msg=f"validation aborted: {exception!r}")
        except Exception as audit_exception:
            # the caller gets the error that aborted the validation, not this one
            ProcessLogger("gtfs_rt_validation_audit", resource_id=resource.id).log_failure(audit_exception)
        raise exception

    log_validation(db_manager, resource.id, is_success=outcome.success, error_msg=outcome.error_msg)
    return outcome


async def validate_dataset(
    db_manager: DatabaseManager,
    dataset_id: int,
    http_client: HttpClient,
    validator: Optional[GtfsRtValidator] = None,
    today: Optional[date] = None,
) -> List[ResourceOutcome]:
    """
    validate every available gtfs-rt resource of a dataset against the latest
    snapshot of its valid GTFS resource.

    dataset level problems (no gtfs-rt, no single valid GTFS, no GTFS
    snapshot, GTFS download failure, unknown severity) raise. resource level
    problems are collected in the returned outcomes and do not stop the other
    resources. scratch files are removed on every exit path.
    """
    if validator is None:
        validator = JarValidator()
    if today is None:
        today = utc_today()

    process_logger = ProcessLogger("gtfs_rt_validation", dataset_id=dataset_id)
    process_logger.log_start()

    try:
        resources = dataset_resources(db_manager, dataset_id)

        gtfs_rts = [r for r in resources if r.is_gtfs_rt and r.is_available]
        if not gtfs_rts:
            raise NoRealtimeResources(dataset_id)

        gtfs = select_gtfs(dataset_id, resources, today)

        gtfs_snapshot = latest_resource_history(db_manager, gtfs.datagouv_id)
        if gtfs_snapshot is None:
            raise NoSnapshotAvailable(gtfs.datagouv_id)

        process_logger.add_metadata(
            gtfs_rt_count=len(gtfs_rts),
            gtfs_resource_history_uuid=gtfs_snapshot.uuid,
        )

        outcomes: List[ResourceOutcome] = []
        with scratch_space(gtfs, gtfs_rts) as gtfs_path:
            gtfs_body = await fetch_static(http_client, gtfs_snapshot.permanent_url)
            write_file(gtfs_path, gtfs_body)

            for resource in gtfs_rts:
                # stop between resources, never in the middle of one
                check_for_sigterm()
                outcomes.append(
                    await validate_gtfs_rt(
                        db_manager,
                        http_client,
                        validator,
                        resource,
                        gtfs_path,
                        gtfs_snapshot,
                    )
                )
    except Exception as exception:
        process_logger.log_failure(exception)
        raise exception

    process_logger.add_metadata(
        success_count=sum(1 for o in outcomes if o.success),
        failure_count=sum(1 for o in outcomes if not o.success),
    )
    process_logger.log_complete()

    return outcomes


async def run_validation_job(db_manager: DatabaseManager, dataset_id: int) -> List[ResourceOutcome]:
    """job body: one http session per dataset run"""
    async with new_session() as session:
        return await validate_dataset(db_manager, dataset_id, HttpClient(session))


def validation_job(db_manager: DatabaseManager, dataset_id: int) -> None:
    """synchronous entry for the job queue"""
    asyncio.run(run_validation_job(db_manager, dataset_id))
