"""
Conversion of the gtfs-realtime-validator batch output into the report stored
on resources and validations.

The validator writes a json list with one entry per broken rule:

    [
        {
            "errorMessage": {
                "validationRule": {
                    "errorId": "E001",
                    "severity": "ERROR",
                    "title": "...",
                    "errorDescription": "...",
                    "occurrenceSuffix": "...",
                }
            },
            "occurrenceList": [{"prefix": "..."}, ...],
        },
        ...
    ]
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from transport_py.aws.s3 import permanent_url
from transport_py.runtime_utils.remote_files import BucketCategory
from transport_py.runtime_utils.transport_exception import (
    UnhandledSeverityError,
    ValidatorReportError,
)
from transport_py.validation.catalog import ResourceSnapshot

# occurrence examples kept per rule, the full count is kept separately
MAX_ERRORS_PER_SECTION = 5


class Severity(str, Enum):
    """severity levels the validator reports, lowest first"""

    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class RuleFinding:
    """all occurrences of one broken validation rule"""

    error_id: str
    severity: str
    title: str
    description: str
    errors_count: int
    errors: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_id": self.error_id,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "errors_count": self.errors_count,
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class ValidationFiles:
    """which GTFS snapshot and which gtfs-rt capture were validated"""

    gtfs_resource_history_uuid: str
    gtfs_permanent_url: str
    gtfs_rt_filename: str
    gtfs_rt_permanent_url: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "gtfs_resource_history_uuid": self.gtfs_resource_history_uuid,
            "gtfs_permanent_url": self.gtfs_permanent_url,
            "gtfs_rt_filename": self.gtfs_rt_filename,
            "gtfs_rt_permanent_url": self.gtfs_rt_permanent_url,
        }


def _new_uuid() -> str:
    return str(uuid.uuid4())


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ValidationReport:
    """
    normalized validator findings for one gtfs-rt resource, with provenance.
    max_severity is None exactly when there are no findings.
    """

    errors: List[RuleFinding]
    max_severity: Optional[str]
    files: ValidationFiles
    uuid: str = field(default_factory=_new_uuid)
    datetime: str = field(default_factory=_utc_now)

    @property
    def errors_count(self) -> int:
        return sum(finding.errors_count for finding in self.errors)

    @property
    def has_errors(self) -> bool:
        return self.errors_count > 0

    def to_dict(self) -> Dict[str, Any]:
        """persisted json layout"""
        return {
            "errors_count": self.errors_count,
            "has_errors": self.has_errors,
            "errors": [finding.to_dict() for finding in self.errors],
            "max_severity": self.max_severity,
            "files": self.files.to_dict(),
            "uuid": self.uuid,
            "datetime": self.datetime,
        }


def _parse_finding(entry: Dict[str, Any]) -> RuleFinding:
    rule = entry["errorMessage"]["validationRule"]
    suffix = rule["occurrenceSuffix"]
    occurrence_list = entry["occurrenceList"]

    return RuleFinding(
        error_id=rule["errorId"],
        severity=rule["severity"],
        title=rule["title"],
        description=rule["errorDescription"],
        errors_count=len(occurrence_list),
        errors=[f"{occurrence['prefix']} {suffix}" for occurrence in occurrence_list[:MAX_ERRORS_PER_SECTION]],
    )


def parse_validator_output(raw: Any) -> List[RuleFinding]:
    """
    convert the decoded validator json into rule findings

    raises ValidatorReportError if the structure is not what the validator
    is known to produce
    """
    if not isinstance(raw, list):
        raise ValidatorReportError(f"Expected a list of validation rules, got {type(raw).__name__}")

    try:
        return [_parse_finding(entry) for entry in raw]
    except (KeyError, TypeError) as exception:
        raise ValidatorReportError(f"Unexpected validator output: {exception!r}") from exception


def read_validator_output(path: str) -> List[RuleFinding]:
    """read and parse the <gtfs_rt_path>.results.json file"""
    try:
        with open(path, "r", encoding="utf8") as reader:
            raw = json.load(reader)
    except (OSError, ValueError) as exception:
        raise ValidatorReportError(f"Unable to read validator output {path}: {exception}") from exception

    return parse_validator_output(raw)


def get_max_severity(findings: List[RuleFinding]) -> Optional[str]:
    """
    highest severity among the findings, None if there are none. any
    severity other than WARNING or ERROR raises UnhandledSeverityError.
    """
    severities = {finding.severity for finding in findings}
    if not severities:
        return None

    known = {severity.value for severity in Severity}
    if not severities.issubset(known):
        raise UnhandledSeverityError(severities)

    if Severity.ERROR.value in severities:
        return Severity.ERROR.value
    return Severity.WARNING.value


def build_validation_report(
    gtfs_snapshot: ResourceSnapshot,
    findings: List[RuleFinding],
    gtfs_rt_storage_key: str,
) -> ValidationReport:
    """attach provenance, a fresh uuid and the current time to findings"""
    return ValidationReport(
        errors=findings,
        max_severity=get_max_severity(findings),
        files=ValidationFiles(
            gtfs_resource_history_uuid=gtfs_snapshot.uuid,
            gtfs_permanent_url=gtfs_snapshot.permanent_url,
            gtfs_rt_filename=gtfs_rt_storage_key,
            gtfs_rt_permanent_url=permanent_url(BucketCategory.HISTORY, gtfs_rt_storage_key),
        ),
    )


def parse(
    raw: Any,
    gtfs_snapshot: ResourceSnapshot,
    gtfs_rt_storage_key: str,
) -> ValidationReport:
    """decoded validator json to a complete ValidationReport"""
    return build_validation_report(gtfs_snapshot, parse_validator_output(raw), gtfs_rt_storage_key)
