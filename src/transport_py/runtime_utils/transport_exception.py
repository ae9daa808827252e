class TransportValidationException(Exception):
    """
    Generic exception for the gtfs-rt validation pipeline. Anything raised
    from this family aborts the whole dataset run.
    """


class DatasetNotFound(TransportValidationException):
    """
    The dataset a job was queued for no longer exists
    """

    def __init__(self, dataset_id: int):
        super().__init__(f"Dataset {dataset_id} not found")
        self.dataset_id = dataset_id


class NoRealtimeResources(TransportValidationException):
    """
    The dataset has no available gtfs-rt resource to validate
    """

    def __init__(self, dataset_id: int):
        super().__init__(f"Should have gtfs-rt resources for Dataset {dataset_id}")
        self.dataset_id = dataset_id


class NoStaticFeedResource(TransportValidationException):
    """
    The dataset does not have exactly one available GTFS resource that is
    valid today
    """

    def __init__(self, dataset_id: int, candidate_count: int):
        super().__init__(
            f"Expected exactly one valid GTFS resource for Dataset {dataset_id}, found {candidate_count}"
        )
        self.dataset_id = dataset_id
        self.candidate_count = candidate_count


class NoSnapshotAvailable(TransportValidationException):
    """
    No resource history exists for the static GTFS resource
    """

    def __init__(self, datagouv_id: str):
        super().__init__(f"No resource history for GTFS resource {datagouv_id}")
        self.datagouv_id = datagouv_id


class StaticFeedDownloadError(TransportValidationException):
    """
    The GTFS snapshot could not be downloaded, validation can not proceed
    """


class UnhandledSeverityError(TransportValidationException):
    """
    The validator reported a severity level outside of WARNING and ERROR
    """

    def __init__(self, severities: set):
        super().__init__(f"Some severity levels are not handled {sorted(severities)}")
        self.severities = severities


class ValidatorReportError(TransportValidationException):
    """
    The validator output could not be read or does not have the expected shape
    """
