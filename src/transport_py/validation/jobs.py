import os
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Set, Tuple

from transport_py.aws.ecs import check_for_sigterm
from transport_py.runtime_utils.process_logger import ProcessLogger

# dataset validation jobs get this many attempts before being dropped
MAX_ATTEMPTS = 5

# delay before the first retry of a failed job, doubled on every further attempt
RETRY_BASE_SECONDS = int(os.environ.get("RETRY_BASE_SECONDS", "60"))


class JobQueue(ABC):
    """
    Where dispatched dataset validations go. Implementations are expected to
    deliver every job at least once and to drop duplicates of a dataset that
    is already queued for the current window.
    """

    @abstractmethod
    def enqueue(self, dataset_id: int) -> bool:
        """
        queue a validation of dataset_id

        :return: True if a new job was queued, False if it was a duplicate
        """


@dataclass
class QueuedJob:
    """a dataset validation waiting in the queue"""

    dataset_id: int
    window: int
    attempts: int = 0
    not_before: float = 0.0

    @property
    def key(self) -> Tuple[int, int]:
        return (self.dataset_id, self.window)


class InProcessJobQueue(JobQueue):
    """
    Job queue living inside of the service process. Jobs are unique per
    (dataset_id, window), where the window is the dispatch interval the job
    was enqueued in. A failed job is scheduled again after an exponential
    backoff, up to max_attempts attempts.
    """

    def __init__(
        self,
        window_seconds: int,
        max_attempts: int = MAX_ATTEMPTS,
        retry_base_seconds: float = RETRY_BASE_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.window_seconds = window_seconds
        self.max_attempts = max_attempts
        self.retry_base_seconds = retry_base_seconds
        self.clock = clock

        self.pending: Deque[QueuedJob] = deque()
        self.seen: Set[Tuple[int, int]] = set()

    def _window(self) -> int:
        return int(self.clock() // self.window_seconds)

    def enqueue(self, dataset_id: int) -> bool:
        job = QueuedJob(dataset_id=dataset_id, window=self._window())
        if job.key in self.seen:
            return False

        self.seen.add(job.key)
        self.pending.append(job)
        return True

    def __len__(self) -> int:
        return len(self.pending)

    def retry_delay(self, attempts: int) -> float:
        """seconds to wait after the given number of failed attempts"""
        return self.retry_base_seconds * 2 ** (attempts - 1)

    def run_pending(self, handler: Callable[[int], None]) -> List[int]:
        """
        run every job that is due with handler(dataset_id), each at most once
        per call. a job that raises is kept with a later not_before until it
        runs out of attempts. jobs that are not due yet stay queued.

        :return: dataset ids that exhausted their attempts
        """
        now = self.clock()
        due = [job for job in self.pending if job.not_before <= now]
        if not due:
            return []

        process_logger = ProcessLogger("run_validation_jobs", job_count=len(due), queued_count=len(self.pending))
        process_logger.log_start()

        self.pending = deque(job for job in self.pending if job.not_before > now)

        discarded: List[int] = []
        for job in due:
            check_for_sigterm()

            job.attempts += 1
            job_logger = ProcessLogger("validation_job", dataset_id=job.dataset_id, attempt=job.attempts)
            job_logger.log_start()
            try:
                handler(job.dataset_id)
            except Exception as exception:
                job_logger.log_failure(exception)
                if job.attempts < self.max_attempts:
                    job.not_before = self.clock() + self.retry_delay(job.attempts)
                    job_logger.add_metadata(retry_at=job.not_before)
                    self.pending.append(job)
                else:
                    discarded.append(job.dataset_id)
                continue

            job_logger.log_complete()

        self._forget_old_windows()

        process_logger.add_metadata(discarded_count=len(discarded), retry_count=len(self.pending))
        process_logger.log_complete()
        return discarded

    def _forget_old_windows(self) -> None:
        """drop uniqueness keys from windows that have passed and have nothing queued"""
        keep = self._window()
        queued = {job.key for job in self.pending}
        self.seen = {key for key in self.seen if key[1] >= keep or key in queued}
