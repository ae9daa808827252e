import asyncio
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from transport_py.runtime_utils.process_logger import ProcessLogger

VALIDATOR_FILENAME = "gtfs-realtime-validator-lib-1.0.0-SNAPSHOT.jar"

# characters of validator stderr kept in failure messages
STDERR_TAIL_LENGTH = 500

# seconds a validator run may take before it is killed
VALIDATOR_TIMEOUT_SECONDS = int(os.environ.get("VALIDATOR_TIMEOUT_SECONDS", "600"))


@dataclass(frozen=True)
class ValidatorResult:
    """outcome of one validator run, message is set on failure"""

    success: bool
    message: Optional[str] = None


async def _kill(process: asyncio.subprocess.Process) -> None:
    """kill a validator run and reap it"""
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


class GtfsRtValidator(ABC):
    """
    Validation engine checking a directory of gtfs-rt captures against a
    GTFS file. Findings are written to <gtfs_rt_file>.results.json next to
    each capture, the invoker only reports whether the run worked.
    """

    @abstractmethod
    async def invoke(self, gtfs_path: str, gtfs_rt_dir: str) -> ValidatorResult:
        """run the engine, never raising for an engine failure"""


class JarValidator(GtfsRtValidator):
    """
    Runs the CUTR gtfs-realtime-validator batch jar as a subprocess.
    https://github.com/CUTR-at-USF/gtfs-realtime-validator/blob/master/gtfs-realtime-validator-lib/README.md#batch-processing
    """

    def __init__(
        self,
        tools_folder: Optional[str] = None,
        java_binary: Optional[str] = None,
        timeout_seconds: float = VALIDATOR_TIMEOUT_SECONDS,
    ):
        if tools_folder is None:
            tools_folder = os.environ.get("TRANSPORT_TOOLS_FOLDER", "/usr/local/share/transport-tools")
        if java_binary is None:
            java_binary = os.environ.get("JAVA_BINARY", "java")

        self.jar_path = os.path.join(tools_folder, VALIDATOR_FILENAME)
        self.java_binary = java_binary
        self.timeout_seconds = timeout_seconds

    def command(self, gtfs_path: str, gtfs_rt_dir: str) -> List[str]:
        """argument list for the subprocess"""
        return [
            self.java_binary,
            "-jar",
            self.jar_path,
            "-gtfs",
            gtfs_path,
            "-gtfsRealtimePath",
            gtfs_rt_dir,
        ]

    async def invoke(self, gtfs_path: str, gtfs_rt_dir: str) -> ValidatorResult:
        process_logger = ProcessLogger(
            "gtfs_rt_validator",
            gtfs_path=gtfs_path,
            gtfs_rt_dir=gtfs_rt_dir,
        )
        process_logger.log_start()

        try:
            process = await asyncio.create_subprocess_exec(
                *self.command(gtfs_path, gtfs_rt_dir),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exception:
            process_logger.log_failure(exception)
            return ValidatorResult(success=False, message=f"unable to start validator: {exception!r}")

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), self.timeout_seconds)
        except asyncio.TimeoutError:
            await _kill(process)
            message = f"validator timed out after {self.timeout_seconds} seconds"
            process_logger.log_failure(TimeoutError(message))
            return ValidatorResult(success=False, message=message)
        except asyncio.CancelledError:
            # the java child must not outlive a cancelled run
            if process.returncode is None:
                process.kill()
            raise

        process_logger.add_metadata(return_code=process.returncode)

        if process.returncode != 0:
            stderr_tail = stderr.decode("utf8", errors="replace")[-STDERR_TAIL_LENGTH:].strip()
            message = f"validator exited with status {process.returncode}: {stderr_tail}"
            process_logger.log_failure(RuntimeError(message))
            return ValidatorResult(success=False, message=message)

        process_logger.log_complete()
        return ValidatorResult(success=True)
