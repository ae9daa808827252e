import time
import os
import sys
from typing import Any

from transport_py.runtime_utils.process_logger import ProcessLogger


def handle_ecs_sigterm(_: int, __: Any) -> None:
    """
    handler function for when ECS recieves ECS SIGTERM
    """
    process_logger = ProcessLogger("sigterm_received")
    process_logger.log_start()
    os.environ["GOT_SIGTERM"] = "TRUE"
    process_logger.log_complete()


def check_for_sigterm() -> None:
    """
    check if SIGTERM recived from ECS. If found, terminate process.

    sys.exit raises SystemExit, so any enclosing finally blocks (scratch file
    cleanup) still run on the way out.
    """
    if os.environ.get("GOT_SIGTERM") is not None:
        process_logger = ProcessLogger("stopping_ecs")
        process_logger.log_start()
        process_logger.log_complete()

        # delay for log statements to write before ecs death
        time.sleep(5)

        sys.exit()
