"""
Process liveness and termination

The capture subprocess outlives the invocation that spawned it, so later
invocations only know it by pid. Everything here works from a bare pid.
"""

import logging
import math
import os
import signal
import time
from typing import Callable

logger = logging.getLogger(__name__)


class ProcessControl:
    """Liveness probe and signal delivery for arbitrary pids"""

    def is_alive(self, pid: int) -> bool:
        """
        Check whether pid denotes a live process we may signal

        Signal 0 performs the permission and existence checks without
        delivering anything. A process owned by someone else counts as not
        alive: it cannot be ours.
        """
        if pid <= 0:
            # 0 and negatives address process groups
            return False
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            logger.debug(f"Process {pid} exists but is not signalable")
            return False
        return True

    def send_signal(self, pid: int, sig: int) -> bool:
        """
        Deliver sig to pid

        Returns:
            False if the process was already gone
        """
        if pid <= 0:
            return False
        try:
            os.kill(pid, sig)
        except ProcessLookupError:
            return False
        return True


def stop_process(
    control: ProcessControl,
    pid: int,
    timeout: float = 5.0,
    poll_interval: float = 0.05,
    stop_signal: int = signal.SIGINT,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """
    Ask a process to exit, escalating to SIGKILL after a grace period

    SIGINT lets ffmpeg finalize the WAV header before exiting.

    Args:
        control: Process probe
        pid: Target process
        timeout: Grace period in seconds
        poll_interval: Delay between liveness checks
        stop_signal: Signal used for the graceful request
        sleep: Sleep function (injected in tests)

    Returns:
        True if the process had to be force killed
    """
    try:
        if not control.send_signal(pid, stop_signal):
            logger.debug(f"Process {pid} already gone before stop signal")
            return False
    except OSError as e:
        logger.warning(f"Could not signal process {pid}: {e}")

    max_polls = max(1, math.ceil(timeout / poll_interval)) if poll_interval > 0 else 1
    for _ in range(max_polls):
        if not control.is_alive(pid):
            return False
        sleep(poll_interval)

    if not control.is_alive(pid):
        return False

    logger.warning(f"Process {pid} did not exit after {timeout:g}s; force killing")
    try:
        control.send_signal(pid, signal.SIGKILL)
    except OSError as e:
        logger.error(f"Could not kill process {pid}: {e}")
    return True
