"""
Inter-invocation guard

Every hotkey press is a separate process, so mutual exclusion is done with a
marker directory: mkdir either creates it atomically or fails because another
invocation already holds it. Acquisition never waits.
"""

import logging
import os
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


class InvocationGuard:
    """
    Non-blocking, exclusive, system-wide lock backed by a directory

    Usage:
        with InvocationGuard(path) as acquired:
            if not acquired:
                return  # someone else is mid-transition
            ...

    release() is idempotent and may be called early (before the scope ends)
    to let the next invocation in while slow work continues elsewhere.
    """

    def __init__(self, marker: Union[str, Path]):
        self.marker = Path(marker)
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> bool:
        """
        Try to create the marker

        Returns:
            True if this invocation now holds the guard, False if the
            marker already exists
        """
        if self._held:
            return True
        try:
            os.mkdir(self.marker)
        except FileExistsError:
            return False
        self._held = True
        logger.debug(f"Guard acquired: {self.marker}")
        return True

    def release(self) -> None:
        """Remove the marker if this invocation holds it"""
        if not self._held:
            return
        self._held = False
        try:
            os.rmdir(self.marker)
        except OSError as e:
            logger.warning(f"Could not remove guard {self.marker}: {e}")
            return
        logger.debug(f"Guard released: {self.marker}")

    def __enter__(self) -> bool:
        return self.acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
