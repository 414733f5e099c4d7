"""
Durable session state

The only memory shared between invocations: two small files holding the
capture pid and the recording mode. Each field is written by atomic
replace, so readers see either the old or the new value, never a torn one.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    """How the active recording is meant to end"""
    HOLD = "hold"
    TOGGLE = "toggle"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Mode"]:
        """Map a stored value to a Mode; only the exact spelling matches"""
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class Session:
    """A capture subprocess believed to be running"""
    pid: int
    # None when the mode field is empty, unreadable or not a known mode
    mode: Optional[Mode]
    # mode field as stored, for logging and the empty-mode check
    raw_mode: str = ""


class SessionStore:
    """
    File-backed projection of the current Session

    read_session() always goes to disk and always re-checks liveness;
    nothing is cached between calls.
    """

    def __init__(
        self,
        pid_file: Union[str, Path],
        mode_file: Union[str, Path],
        is_alive: Callable[[int], bool],
    ):
        self.pid_file = Path(pid_file)
        self.mode_file = Path(mode_file)
        self._is_alive = is_alive

    def read_session(self) -> Optional[Session]:
        """
        Return the live session, healing stale state on the way

        Returns:
            Session if the stored pid is alive, None otherwise
        """
        raw_pid = _read_field(self.pid_file)
        if raw_pid is None:
            return None

        pid = _parse_pid(raw_pid)
        if pid is None or not self._is_alive(pid):
            logger.info(f"Stale pid {raw_pid!r}; cleaning state")
            self.clear()
            return None

        raw_mode = _read_field(self.mode_file) or ""
        return Session(pid=pid, mode=Mode.parse(raw_mode), raw_mode=raw_mode)

    def read_mode(self) -> Optional[Mode]:
        return Mode.parse(_read_field(self.mode_file))

    def write_mode(self, mode: Mode) -> None:
        _write_field(self.mode_file, mode.value)

    def write_pid(self, pid: int) -> None:
        _write_field(self.pid_file, str(pid))

    def write_session(self, session: Session) -> None:
        """Persist a session; mode lands before pid so a visible pid always has one"""
        if session.mode is not None:
            self.write_mode(session.mode)
        self.write_pid(session.pid)

    def clear(self) -> None:
        """Remove both fields (best effort)"""
        for path in (self.pid_file, self.mode_file):
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Could not remove {path}: {e}")


def _read_field(path: Path) -> Optional[str]:
    """
    Read a field; None if it does not exist, empty string if unreadable

    Only trailing newlines are dropped, the way shell command substitution
    reads these files.
    """
    try:
        return path.read_text().rstrip("\n")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return ""


def _write_field(path: Path, value: str) -> None:
    """Overwrite a field via write-then-rename"""
    tmp_path = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    try:
        tmp_path.write_text(value)
        os.replace(tmp_path, path)
    except OSError:
        try:
            tmp_path.unlink()
        except OSError:
            pass
        raise


def _parse_pid(raw: str) -> Optional[int]:
    try:
        pid = int(raw)
    except ValueError:
        return None
    return pid if pid > 0 else None
