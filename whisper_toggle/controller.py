"""
Recording state machine

States are Idle and Recording(mode). The state is never held in memory
between invocations; each dispatch derives it from the session store,
applies one command, and writes the result back.

    command           Idle            Recording(toggle|unset)  Recording(hold)
    toggle            start(toggle)   stop                     ignored
    hold-start        start(hold)     ignored                  ignored
    release           ignored         ignored                  stop
    switch-to-toggle  ignored         ignored                  mode := toggle

The caller must hold the guard. Stopping releases it before handing the
artifact to post-processing.
"""

import logging
import signal
import time
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from whisper_toggle.capture import CaptureLauncher
from whisper_toggle.config import Config
from whisper_toggle.devices import DeviceResolver
from whisper_toggle.lock import InvocationGuard
from whisper_toggle.output import play_sound
from whisper_toggle.postprocess import spawn_detached
from whisper_toggle.process import ProcessControl, stop_process
from whisper_toggle.state import Mode, Session, SessionStore

logger = logging.getLogger(__name__)


class Command(str, Enum):
    TOGGLE = "toggle"
    HOLD_START = "hold-start"
    RELEASE = "release"
    SWITCH_TO_TOGGLE = "switch-to-toggle"


class Outcome(str, Enum):
    """What a dispatch did"""
    STARTED = "started"
    STOPPED = "stopped"
    SWITCHED = "switched"
    IGNORED = "ignored"
    FAILED = "failed"


class RecordingController:
    """
    Applies hotkey commands to the persisted recording session

    Collaborators default to the real implementations built from config;
    tests replace them.
    """

    def __init__(
        self,
        config: Config,
        guard: InvocationGuard,
        processes: Optional[ProcessControl] = None,
        store: Optional[SessionStore] = None,
        resolve_device: Optional[Callable[[], str]] = None,
        launch_capture: Optional[Callable[[str], int]] = None,
        play_cue: Optional[Callable[[str], None]] = None,
        spawn_postprocess: Optional[Callable[[Path], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.guard = guard
        self.processes = processes or ProcessControl()
        self.store = store or SessionStore(
            config.paths.pid_file,
            config.paths.mode_file,
            is_alive=self.processes.is_alive,
        )
        self.wav_file = Path(config.paths.wav_file)
        self._resolve_device = resolve_device or DeviceResolver(config.recording).resolve
        self._launch_capture = launch_capture or CaptureLauncher(config.recording, config.paths).start
        self._play_cue = play_cue or (lambda sound: play_sound(config.sounds, sound))
        self._spawn_postprocess = spawn_postprocess or (lambda artifact: spawn_detached(config, artifact))
        self._sleep = sleep

    def dispatch(self, command: Command) -> Outcome:
        """Read the current session once and apply command to it"""
        session = self.store.read_session()
        logger.debug(f"cmd={command.value} session={session}")

        if command is Command.TOGGLE:
            return self._toggle(session)
        if command is Command.HOLD_START:
            return self._hold_start(session)
        if command is Command.RELEASE:
            return self._release(session)
        if command is Command.SWITCH_TO_TOGGLE:
            return self._switch_to_toggle(session)
        raise ValueError(f"unknown command: {command!r}")

    def _toggle(self, session: Optional[Session]) -> Outcome:
        if session is None:
            return self.start_recording(Mode.TOGGLE, session)
        # An empty mode stops like toggle; any other text must match exactly.
        if session.mode is Mode.TOGGLE or not session.raw_mode:
            return self.stop_recording(session)
        logger.info(f"Toggle ignored; mode={session.raw_mode}")
        return Outcome.IGNORED

    def _hold_start(self, session: Optional[Session]) -> Outcome:
        if session is not None:
            logger.info("Hold-start ignored; already recording")
            return Outcome.IGNORED
        return self.start_recording(Mode.HOLD, session)

    def _release(self, session: Optional[Session]) -> Outcome:
        if session is None:
            logger.info("Release ignored; idle")
            return Outcome.IGNORED
        if session.mode is not Mode.HOLD:
            logger.info(f"Release ignored; mode={session.raw_mode}")
            return Outcome.IGNORED
        return self.stop_recording(session)

    def _switch_to_toggle(self, session: Optional[Session]) -> Outcome:
        if session is None or session.mode is not Mode.HOLD:
            logger.debug("Switch-to-toggle ignored")
            return Outcome.IGNORED
        self.store.write_mode(Mode.TOGGLE)
        logger.info("Switched to toggle")
        return Outcome.SWITCHED

    def start_recording(self, mode: Mode, session: Optional[Session]) -> Outcome:
        """
        Spawn the capture process and persist the new session

        Args:
            mode: How the recording is meant to end
            session: Current session as read by dispatch
        """
        if session is not None:
            logger.info("Start ignored; already recording")
            return Outcome.IGNORED

        try:
            self.wav_file.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove leftover {self.wav_file}: {e}")

        self.store.write_mode(mode)
        device = self._resolve_device()

        try:
            pid = self._launch_capture(device)
        except OSError as e:
            logger.error(f"Capture could not be started: {e}")
            self.store.clear()
            return Outcome.FAILED

        try:
            self.store.write_pid(pid)
        except OSError as e:
            logger.error(f"Could not persist pid {pid}: {e}; killing it")
            self.processes.send_signal(pid, signal.SIGKILL)
            self.store.clear()
            return Outcome.FAILED

        logger.info(f"Recording started pid={pid} mode={mode.value}")
        self._play_cue(self.config.sounds.start)
        return Outcome.STARTED

    def stop_recording(self, session: Session) -> Outcome:
        """
        Stop capture, clear the session, release the guard, start post-processing
        """
        logger.info(f"Stopping pid={session.pid}")
        stop_process(
            self.processes,
            session.pid,
            timeout=self.config.recording.stop_timeout,
            poll_interval=self.config.recording.poll_interval,
            sleep=self._sleep,
        )
        self.store.clear()
        self._play_cue(self.config.sounds.stop)

        artifact = self._hand_off_artifact(session.pid)
        self.guard.release()
        if artifact is not None:
            self._spawn_postprocess(artifact)
        return Outcome.STOPPED

    def _hand_off_artifact(self, pid: int) -> Optional[Path]:
        """
        Move the recording to a per-session name owned by post-processing

        The shared capture path is never handed off: once the guard is
        released the next start may already be writing to it.
        """
        target = self.wav_file.with_name(f"{self.wav_file.stem}-{pid}{self.wav_file.suffix}")
        try:
            self.wav_file.replace(target)
        except FileNotFoundError:
            logger.warning(f"No recording at {self.wav_file}")
        except OSError as e:
            logger.error(f"Could not move {self.wav_file} to {target}: {e}; skipping transcription")
            return None
        return target