import signal
from pathlib import Path

import pytest

from whisper_toggle.config import Config, PathsConfig, RecordingConfig, SoundConfig
from whisper_toggle.controller import RecordingController
from whisper_toggle.lock import InvocationGuard


class FakeProcesses:
    """In-memory process table standing in for os.kill"""

    def __init__(self):
        self.alive = set()
        # pids that ignore everything but SIGKILL
        self.stubborn = set()
        self.signals = []
        self._next_pid = 4000

    def spawn(self) -> int:
        pid = self._next_pid
        self._next_pid += 1
        self.alive.add(pid)
        return pid

    def is_alive(self, pid: int) -> bool:
        return pid in self.alive

    def send_signal(self, pid: int, sig: int) -> bool:
        self.signals.append((pid, sig))
        if pid not in self.alive:
            return False
        if sig == signal.SIGKILL or pid not in self.stubborn:
            self.alive.discard(pid)
        return True


class Rig:
    """
    Drives the controller the way separate hotkey invocations would:
    every invoke() takes the guard afresh and builds a new controller.
    """

    def __init__(self, config: Config):
        self.config = config
        self.processes = FakeProcesses()
        self.launched = []
        self.cues = []
        self.handoffs = []
        self.launch_error = None
        self.write_audio = b""

    @property
    def pid_file(self) -> Path:
        return Path(self.config.paths.pid_file)

    @property
    def mode_file(self) -> Path:
        return Path(self.config.paths.mode_file)

    @property
    def wav_file(self) -> Path:
        return Path(self.config.paths.wav_file)

    def launch(self, device: str) -> int:
        if self.launch_error is not None:
            raise self.launch_error
        pid = self.processes.spawn()
        self.launched.append((pid, device))
        if self.write_audio:
            self.wav_file.write_bytes(self.write_audio)
        return pid

    def controller(self, guard: InvocationGuard) -> RecordingController:
        return RecordingController(
            self.config,
            guard,
            processes=self.processes,
            resolve_device=lambda: ":1",
            launch_capture=self.launch,
            play_cue=self.cues.append,
            spawn_postprocess=lambda artifact: self.handoffs.append((artifact, guard.held)),
            sleep=lambda seconds: None,
        )

    def invoke(self, command):
        guard = InvocationGuard(self.config.paths.lock_dir)
        with guard as acquired:
            if not acquired:
                return None
            return self.controller(guard).dispatch(command)


@pytest.fixture
def config(tmp_path) -> Config:
    """Config with all shared state under tmp_path and sounds off"""
    return Config(
        paths=PathsConfig(
            log_file=str(tmp_path / "whisper-toggle.log"),
            lock_dir=str(tmp_path / "whisper.lock.d"),
            pid_file=str(tmp_path / "whisper-recording.pid"),
            mode_file=str(tmp_path / "whisper-mode"),
            wav_file=str(tmp_path / "whisper-recording.wav"),
            output_dir=str(tmp_path / "whisper_out"),
        ),
        recording=RecordingConfig(stop_timeout=0.5, poll_interval=0.05),
        sounds=SoundConfig(enabled=False, start="start.aiff", stop="stop.aiff"),
    )


@pytest.fixture
def rig(config) -> Rig:
    return Rig(config)
