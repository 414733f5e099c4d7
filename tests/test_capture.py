from pathlib import Path

from whisper_toggle import capture
from whisper_toggle.capture import CaptureLauncher, build_capture_command
from whisper_toggle.config import RecordingConfig


class TestCommand:
    def test_ffmpeg_arguments(self):
        cmd = build_capture_command(RecordingConfig(), ":2", Path("/tmp/rec.wav"))
        assert cmd == [
            "/opt/homebrew/bin/ffmpeg",
            "-f", "avfoundation",
            "-i", ":2",
            "-ac", "1",
            "-ar", "16000",
            "-sample_fmt", "s16",
            "-thread_queue_size", "512",
            "-fflags", "+nobuffer",
            "-y", "/tmp/rec.wav",
        ]


class TestLauncher:
    def test_detached_and_logged(self, config, monkeypatch):
        seen = {}

        class FakePopen:
            pid = 31337

            def __init__(self, cmd, **kwargs):
                seen["cmd"] = cmd
                seen["kwargs"] = kwargs

        monkeypatch.setattr(capture.subprocess, "Popen", FakePopen)

        pid = CaptureLauncher(config.recording, config.paths).start(":0")

        assert pid == 31337
        assert seen["cmd"][-1] == config.paths.wav_file
        assert seen["kwargs"]["start_new_session"] is True
        assert seen["kwargs"]["stdout"].name == config.paths.log_file
