"""
Audio capture subprocess

ffmpeg writes a 16-bit WAV to the artifact path until interrupted. It runs
in its own session so it survives the invocation that started it.
"""

import logging
import subprocess
from pathlib import Path
from typing import List

from whisper_toggle.config import PathsConfig, RecordingConfig

logger = logging.getLogger(__name__)


def build_capture_command(config: RecordingConfig, device: str, wav_file: Path) -> List[str]:
    return [
        config.ffmpeg,
        "-f", config.input_format,
        "-i", device,
        "-ac", str(config.channels),
        "-ar", str(config.sample_rate),
        "-sample_fmt", "s16",
        "-thread_queue_size", "512",
        "-fflags", "+nobuffer",
        "-y", str(wav_file),
    ]


class CaptureLauncher:
    """Spawns ffmpeg and hands back its pid"""

    def __init__(self, recording: RecordingConfig, paths: PathsConfig):
        self.recording = recording
        self.paths = paths

    def start(self, device: str) -> int:
        """
        Start capturing from device into the artifact path

        Returns:
            pid of the capture process

        Raises:
            OSError: If ffmpeg cannot be started
        """
        cmd = build_capture_command(self.recording, device, Path(self.paths.wav_file))
        logger.debug(f"Capture command: {' '.join(cmd)}")
        with open(self.paths.log_file, "ab") as log:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=log,
                stderr=log,
                start_new_session=True,
            )
        return process.pid
