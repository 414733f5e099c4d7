"""
Post-processing of a finished recording

Runs in its own detached process, after the invocation that stopped the
recording has released the guard and exited:
- Validates the capture artifact
- Runs the speech-to-text engine on it
- Pastes the transcript into the focused application
- Removes the artifact and transcript whatever happened

The artifact is handed over under a per-session name, so a new recording
started meanwhile never shares a path with the one being transcribed.
"""

import argparse
import logging
import subprocess
import sys
from pathlib import Path
from typing import Callable, List, Optional

from whisper_toggle.config import Config, ConfigError
from whisper_toggle.output import paste_text

logger = logging.getLogger(__name__)

ENGINES = ("mlx_whisper", "faster_whisper")


def transcript_path(output_dir: Path, artifact: Path) -> Path:
    """Where every engine writes the text for artifact"""
    return output_dir / f"{artifact.stem}.txt"


def build_transcribe_command(config: Config, artifact: Path, output_dir: Path) -> List[str]:
    """
    Command line for the configured engine

    Raises:
        ValueError: For an unknown engine name
    """
    t = config.transcription
    if t.engine == "mlx_whisper":
        return [
            t.command, str(artifact),
            "--model", t.model,
            "--output-format", "txt",
            "--output-dir", str(output_dir),
            "--language", t.language,
        ]
    if t.engine == "faster_whisper":
        return [
            sys.executable, "-m", "whisper_toggle.transcribe", str(artifact),
            "--model", t.model,
            "--output-dir", str(output_dir),
            "--language", t.language,
            "--device", t.device,
            "--compute-type", t.compute_type,
            "--beam-size", str(t.beam_size),
        ]
    raise ValueError(f"unknown transcription engine: {t.engine!r} (expected one of {', '.join(ENGINES)})")


class PostProcessor:
    """Turns one capture artifact into pasted text"""

    def __init__(
        self,
        config: Config,
        artifact: Optional[Path] = None,
        paste: Optional[Callable[[str], bool]] = None,
    ):
        self.config = config
        self.artifact = Path(artifact) if artifact is not None else Path(config.paths.wav_file)
        self.output_dir = Path(config.paths.output_dir)
        self.transcript_file = transcript_path(self.output_dir, self.artifact)
        self._paste = paste or (
            lambda text: paste_text(config.output, text, Path(config.paths.log_file))
        )

    def run(self) -> bool:
        """
        Process the artifact once

        Returns:
            True if a transcript was pasted
        """
        try:
            return self._process()
        finally:
            self.cleanup()

    def _process(self) -> bool:
        if not self.artifact.exists():
            logger.info(f"Wav missing ({self.artifact}); aborting transcription")
            return False

        size = self.artifact.stat().st_size
        if size < self.config.transcription.min_audio_bytes:
            logger.info(f"Wav too small ({size}b); aborting")
            return False

        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.transcript_file.unlink(missing_ok=True)

        logger.info("Transcription started")
        if not self._transcribe():
            return False

        if not self.transcript_file.exists():
            logger.warning("Output txt missing after transcription")
            return False

        text = self.transcript_file.read_text(encoding="utf-8", errors="replace").strip()
        if not text:
            logger.info("Empty transcription; nothing to paste")
            return False

        if not self._paste(text):
            return False
        logger.info(f"Paste completed ({len(text.split())} words)")
        return True

    def _transcribe(self) -> bool:
        engine = self.config.transcription.engine
        try:
            cmd = build_transcribe_command(self.config, self.artifact, self.output_dir)
        except ValueError as e:
            logger.error(f"Transcription not possible: {e}")
            return False

        try:
            with open(self.config.paths.log_file, "ab") as log:
                result = subprocess.run(
                    cmd,
                    stdin=subprocess.DEVNULL,
                    stdout=log,
                    stderr=log,
                    timeout=self.config.transcription.timeout,
                    check=False,
                )
        except subprocess.TimeoutExpired:
            logger.error(f"{engine} timed out after {self.config.transcription.timeout}s")
            return False
        except OSError as e:
            logger.error(f"{engine} could not be started: {e}")
            return False

        if result.returncode != 0:
            logger.error(f"{engine} failed (exit {result.returncode})")
            return False
        return True

    def cleanup(self) -> None:
        """Remove the artifact, its transcript and the output dir once empty"""
        for path in (self.artifact, self.transcript_file):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove {path}: {e}")

        # Another session's transcription may still be using the directory
        try:
            self.output_dir.rmdir()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(f"Leaving {self.output_dir} in place: {e}")


def spawn_detached(config: Config, artifact: Path) -> Optional[int]:
    """
    Launch post-processing in a new session and return without waiting

    Returns:
        pid of the post-processing process, or None if it could not start
    """
    cmd = [sys.executable, "-m", "whisper_toggle.postprocess", str(artifact)]
    if config.source is not None:
        cmd += ["--config", str(config.source)]
    try:
        process = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        logger.error(f"Could not spawn transcription: {e}")
        return None
    logger.info(f"Transcription spawned pid={process.pid}")
    return process.pid


def main(args: Optional[List[str]] = None) -> int:
    """Entry point of the detached post-processing process"""
    from whisper_toggle.cli import setup_logging

    parser = argparse.ArgumentParser(prog="whisper-toggle-postprocess")
    parser.add_argument("artifact", type=Path, nargs="?", help="Recorded WAV (default: paths.wav_file)")
    parser.add_argument("-c", "--config", type=Path)
    parser.add_argument("-v", "--verbose", action="store_true")
    parsed = parser.parse_args(args)

    try:
        config = Config.load(parsed.config)
    except ConfigError as e:
        print(e, file=sys.stderr)
        return 1

    setup_logging(config.paths.log_file, verbose=parsed.verbose)
    PostProcessor(config, artifact=parsed.artifact).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
