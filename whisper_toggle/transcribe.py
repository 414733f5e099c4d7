"""
Speech-to-text engine using faster-whisper

Run as a subprocess by post-processing when transcription.engine is
faster_whisper. Follows the same file contract as the mlx_whisper CLI:
reads one audio file, writes <output-dir>/<stem>.txt, exits non-zero on
failure.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from faster_whisper import WhisperModel

logger = logging.getLogger(__name__)


def transcribe_file(
    model: WhisperModel,
    audio_path: Path,
    language: Optional[str] = None,
    beam_size: int = 5,
) -> str:
    """Transcribe one file and join its segments"""
    segments, info = model.transcribe(
        str(audio_path),
        language=language or None,
        beam_size=beam_size,
    )
    text_parts = [segment.text.strip() for segment in segments]
    logger.debug(f"Detected language {info.language} ({info.duration:.1f}s of audio)")
    return " ".join(part for part in text_parts if part).strip()


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="whisper-toggle-transcribe",
        description="Transcribe an audio file with faster-whisper",
    )
    parser.add_argument("audio", type=Path, help="Audio file to transcribe")
    parser.add_argument("--model", default="large-v3-turbo", help="Whisper model name or path")
    parser.add_argument("--output-dir", type=Path, required=True, help="Directory for the .txt output")
    parser.add_argument("--language", default="en", help="Spoken language (empty to auto-detect)")
    parser.add_argument("--device", default="auto", help="cpu, cuda or auto")
    parser.add_argument("--compute-type", default="default", help="CTranslate2 compute type")
    parser.add_argument("--beam-size", type=int, default=5)
    return parser


def main(args: Optional[List[str]] = None) -> int:
    parsed = create_parser().parse_args(args)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("faster_whisper").setLevel(logging.WARNING)

    if not parsed.audio.exists():
        logger.error(f"Audio file not found: {parsed.audio}")
        return 1

    logger.info(f"Loading Whisper model: {parsed.model}")
    try:
        model = WhisperModel(
            parsed.model,
            device=parsed.device,
            compute_type=parsed.compute_type,
        )
        text = transcribe_file(model, parsed.audio, parsed.language, parsed.beam_size)
    except Exception as e:
        logger.error(f"Transcription error: {e}")
        return 1

    parsed.output_dir.mkdir(parents=True, exist_ok=True)
    output_path = parsed.output_dir / f"{parsed.audio.stem}.txt"
    output_path.write_text(text + "\n", encoding="utf-8")
    logger.info(f"Transcribed: {len(text.split())} words -> {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
