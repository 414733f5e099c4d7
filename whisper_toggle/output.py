"""
Output handling

Sound cues, clipboard and paste automation
"""

import logging
import subprocess
from pathlib import Path

from whisper_toggle.config import OutputConfig, SoundConfig

logger = logging.getLogger(__name__)


def play_sound(config: SoundConfig, sound: str) -> None:
    """Play a cue without waiting for it. Failures are only logged."""
    if not config.enabled or not sound:
        return
    try:
        subprocess.Popen(
            [config.player, sound],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        logger.warning(f"Could not play {sound}: {e}")


def paste_text(config: OutputConfig, text: str, log_file: Path) -> bool:
    """
    Copy text to the clipboard and paste it into the focused application

    Returns:
        True if both steps succeeded
    """
    try:
        subprocess.run(config.copy_command, input=text, text=True, check=True)
    except (OSError, subprocess.CalledProcessError) as e:
        logger.error(f"Clipboard copy failed: {e}")
        return False

    try:
        with open(log_file, "ab") as log:
            subprocess.run(config.paste_command, stdout=log, stderr=log, check=True)
    except (OSError, subprocess.CalledProcessError) as e:
        logger.error(f"Paste failed: {e}")
        return False
    return True
