"""
Input device selection

Enumerates capture devices through ffmpeg and picks the first entry of a
priority list that is currently plugged in.
"""

import logging
import re
import subprocess
from typing import Callable, List, Optional, Sequence, Tuple

from whisper_toggle.config import RecordingConfig

logger = logging.getLogger(__name__)

Device = Tuple[int, str]

_DEVICE_LINE = re.compile(r"\[(\d+)\]\s+(.+)$")


def parse_avfoundation_devices(listing: str) -> List[Device]:
    """
    Extract (index, name) pairs from the audio section of an avfoundation listing

    Args:
        listing: stderr of `ffmpeg -f avfoundation -list_devices true -i ""`

    Returns:
        Audio devices in the order ffmpeg reported them
    """
    devices = []
    in_audio_section = False
    for line in listing.splitlines():
        if "AVFoundation audio devices" in line:
            in_audio_section = True
            continue
        if "AVFoundation video devices" in line:
            in_audio_section = False
            continue
        if not in_audio_section:
            continue
        match = _DEVICE_LINE.search(line)
        if match:
            devices.append((int(match.group(1)), match.group(2).strip()))
    return devices


def list_audio_devices(ffmpeg: str, input_format: str = "avfoundation") -> List[Device]:
    """Snapshot the audio input devices ffmpeg can see"""
    if input_format != "avfoundation":
        logger.debug(f"Device enumeration not supported for {input_format}")
        return []
    try:
        result = subprocess.run(
            [ffmpeg, "-f", "avfoundation", "-list_devices", "true", "-i", ""],
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning(f"Device enumeration failed: {e}")
        return []
    return parse_avfoundation_devices(result.stderr)


def pick_device(priority: Sequence[str], devices: Sequence[Device]) -> Optional[Device]:
    """
    First device matching the priority list

    Priority order wins over enumeration order; matching is a
    case-insensitive substring test of the priority entry in the device name.
    """
    for wanted in priority:
        needle = wanted.lower()
        for device in devices:
            if needle in device[1].lower():
                return device
    return None


class DeviceResolver:
    """Turns the configured priority list into an ffmpeg input handle"""

    def __init__(
        self,
        config: RecordingConfig,
        enumerate_devices: Optional[Callable[[], List[Device]]] = None,
    ):
        self.config = config
        self._enumerate = enumerate_devices or (
            lambda: list_audio_devices(config.ffmpeg, config.input_format)
        )

    def resolve(self) -> str:
        match = pick_device(self.config.mic_priority, self._enumerate())
        if match is None:
            logger.info(f"No preferred mic found; falling back to {self.config.default_device}")
            return self.config.default_device
        index, name = match
        logger.info(f"Mic selected: [{index}] {name}")
        return f":{index}"
