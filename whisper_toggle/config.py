"""
Configuration management for whisper-toggle
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union, get_args, get_origin

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "WHISPER_TOGGLE_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/whisper-toggle/config.yml")


class ConfigError(Exception):
    """Raised when a config file is missing or malformed"""


@dataclass
class PathsConfig:
    """Locations of the state shared between invocations"""
    log_file: str = "/tmp/whisper-toggle.log"
    lock_dir: str = "/tmp/whisper.lock.d"
    pid_file: str = "/tmp/whisper-recording.pid"
    mode_file: str = "/tmp/whisper-mode"
    wav_file: str = "/tmp/whisper-recording.wav"
    output_dir: str = "/tmp/mlx_whisper_out"


@dataclass
class RecordingConfig:
    """Capture subprocess configuration"""
    ffmpeg: str = "/opt/homebrew/bin/ffmpeg"
    input_format: str = "avfoundation"
    mic_priority: List[str] = field(default_factory=lambda: [
        "RODECaster Pro Stereo",
        "AirPods Pro",
        "NexiGo N60 FHD Webcam",
        "MacBook Pro Microphone",
    ])
    default_device: str = ":0"
    sample_rate: int = 16000
    channels: int = 1
    stop_timeout: float = 5.0
    poll_interval: float = 0.05


@dataclass
class TranscriptionConfig:
    """Speech-to-text configuration"""
    engine: str = "mlx_whisper"
    command: str = "/opt/homebrew/bin/mlx_whisper"
    model: str = "mlx-community/whisper-large-v3-turbo"
    language: str = "en"
    min_audio_bytes: int = 1000
    timeout: Optional[float] = 300.0
    # faster_whisper only
    device: str = "auto"
    compute_type: str = "default"
    beam_size: int = 5


@dataclass
class OutputConfig:
    """Clipboard and paste automation"""
    copy_command: List[str] = field(default_factory=lambda: ["pbcopy"])
    paste_command: List[str] = field(default_factory=lambda: [
        "osascript",
        "-e",
        'tell application "System Events" to keystroke "v" using command down',
    ])


@dataclass
class SoundConfig:
    """Audible start/stop cues"""
    enabled: bool = True
    player: str = "afplay"
    start: str = "/System/Library/Sounds/Tink.aiff"
    stop: str = "/System/Library/Sounds/Pop.aiff"


@dataclass
class Config:
    """Main configuration container"""
    paths: PathsConfig = field(default_factory=PathsConfig)
    recording: RecordingConfig = field(default_factory=RecordingConfig)
    transcription: TranscriptionConfig = field(default_factory=TranscriptionConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    sounds: SoundConfig = field(default_factory=SoundConfig)
    source: Optional[Path] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """
        Load configuration from YAML file

        Args:
            config_path: Path to config file. If None, uses $WHISPER_TOGGLE_CONFIG
                        or ~/.config/whisper-toggle/config.yml, falling back to
                        built-in defaults when neither exists.

        Returns:
            Config object

        Raises:
            ConfigError: If an explicitly requested file is missing, or any
                        config file is malformed
        """
        if config_path is not None:
            resolved_path = Path(config_path).expanduser()
            if not resolved_path.exists():
                raise ConfigError(f"Config file not found: {resolved_path}")
        elif os.environ.get(CONFIG_ENV_VAR):
            resolved_path = Path(os.environ[CONFIG_ENV_VAR]).expanduser()
            if not resolved_path.exists():
                raise ConfigError(f"Config file not found: {resolved_path} (from ${CONFIG_ENV_VAR})")
        else:
            resolved_path = DEFAULT_CONFIG_PATH.expanduser()
            if not resolved_path.exists():
                return cls()

        config_data = _load_yaml(resolved_path)
        config = cls.from_dict(config_data, source=resolved_path)
        logger.debug(f"Loaded config from {resolved_path}")
        return config

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any], source: Optional[Path] = None) -> "Config":
        """Build a Config from parsed YAML sections"""
        where = f" in {source}" if source else ""
        try:
            config = cls(
                paths=PathsConfig(**(config_data.get("paths") or {})),
                recording=RecordingConfig(**(config_data.get("recording") or {})),
                transcription=TranscriptionConfig(**(config_data.get("transcription") or {})),
                output=OutputConfig(**(config_data.get("output") or {})),
                sounds=SoundConfig(**(config_data.get("sounds") or {})),
                source=source,
            )
        except TypeError as e:
            raise ConfigError(f"Invalid config{where}: {e}") from e

        for section in ("paths", "recording", "transcription", "output", "sounds"):
            for name, value, expected in _wrong_types(getattr(config, section)):
                raise ConfigError(
                    f"Invalid config{where}: {section}.{name} must be {expected}, got {value!r}"
                )
        return config


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return as dict"""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _wrong_types(section: Any):
    """Yield (name, value, expected) for each field whose value does not match its annotation"""
    for f in fields(section):
        value = getattr(section, f.name)
        expected = f.type
        if get_origin(expected) is Union:
            if value is None:
                continue
            expected = next(arg for arg in get_args(expected) if arg is not type(None))

        if get_origin(expected) is list:
            item_type = get_args(expected)[0]
            if not isinstance(value, list) or not all(isinstance(item, item_type) for item in value):
                yield f.name, value, f"a list of {item_type.__name__}"
        elif isinstance(value, bool) and expected is not bool:
            yield f.name, value, expected.__name__
        elif expected is float:
            if not isinstance(value, (int, float)):
                yield f.name, value, "a number"
        elif not isinstance(value, expected):
            yield f.name, value, expected.__name__
