from pathlib import Path

import pytest

from whisper_toggle import config as config_module
from whisper_toggle.config import Config, ConfigError, PathsConfig


@pytest.fixture(autouse=True)
def isolated_lookup(tmp_path, monkeypatch):
    """Keep the implicit lookup away from the real home directory"""
    monkeypatch.delenv(config_module.CONFIG_ENV_VAR, raising=False)
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "absent" / "config.yml")


class TestDefaults:
    def test_no_file_gives_defaults(self):
        config = Config.load()
        assert config.source is None
        assert config.paths == PathsConfig()
        assert config.paths.lock_dir == "/tmp/whisper.lock.d"
        assert config.recording.mic_priority[0] == "RODECaster Pro Stereo"
        assert config.recording.stop_timeout == 5.0
        assert config.transcription.min_audio_bytes == 1000
        assert config.output.copy_command == ["pbcopy"]

    def test_default_lists_are_not_shared(self):
        first, second = Config(), Config()
        first.recording.mic_priority.append("USB Mic")
        assert "USB Mic" not in second.recording.mic_priority


class TestLoad:
    def test_partial_override(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(
            "paths:\n"
            "  pid_file: /var/tmp/rec.pid\n"
            "recording:\n"
            "  mic_priority: [Yeti]\n"
            "sounds:\n"
            "  enabled: false\n"
        )

        config = Config.load(path)

        assert config.source == path
        assert config.paths.pid_file == "/var/tmp/rec.pid"
        assert config.paths.mode_file == "/tmp/whisper-mode"
        assert config.recording.mic_priority == ["Yeti"]
        assert config.sounds.enabled is False

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("")
        assert Config.load(path).paths == PathsConfig()

    def test_empty_section_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("paths:\n")
        assert Config.load(path).paths == PathsConfig()

    def test_environment_variable(self, tmp_path, monkeypatch):
        path = tmp_path / "env.yml"
        path.write_text("transcription:\n  engine: faster_whisper\n")
        monkeypatch.setenv(config_module.CONFIG_ENV_VAR, str(path))

        assert Config.load().transcription.engine == "faster_whisper"

    def test_default_location_is_used_when_present(self, tmp_path, monkeypatch):
        path = tmp_path / "home.yml"
        path.write_text("transcription:\n  language: de\n")
        monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", path)

        assert Config.load().transcription.language == "de"

    def test_example_config_loads(self):
        example = Path(__file__).resolve().parent.parent / "config.example.yml"
        config = Config.load(example)
        assert config.paths == PathsConfig()
        assert config.transcription.engine == "mlx_whisper"


class TestErrors:
    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            Config.load(tmp_path / "nope.yml")

    def test_environment_points_at_missing_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv(config_module.CONFIG_ENV_VAR, str(tmp_path / "nope.yml"))
        with pytest.raises(ConfigError):
            Config.load()

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("recording:\n  microphone: Yeti\n")
        with pytest.raises(ConfigError, match="microphone"):
            Config.load(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("paths: [unclosed\n")
        with pytest.raises(ConfigError):
            Config.load(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            Config.load(path)

    @pytest.mark.parametrize("yaml_text,field_name", [
        ("recording:\n  mic_priority:\n", "recording.mic_priority"),
        ("recording:\n  mic_priority: Yeti\n", "recording.mic_priority"),
        ("recording:\n  stop_timeout: soon\n", "recording.stop_timeout"),
        ("transcription:\n  min_audio_bytes: true\n", "transcription.min_audio_bytes"),
        ("output:\n  copy_command: [pbcopy, 1]\n", "output.copy_command"),
        ("paths:\n  wav_file: 42\n", "paths.wav_file"),
    ])
    def test_wrong_value_type(self, tmp_path, yaml_text, field_name):
        path = tmp_path / "config.yml"
        path.write_text(yaml_text)
        with pytest.raises(ConfigError, match=field_name):
            Config.load(path)

    def test_numeric_fields_accept_ints_and_null_timeout(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("recording:\n  stop_timeout: 3\ntranscription:\n  timeout: null\n")

        config = Config.load(path)

        assert config.recording.stop_timeout == 3
        assert config.transcription.timeout is None
