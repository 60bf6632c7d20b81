"""Tests for configuration loading."""

import os
from pathlib import Path

import pytest

from radiodeck.core.config import (
    Config,
    ConnectionConfig,
    ShuffleConfig,
    create_default_config,
    get_config_dir,
    get_data_dir,
    load_config,
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point XDG dirs at tmp_path and clear radiodeck env overrides."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "share"))
    monkeypatch.delenv("RADIODECK_MPV_PATH", raising=False)
    monkeypatch.delenv("RADIODECK_DATA_DIR", raising=False)


class TestPaths:
    """Tests for XDG-aware paths."""

    def test_config_dir_follows_xdg(self, tmp_path: Path) -> None:
        """Test XDG_CONFIG_HOME is honoured."""
        assert get_config_dir() == tmp_path / "config" / "radiodeck"

    def test_data_dir_follows_xdg(self, tmp_path: Path) -> None:
        """Test XDG_DATA_HOME is honoured."""
        assert get_data_dir() == tmp_path / "share" / "radiodeck"

    def test_resolved_data_dir_prefers_config(self, tmp_path: Path) -> None:
        """Test an explicit storage.data_dir wins over XDG."""
        config = Config()
        config.storage.data_dir = str(tmp_path / "custom")
        assert config.resolved_data_dir() == tmp_path / "custom"


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_writes_default(self, tmp_path: Path) -> None:
        """Test a default config file is created and defaults returned."""
        path = tmp_path / "config.toml"
        config = load_config(path)

        assert path.exists()
        assert path.read_text(encoding="utf-8") == create_default_config()
        assert config.player.volume == 100
        assert config.connection.reconnect_delay == 5
        assert config.shuffle.interval_minutes == 5

    def test_default_file_parses_to_defaults(self, tmp_path: Path) -> None:
        """Test the generated default file loads back as the defaults."""
        path = tmp_path / "config.toml"
        load_config(path)
        config = load_config(path)
        assert config == Config()

    def test_values_are_read(self, tmp_path: Path) -> None:
        """Test values from every section are applied."""
        path = tmp_path / "config.toml"
        path.write_text(
            """
[player]
mpv_path = "/opt/mpv/bin/mpv"
volume = 60
stop_timeout = 1.5

[connection]
auto_reconnect = false
reconnect_delay = 12
stream_buffer_mb = 0

[shuffle]
auto_advance = true
interval_minutes = 10
max_history = 7

[storage]
save_interval = 2.0

[logging]
level = "debug"
""",
            encoding="utf-8",
        )
        config = load_config(path)

        assert config.player.mpv_path == "/opt/mpv/bin/mpv"
        assert config.player.volume == 60
        assert config.player.stop_timeout == 1.5
        assert config.connection == ConnectionConfig(
            auto_reconnect=False, reconnect_delay=12, stream_buffer_mb=0
        )
        assert config.shuffle.auto_advance is True
        assert config.shuffle.interval_minutes == 10
        assert config.shuffle.max_history == 7
        assert config.storage.save_interval == 2.0
        assert config.logging.level == "DEBUG"

    def test_out_of_range_connection_values_are_clamped(self, tmp_path: Path) -> None:
        """Test reconnect delay and buffer size are clamped."""
        path = tmp_path / "config.toml"
        path.write_text(
            "[connection]\nreconnect_delay = 99\nstream_buffer_mb = 5\n",
            encoding="utf-8",
        )
        config = load_config(path)
        assert config.connection.reconnect_delay == 30
        assert config.connection.stream_buffer_mb == 10

    def test_invalid_shuffle_falls_back_to_defaults(self, tmp_path: Path) -> None:
        """Test an invalid shuffle interval resets the section."""
        path = tmp_path / "config.toml"
        path.write_text("[shuffle]\ninterval_minutes = 4\n", encoding="utf-8")
        config = load_config(path)
        assert config.shuffle == ShuffleConfig()

    def test_malformed_toml_falls_back_to_defaults(self, tmp_path: Path) -> None:
        """Test a parse error gives the defaults instead of raising."""
        path = tmp_path / "config.toml"
        path.write_text("[player\nvolume = ", encoding="utf-8")
        assert load_config(path) == Config()

    def test_environment_overrides(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test RADIODECK_* variables override the file."""
        monkeypatch.setenv("RADIODECK_MPV_PATH", "/custom/mpv")
        monkeypatch.setenv("RADIODECK_DATA_DIR", str(tmp_path / "elsewhere"))

        config = load_config(tmp_path / "config.toml")

        assert config.player.mpv_path == "/custom/mpv"
        assert config.resolved_data_dir() == tmp_path / "elsewhere"

    def test_dotenv_file_is_loaded(self, tmp_path: Path) -> None:
        """Test .env in the config dir feeds the environment overrides."""
        config_dir = get_config_dir()
        config_dir.mkdir(parents=True)
        (config_dir / ".env").write_text("RADIODECK_MPV_PATH=/from/dotenv/mpv\n")

        try:
            config = load_config(tmp_path / "config.toml")
            assert config.player.mpv_path == "/from/dotenv/mpv"
        finally:
            os.environ.pop("RADIODECK_MPV_PATH", None)


class TestShuffleConfig:
    """Tests for ShuffleConfig.validate."""

    @pytest.mark.parametrize("interval", [1, 3, 5, 10, 15])
    def test_valid_intervals(self, interval: int) -> None:
        """Test every allowed interval validates."""
        ShuffleConfig(interval_minutes=interval).validate()

    def test_invalid_interval(self) -> None:
        """Test an unlisted interval is rejected."""
        with pytest.raises(ValueError, match="interval_minutes"):
            ShuffleConfig(interval_minutes=2).validate()

    def test_invalid_history_size(self) -> None:
        """Test an unlisted history size is rejected."""
        with pytest.raises(ValueError, match="max_history"):
            ShuffleConfig(max_history=4).validate()


class TestConnectionConfig:
    """Tests for ConnectionConfig.normalized."""

    def test_zero_buffer_stays_disabled(self) -> None:
        """Test 0 MB means no cache and is not clamped up."""
        assert ConnectionConfig(stream_buffer_mb=0).normalized().stream_buffer_mb == 0

    def test_large_buffer_clamped(self) -> None:
        """Test buffers over 200 MB are clamped."""
        assert ConnectionConfig(stream_buffer_mb=500).normalized().stream_buffer_mb == 200

    def test_delay_clamped_low(self) -> None:
        """Test delays under a second are raised to 1."""
        assert ConnectionConfig(reconnect_delay=0).normalized().reconnect_delay == 1
