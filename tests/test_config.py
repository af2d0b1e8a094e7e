"""Tests for configuration management."""

from pathlib import Path

import pytest

from raygatherer.config import (
    ConfigError,
    FileConfig,
    LoggingSettings,
    default_config_path,
    load_config,
    settings_summary,
)


class TestDefaultConfigPath:
    """Tests for config file location."""

    def test_xdg_config_home(self, tmp_path: Path) -> None:
        """Test that XDG_CONFIG_HOME wins."""
        path = default_config_path({"XDG_CONFIG_HOME": str(tmp_path)})
        assert path == tmp_path / "raygatherer" / "config.yml"

    def test_empty_xdg_falls_back_to_home(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that an empty XDG_CONFIG_HOME is ignored."""
        monkeypatch.setenv("HOME", str(tmp_path))
        path = default_config_path({"XDG_CONFIG_HOME": ""})
        assert path == tmp_path / ".config" / "raygatherer" / "config.yml"


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file is an empty config."""
        assert load_config(tmp_path / "missing.yml") == FileConfig()

    def test_blank_file(self, tmp_path: Path) -> None:
        """Test that a blank file is an empty config."""
        path = tmp_path / "config.yml"
        path.write_text("  \n\n")
        assert load_config(path) == FileConfig()

    def test_all_keys(self, tmp_path: Path) -> None:
        """Test loading every supported key."""
        path = tmp_path / "config.yml"
        path.write_text(
            "host: 192.168.1.1:8080\n"
            "basic_auth_user: admin\n"
            "basic_auth_password: secret\n"
            "json: true\n"
            "verbose: false\n"
        )

        config = load_config(path)

        assert config.host == "192.168.1.1:8080"
        assert config.basic_auth_user == "admin"
        assert config.basic_auth_password == "secret"
        assert config.json_output is True
        assert config.verbose is False

    def test_unknown_keys_ignored(self, tmp_path: Path) -> None:
        """Test that unsupported keys are dropped silently."""
        path = tmp_path / "config.yml"
        path.write_text("host: rayhunter.local\ntheme: dark\n")

        config = load_config(path)

        assert config.host == "rayhunter.local"
        assert not hasattr(config, "theme")

    def test_numeric_values_read_as_strings(self, tmp_path: Path) -> None:
        """Test that unquoted numbers in string keys are kept as text."""
        path = tmp_path / "config.yml"
        path.write_text("host: rayhunter.local\nbasic_auth_user: admin\nbasic_auth_password: 123456\n")

        config = load_config(path)

        assert config.basic_auth_user == "admin"
        assert config.basic_auth_password == "123456"

    def test_field_name_is_not_a_key(self, tmp_path: Path) -> None:
        """Test that only ``json`` sets JSON output, not the attribute name."""
        path = tmp_path / "config.yml"
        path.write_text("json_output: true\n")

        assert load_config(path).json_output is None

    def test_default_location(self, isolated_environment: Path) -> None:
        """Test that the XDG location is read when no path is given."""
        config_dir = isolated_environment / "raygatherer"
        config_dir.mkdir(parents=True)
        (config_dir / "config.yml").write_text("host: from-xdg\n")

        assert load_config().host == "from-xdg"

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        """Test that a YAML list is rejected."""
        path = tmp_path / "config.yml"
        path.write_text("- host\n- json\n")

        with pytest.raises(ConfigError, match="must be a YAML mapping"):
            load_config(path)

    def test_scalar_document(self, tmp_path: Path) -> None:
        """Test that a bare scalar is rejected."""
        path = tmp_path / "config.yml"
        path.write_text("just a string\n")

        with pytest.raises(ConfigError, match="got str"):
            load_config(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test that a YAML syntax error is reported with the path."""
        path = tmp_path / "config.yml"
        path.write_text("host: [unclosed\n")

        with pytest.raises(ConfigError, match="Could not parse config file"):
            load_config(path)

    def test_wrong_value_type(self, tmp_path: Path) -> None:
        """Test that a value of the wrong type names the key."""
        path = tmp_path / "config.yml"
        path.write_text("verbose: sometimes\n")

        with pytest.raises(ConfigError, match="verbose"):
            load_config(path)


class TestLoggingSettings:
    """Tests for LoggingSettings."""

    def test_defaults(self) -> None:
        """Test logging is off by default."""
        settings = LoggingSettings()
        assert settings.log_file is None
        assert settings.log_level == "INFO"

    def test_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test loading settings from the environment."""
        monkeypatch.setenv("RAYGATHERER_LOG_FILE", str(tmp_path / "ray.log"))
        monkeypatch.setenv("RAYGATHERER_LOG_LEVEL", "DEBUG")

        settings = LoggingSettings()

        assert settings.log_file == tmp_path / "ray.log"
        assert settings.log_level == "DEBUG"


class TestSettingsSummary:
    """Tests for settings_summary."""

    def test_password_masked(self) -> None:
        """Test that the password never reaches the log."""
        summary = settings_summary(
            {"host": "rayhunter.local", "basic_auth_user": "admin", "basic_auth_password": "pw"}
        )
        assert "host=rayhunter.local" in summary
        assert "basic_auth_user=admin" in summary
        assert "=pw" not in summary
        assert "basic_auth_password=***" in summary

    def test_unset_password_shown(self) -> None:
        """Test that an unset password is shown as None."""
        assert "basic_auth_password=None" in settings_summary({"basic_auth_password": None})
