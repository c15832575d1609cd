"""Tests for the YAML settings loader."""

import pytest

from cycle_tracker.core.config import CHART_TOTAL_HEIGHT
from cycle_tracker.core.engine.config_loader import load_settings


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    for var in ("CYCLE_TRACKER_HOME", "CYCLE_TRACKER_USER", "CYCLE_TRACKER_APP_ID"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path / "config.yaml"


class TestLoadSettings:
    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.delenv("CYCLE_TRACKER_HOME", raising=False)
        settings = load_settings()
        assert settings["chart_height"] == CHART_TOTAL_HEIGHT
        assert settings["data_dir"] == str(tmp_path / ".cycle-tracker")

    def test_file_values_override_defaults(self, config_file):
        config_file.write_text("app_id: gym\nchart_height: 120\n")
        settings = load_settings(config_file)
        assert settings["app_id"] == "gym"
        assert settings["chart_height"] == 120.0

    def test_env_overrides_file(self, config_file, monkeypatch):
        config_file.write_text("user: from-file\n")
        monkeypatch.setenv("CYCLE_TRACKER_USER", "from-env")
        assert load_settings(config_file)["user"] == "from-env"

    @pytest.mark.parametrize("value", ["tall", "-5", "0", ".nan", "true", "[1, 2]"])
    def test_invalid_chart_height_falls_back(self, config_file, value):
        config_file.write_text(f"chart_height: {value}\n")
        with pytest.warns(UserWarning, match="chart_height"):
            settings = load_settings(config_file)
        assert settings["chart_height"] == CHART_TOTAL_HEIGHT

    def test_unparseable_file_is_ignored(self, config_file):
        config_file.write_text("app_id: [unclosed\n")
        with pytest.warns(UserWarning, match="ignoring config file"):
            settings = load_settings(config_file)
        assert settings["app_id"] == "default-app-id"
