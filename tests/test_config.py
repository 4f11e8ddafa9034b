import json
from pathlib import Path

from flowstate.config import DEFAULT_DATA_DIR, Settings, load_config, load_settings


def test_defaults_without_environment(monkeypatch, tmp_path):
    monkeypatch.setattr("flowstate.config.DEFAULT_DATA_DIR", tmp_path)
    settings = load_settings({})

    assert settings.data_dir == tmp_path
    assert settings.storage_key == "flowstate-storage"
    assert settings.log_level == "WARNING"
    assert settings.storage_path == tmp_path / "flowstate-storage.json"


def test_default_data_dir_is_in_home():
    assert Settings().data_dir == DEFAULT_DATA_DIR
    assert DEFAULT_DATA_DIR.parent == Path.home()


def test_config_file_overrides_defaults(tmp_path):
    (tmp_path / "config.json").write_text(
        json.dumps({"storage_file": "budget.json", "log_level": "info"}), encoding="utf-8"
    )
    settings = load_settings({"FLOWSTATE_HOME": str(tmp_path)})

    assert settings.storage_path == tmp_path / "budget.json"
    assert settings.log_level == "INFO"


def test_environment_wins_over_config_file(tmp_path):
    (tmp_path / "config.json").write_text(json.dumps({"log_level": "info"}), encoding="utf-8")
    settings = load_settings({
        "FLOWSTATE_HOME": str(tmp_path),
        "FLOWSTATE_LOG_LEVEL": "debug",
        "FLOWSTATE_STORAGE_KEY": "test-bucket",
    })

    assert settings.log_level == "DEBUG"
    assert settings.storage_key == "test-bucket"


def test_load_config_tolerates_missing_and_corrupt_files(tmp_path):
    assert load_config(tmp_path) == {}

    (tmp_path / "config.json").write_text("[1, 2", encoding="utf-8")
    assert load_config(tmp_path) == {}

    (tmp_path / "config.json").write_text("[1, 2]", encoding="utf-8")
    assert load_config(tmp_path) == {}
