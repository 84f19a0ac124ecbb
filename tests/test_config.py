import json
from dataclasses import fields

import pytest

from planner.config import ENV_PREFIX, EditorConfig, load_config


@pytest.fixture
def env_file(tmp_path, monkeypatch):
    for f in fields(EditorConfig):
        monkeypatch.delenv(ENV_PREFIX + f.name.upper(), raising=False)
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)
    path = tmp_path / ".env"
    path.write_text("", encoding="utf-8")
    return str(path)


def _config_file(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_defaults(env_file):
    cfg = load_config(env_file=env_file)
    assert cfg.grid_size == 20
    assert cfg.snap_to_grid is True
    assert cfg.rotation_limit is None
    assert cfg.history_limit == 100
    assert not cfg.remote_enabled


def test_json_file_overrides_defaults(tmp_path, env_file):
    path = _config_file(tmp_path, {"grid_size": 10, "snap_to_grid": False, "rotation_limit": -30,
                                   "log_level": "DEBUG", "unknown": 1})
    cfg = load_config(path, env_file=env_file)
    assert cfg.grid_size == 10.0
    assert cfg.snap_to_grid is False
    assert cfg.rotation_limit == 30.0
    assert cfg.log_level == "DEBUG"


def test_invalid_values_are_ignored(tmp_path, env_file):
    path = _config_file(tmp_path, {"history_limit": "many", "grid_size": -5, "min_width": 0})
    cfg = load_config(path, env_file=env_file)
    assert cfg.history_limit == 100
    assert cfg.grid_size == 20
    assert cfg.min_width == 20


def test_non_object_file_and_missing_file_use_defaults(tmp_path, env_file):
    path = _config_file(tmp_path, [1, 2, 3])
    assert load_config(path, env_file=env_file) == EditorConfig()
    assert load_config(str(tmp_path / "missing.json"), env_file=env_file) == EditorConfig()


def test_environment_wins_over_file(tmp_path, env_file, monkeypatch):
    path = _config_file(tmp_path, {"grid_size": 10})
    monkeypatch.setenv("RETAIL_PLANNER_GRID_SIZE", "25")
    monkeypatch.setenv("RETAIL_PLANNER_SNAP_TO_GRID", "off")
    monkeypatch.setenv("RETAIL_PLANNER_ROTATION_LIMIT", "none")
    cfg = load_config(path, env_file=env_file)
    assert cfg.grid_size == 25.0
    assert cfg.snap_to_grid is False
    assert cfg.rotation_limit is None


def test_supabase_credentials_enable_remote(env_file, monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://db.example")
    monkeypatch.setenv("SUPABASE_KEY", "anon")
    cfg = load_config(env_file=env_file)
    assert cfg.remote_enabled
    assert cfg.supabase_url == "https://db.example"


def test_dotenv_file_is_read(tmp_path, env_file, monkeypatch):
    # registered first so teardown removes whatever the .env file sets
    monkeypatch.setenv("RETAIL_PLANNER_HISTORY_LIMIT", "")
    monkeypatch.delenv("RETAIL_PLANNER_HISTORY_LIMIT")
    path = tmp_path / "custom.env"
    path.write_text("RETAIL_PLANNER_HISTORY_LIMIT=5\n", encoding="utf-8")
    cfg = load_config(env_file=str(path))
    assert cfg.history_limit == 5
