"""
Tests for engine configuration loading.
"""

import os

import pytest

from vocaform.config import EngineConfig, load_config


def test_defaults():
    config = load_config(env={})
    assert config == EngineConfig()
    assert config.autosave_interval == 5.0
    assert config.low_confidence_threshold == 0.7
    assert config.storage_key_prefix == "vocaform_autosave"
    assert config.storage_dir is None


def test_yaml_file(tmp_path):
    path = tmp_path / "vocaform.yaml"
    path.write_text("autosave_interval: 12\nlow_confidence_threshold: 0.5\n", encoding="utf-8")
    config = load_config(path, env={})
    assert config.autosave_interval == 12.0
    assert config.low_confidence_threshold == 0.5


def test_empty_yaml_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path, env={}) == EngineConfig()


def test_environment_overrides_file(tmp_path):
    path = tmp_path / "vocaform.yaml"
    path.write_text("autosave_interval: 12\n", encoding="utf-8")
    env = {
        "VOCAFORM_AUTOSAVE_INTERVAL": "3",
        "VOCAFORM_STORAGE_DIR": "/var/lib/vocaform",
        "VOCAFORM_UNRELATED": "ignored",
        "PATH": "/usr/bin",
    }
    config = load_config(path, env=env)
    assert config.autosave_interval == 3.0
    assert config.storage_dir == "/var/lib/vocaform"


def test_dotenv_file(tmp_path, monkeypatch):
    dotenv = tmp_path / ".env"
    dotenv.write_text("VOCAFORM_STORAGE_KEY_PREFIX=tenant_a\n", encoding="utf-8")
    monkeypatch.delenv("VOCAFORM_STORAGE_KEY_PREFIX", raising=False)
    try:
        config = load_config(dotenv_path=dotenv)
    finally:
        os.environ.pop("VOCAFORM_STORAGE_KEY_PREFIX", None)
    assert config.storage_key_prefix == "tenant_a"


def test_unknown_file_key(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("autosave_every: 3\n", encoding="utf-8")
    with pytest.raises(ValueError, match="autosave_every"):
        load_config(path, env={})


def test_file_must_hold_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path, env={})


def test_malformed_value():
    with pytest.raises(ValueError, match="autosave_interval"):
        load_config(env={"VOCAFORM_AUTOSAVE_INTERVAL": "often"})


@pytest.mark.parametrize(
    "kwargs",
    [{"autosave_interval": 0}, {"autosave_interval": -1}, {"low_confidence_threshold": 1.5}],
)
def test_out_of_range_values(kwargs):
    with pytest.raises(ValueError):
        EngineConfig(**kwargs)
