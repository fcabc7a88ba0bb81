"""Shared fixtures for ConfigManager tests."""

import json

import pytest


@pytest.fixture
def temp_config_dir(tmp_path):
    """Creates a temporary directory for config files."""
    config_dir = tmp_path / "config_test_dir"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def base_config_content():
    """Provides base configuration data."""
    return {
        "database": {"db_path": "data/assessment_engine.db"},
        "api_gateway": {"host": "127.0.0.1", "port": 8000},
        "analytics": {"pass_mark": 50, "strength_threshold": 70},
        "feedback": {"preset_messages": ["Good job!", "Well done!"]},
        "monitoring": {"logging": {"level": "INFO", "structured_json": True}},
    }


@pytest.fixture
def env_specific_config_content():
    """Provides environment-specific overrides (merged over the base file)."""
    return {
        "database": {"db_path": "/var/lib/assessment/prod.db"},
        "analytics": {"pass_mark": 60},
        "feedback": {"preset_messages": ["Excellent work!"]},
        "monitoring": {"prometheus": {"enabled": True}},
    }


@pytest.fixture
def create_base_config_file(temp_config_dir, base_config_content):
    """Writes config.json into temp_config_dir."""
    config_file_path = temp_config_dir / "config.json"
    config_file_path.write_text(json.dumps(base_config_content), encoding="utf-8")
    return config_file_path


@pytest.fixture
def create_env_specific_config_file(temp_config_dir, env_specific_config_content):
    """Writes config.staging.json into temp_config_dir; returns (path, env name)."""
    env_name = "staging"
    env_config_file_path = temp_config_dir / f"config.{env_name}.json"
    env_config_file_path.write_text(json.dumps(env_specific_config_content), encoding="utf-8")
    return env_config_file_path, env_name
