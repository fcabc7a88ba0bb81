"""Shared fixtures for the assessment engine test suite."""

import pytest

from assessment_engine.config_manager.config_manager import ConfigManager

DEFAULT_ENV_VAR_MAP = dict(ConfigManager._env_var_map)


def reset_config_manager_singleton():
    """Resets the ConfigManager singleton instance and its class-level state."""
    ConfigManager._instance = None
    ConfigManager._config_dir = None
    ConfigManager._config = None
    ConfigManager._base_config_filename = "config.json"
    ConfigManager._env_var_map = dict(DEFAULT_ENV_VAR_MAP)


@pytest.fixture(autouse=True)
def reset_singleton_before_each_test():
    """Every test starts from a fresh ConfigManager."""
    reset_config_manager_singleton()
    yield
    reset_config_manager_singleton()
