"""Unit tests for ConfigManager - Get Config Value aspects."""

from assessment_engine.config_manager.config_manager import ConfigManager


def test_get_config_nested_key(temp_config_dir, create_base_config_file, base_config_content):
    cm = ConfigManager(config_dir=str(temp_config_dir))
    assert cm.get_config("api_gateway.port") == base_config_content["api_gateway"]["port"]
    assert cm.get_config("monitoring.logging.structured_json") is True


def test_get_config_key_points_to_section(temp_config_dir, create_base_config_file, base_config_content):
    cm = ConfigManager(config_dir=str(temp_config_dir))
    assert cm.get_config("analytics") == base_config_content["analytics"]
    assert cm.get_config("analytics", default_value="ignored") == base_config_content["analytics"]


def test_get_config_missing_key(temp_config_dir, create_base_config_file):
    cm = ConfigManager(config_dir=str(temp_config_dir))
    assert cm.get_config("analytics.unknown") is None
    assert cm.get_config("analytics.unknown", 3) == 3
    # Walking through a scalar is a miss, not an error.
    assert cm.get_config("analytics.pass_mark.value", "d") == "d"


def test_get_config_with_empty_key(temp_config_dir, create_base_config_file):
    cm = ConfigManager(config_dir=str(temp_config_dir))
    assert cm.get_config("", "default_for_empty") == "default_for_empty"
    assert cm.get_config("") == cm._config
