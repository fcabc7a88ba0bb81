# -*- coding: utf-8 -*-
"""配置管理器 (ConfigManager) 的主实现文件。

包含 ConfigManager 类，负责从基础配置文件、环境配置文件以及环境变量
加载并合并评测引擎的配置（数据库路径、网关地址、分析阈值、日志设置等），
并通过点号路径提供统一的读取接口。
"""
import copy  # For deep merging
import json
import logging
import os

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


class ConfigManager:
    _instance = None
    _config = None
    _config_dir = None  # Directory where config files are located
    _base_config_filename = "config.json"
    _env_var_map = {  # Config key path (dot notation) -> environment variable
        "database.db_path": "ASSESSMENT_DB_PATH",
        "api_gateway.host": "GATEWAY_HOST",
        "api_gateway.port": "GATEWAY_PORT",
        "monitoring.logging.level": "LOG_LEVEL",
    }

    def __new__(cls, config_dir=None):
        """
        Ensures a single instance of ConfigManager.
        The first instantiation fixes the config directory; later calls with a
        different directory are ignored (use reload_config() to switch).
        """
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            if config_dir:
                cls._config_dir = os.path.abspath(config_dir)
                logger.info(
                    f"ConfigManager initializing. Config directory explicitly set to: {cls._config_dir}"
                )
            else:
                cls._config_dir = os.path.abspath(os.getcwd())
                logger.info(
                    f"ConfigManager initializing. No config_dir provided, using current working directory: {cls._config_dir}"
                )
            cls._instance._load_config()
        elif config_dir:
            new_abs_config_dir = os.path.abspath(config_dir)
            if cls._config_dir != new_abs_config_dir:
                logger.warning(
                    f"ConfigManager already initialized with config directory {cls._config_dir}. "
                    f"Ignoring attempt to re-initialize with different directory {new_abs_config_dir}. "
                    "Use reload_config() to explicitly change settings and reload."
                )
        return cls._instance

    @classmethod
    def _get_config_path(cls, filename):
        """Constructs the full path to a config file in the configured directory."""
        if not cls._config_dir:
            cls._config_dir = os.path.abspath(os.getcwd())
            logger.warning(f"Config directory was not set, falling back to CWD: {cls._config_dir}")
        return os.path.join(cls._config_dir, filename)

    @staticmethod
    def _deep_merge(source, destination):
        """
        Deeply merges source dict into destination dict. Modifies destination in place.
        Lists in source replace lists in destination.
        """
        for key, value in source.items():
            if isinstance(value, dict):
                node = destination.setdefault(key, {})
                if isinstance(node, dict):
                    ConfigManager._deep_merge(value, node)
                else:
                    destination[key] = copy.deepcopy(value)
            elif isinstance(value, list):
                destination[key] = copy.deepcopy(value)
            else:
                destination[key] = value
        return destination

    @staticmethod
    def _read_json_file(path, label):
        """Reads one JSON config file. Missing or unreadable files yield an empty dict."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            logger.info(f"Loaded {label} config from {path}")
            return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            logger.info(f"{label.capitalize()} config file not found at {path}.")
        except json.JSONDecodeError as e:
            logger.error(f"Could not decode JSON from {path}: {e}. Ignoring {label} config.")
        except (IOError, OSError) as e:
            logger.error(f"Could not read config file {path}: {e}. Ignoring {label} config.")
        return {}

    def _load_config(self):
        """Loads the base config file, overlays the APP_ENV file and stores the merge."""
        base_config = self._read_json_file(
            self._get_config_path(self._base_config_filename), "base"
        )

        app_env = os.environ.get("APP_ENV")
        env_config = {}
        env_config_filename = None
        if app_env:
            env_config_filename = f"config.{app_env}.json"
            env_config = self._read_json_file(
                self._get_config_path(env_config_filename), "environment"
            )
        else:
            logger.info("APP_ENV environment variable not set. No environment-specific config file loaded.")

        merged_config = copy.deepcopy(base_config)
        self._deep_merge(env_config, merged_config)
        self.__class__._config = merged_config

        if isinstance(merged_config.get("ENV_VAR_MAP"), dict):
            self.__class__._env_var_map = merged_config["ENV_VAR_MAP"]
            logger.info(f"Updated _env_var_map from configuration file. New map: {self.__class__._env_var_map}")

        logger.info(
            f"Configuration loaded. APP_ENV='{app_env}'. Priority: Env Vars > Env File ('{env_config_filename}' if used) > Base File ('{self._base_config_filename}')."
        )

    def reload_config(self, config_dir=None, base_filename=None, app_env_override=None):
        """
        Reloads the configuration, optionally switching directory, base file name
        or APP_ENV for this load. Directory and file name changes persist on the singleton.
        """
        logger.info("Reloading configuration...")
        original_env = os.environ.get("APP_ENV")
        if app_env_override:
            os.environ["APP_ENV"] = app_env_override

        if config_dir:
            new_config_dir = os.path.abspath(config_dir)
            if new_config_dir != self.__class__._config_dir:
                self.__class__._config_dir = new_config_dir
                logger.warning(
                    f"Configuration directory changed for singleton instance to: {self.__class__._config_dir}"
                )

        if base_filename and base_filename != self.__class__._base_config_filename:
            self.__class__._base_config_filename = base_filename
            logger.info(f"Base configuration filename changed to: {base_filename}")

        try:
            self._load_config()
        finally:
            if app_env_override:
                if original_env is None:
                    del os.environ["APP_ENV"]
                else:
                    os.environ["APP_ENV"] = original_env

    @staticmethod
    def _convert_env_value(raw):
        """Best-effort conversion of an environment string to bool, int or float."""
        if raw.lower() == "true":
            return True
        if raw.lower() == "false":
            return False
        try:
            return int(raw)
        except ValueError:
            pass
        try:
            return float(raw)
        except ValueError:
            return raw

    def get_config(self, key, default_value=None):
        """
        Retrieves a configuration value.

        Mapped environment variables win over file values; nested keys use dot
        notation ("analytics.pass_mark").

        Args:
            key (str): The configuration key using dot notation.
            default_value: Returned when the key is not found. Defaults to None.

        Returns:
            The configuration value if found, otherwise default_value.
        """
        env_var_map = self.__class__._env_var_map or {}
        if key in env_var_map:
            env_value_str = os.environ.get(env_var_map[key])
            if env_value_str is not None:
                logger.info(
                    f"Configuration '{key}' overridden by environment variable '{env_var_map[key]}'."
                )
                return self._convert_env_value(env_value_str)

        if key == "":
            if default_value is not None:
                return default_value
            return self.__class__._config

        if self.__class__._config is None:
            logger.warning("Config accessed before initial load. Attempting reload.")
            self._load_config()

        value = self.__class__._config
        try:
            for k in key.split("."):
                if not isinstance(value, dict):
                    raise KeyError(k)
                value = value[k]
            return value
        except KeyError:
            logger.debug(f"Configuration key '{key}' not found. Returning default value.")
            return default_value
