"""
JSON-based configuration for the telemetry store node
Single config.json file contains all configuration
"""
import json
import os
import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TELEMETRY_NODE_CONFIG"

# Environment variables that override the influxdb section
INFLUXDB_ENV_OVERRIDES = {
    "INFLUXDB_HOST": "host",
    "INFLUXDB_TOKEN": "token",
    "INFLUXDB_DATABASE": "database",
    "INFLUXDB_ORG": "org",
}


class Config:
    """Main configuration class - loads from single config.json"""

    _config: Optional[Dict[str, Any]] = None
    _config_file: Optional[str] = None

    @classmethod
    def load(cls, file_path: Optional[str] = None) -> Dict[str, Any]:
        """Load configuration from JSON file"""
        if file_path:
            cls._config_file = file_path
            cls._config = None

        if cls._config is None:
            cls._config = cls._load_config()

        return cls._config

    @classmethod
    def _load_config(cls) -> Dict[str, Any]:
        """Load JSON config with defaults, env overrides and validation"""
        config_file = cls._find_config_file()

        try:
            if os.path.exists(config_file):
                with open(config_file, 'r', encoding='utf-8') as f:
                    config = json.load(f)
                logger.info(f"Loaded configuration from {config_file}")
                merged_config = cls._merge_with_defaults(config)
            else:
                logger.warning(f"Config file not found: {config_file}, using defaults")
                merged_config = cls._get_defaults()
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in config file: {e}", exc_info=True)
            merged_config = cls._get_defaults()
        except OSError as e:
            logger.error(f"Error reading config file {config_file}: {e}", exc_info=True)
            merged_config = cls._get_defaults()

        cls._apply_env_overrides(merged_config)
        cls._validate_config(merged_config)
        return merged_config

    @classmethod
    def _validate_config(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration values.

        Problems are logged as warnings; connect() is where a missing
        influxdb section becomes a hard error.

        Args:
            config: Configuration dictionary to validate
        """
        for section in ('influxdb', 'tachometer', 'writer'):
            if section not in config:
                logger.warning(f"Missing required config section: {section}")

        influx_config = config.get('influxdb', {})
        if not influx_config.get('host'):
            logger.warning("InfluxDB host not configured")
        if not influx_config.get('database'):
            logger.warning("InfluxDB database not configured")

        data_interval = config.get('tachometer', {}).get('data_interval', 30)
        if not isinstance(data_interval, (int, float)) or data_interval <= 0:
            logger.warning(f"tachometer.data_interval must be a positive number, got {data_interval!r}")

        writer_config = config.get('writer', {})
        if writer_config.get('batch_size', 1) < 1:
            logger.warning("writer.batch_size must be >= 1")
        if writer_config.get('max_retries', 0) < 0:
            logger.warning("writer.max_retries must be >= 0")

        logger.debug("Configuration validation completed")

    @classmethod
    def _find_config_file(cls) -> str:
        """
        Resolve the config.json path.

        Order: explicit load(path), TELEMETRY_NODE_CONFIG, config.json beside this module.
        """
        if cls._config_file:
            return cls._config_file

        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            return env_path

        node_dir = os.path.dirname(os.path.abspath(__file__))
        return os.path.join(node_dir, "config.json")

    @classmethod
    def _merge_with_defaults(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        """Merge loaded config with defaults"""
        defaults = cls._get_defaults()
        result = defaults.copy()
        for key, value in config.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = {**result[key], **value}
            else:
                result[key] = value
        return result

    @classmethod
    def _apply_env_overrides(cls, config: Dict[str, Any]) -> None:
        """Apply INFLUXDB_* environment variables on top of the influxdb section"""
        influx_config = config.setdefault('influxdb', {})
        for env_name, key in INFLUXDB_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                influx_config[key] = value
                logger.debug(f"influxdb.{key} overridden from {env_name}")

    @classmethod
    def _get_defaults(cls) -> Dict[str, Any]:
        """Default configuration values for the telemetry node"""
        return {
            "influxdb": {
                "host": "http://localhost:8181",
                "token": "",
                "database": "telemetry",
                "org": ""
            },
            "tachometer": {
                "data_interval": 30
            },
            "writer": {
                "batch_size": 200,
                "max_retries": 2,
                "initial_delay": 0.5,
                "max_delay": 5.0
            },
            "metrics": {
                "port": 9091
            },
            "logging": {
                "log_file": "logs/telemetry_node.log",
                "level": "INFO",
                "max_bytes": 10485760,
                "backup_count": 5,
                "json_format": False
            }
        }

    @classmethod
    def get_influxdb_config(cls) -> Dict[str, Any]:
        """Get InfluxDB client configuration"""
        return dict(cls.load()["influxdb"])


class ServerParams:
    """Node runtime parameters"""

    @classmethod
    def get(cls, key: str, default=None):
        """Get parameter using dot notation (e.g., 'writer.batch_size')"""
        config = Config.load()
        keys = key.split('.')
        value = config
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value if value is not None else default

    @classmethod
    def get_int(cls, key: str, default: int = 0) -> int:
        """Get integer parameter"""
        value = cls.get(key, default)
        try:
            return int(value)
        except (ValueError, TypeError):
            return default

    @classmethod
    def get_float(cls, key: str, default: float = 0.0) -> float:
        """Get float parameter"""
        value = cls.get(key, default)
        try:
            return float(value)
        except (ValueError, TypeError):
            return default
