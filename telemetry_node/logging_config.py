"""
Logging configuration utility - configures logging from config.json
"""
import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from telemetry_node.config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Client libraries that log every HTTP/gRPC round trip at INFO
NOISY_LOGGERS = ['influxdb_client_3', 'influxdb_client', 'urllib3', 'urllib3.connectionpool', 'pyarrow']


class JSONFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record):
        log_entry = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }
        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def debug_forced() -> bool:
    """True when DEBUG=YES is set in the environment."""
    return os.environ.get('DEBUG', '').upper() == 'YES'


def setup_logging_from_config() -> None:
    """Configure logging from config.json settings."""
    try:
        config = Config.load()
        log_config = config.get('logging', {})

        log_file = log_config.get('log_file', os.path.join('logs', 'telemetry_node.log'))

        logs_dir = os.path.dirname(log_file)
        if logs_dir and not os.path.exists(logs_dir):
            os.makedirs(logs_dir, exist_ok=True)

        log_level_str = 'DEBUG' if debug_forced() else log_config.get('level', 'INFO').upper()
        log_level_map = {
            'DEBUG': logging.DEBUG,
            'INFO': logging.INFO,
            'WARNING': logging.WARNING,
            'ERROR': logging.ERROR,
            'CRITICAL': logging.CRITICAL
        }
        log_level = log_level_map.get(log_level_str, logging.INFO)

        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        max_bytes = log_config.get('max_bytes', 10 * 1024 * 1024)
        backup_count = log_config.get('backup_count', 5)
        enable_json_logging = log_config.get('json_format', False)

        file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8')
        if enable_json_logging:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(log_level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))

        root_logger.setLevel(log_level)
        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)

        for noisy_logger in NOISY_LOGGERS:
            logging.getLogger(noisy_logger).setLevel(logging.WARNING)

        logger = logging.getLogger(__name__)
        logger.info(f"Logging configured: file={log_file}, level={log_level_str}, json={enable_json_logging}")

    except Exception as e:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, handlers=[logging.StreamHandler(sys.stdout)])
        logging.getLogger(__name__).warning(f"Failed to configure logging from config: {e}, using defaults")
