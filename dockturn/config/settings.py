"""
Configuration Management for dockturn
Centralizes all environment-based configuration and settings
"""

import os
import logging
from logging.handlers import RotatingFileHandler
from typing import List, Optional


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name, '')
    return [item.strip() for item in raw.split(',') if item.strip()]


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None):
    """Configure application logging, with optional file rotation"""
    level_name = (level or AppConfig.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()

    # Close and clear any existing handlers so our configuration is the only one
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    root_logger.setLevel(log_level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    log_file = log_file or AppConfig.LOG_FILE
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, mode=0o700, exist_ok=True)

        # Max 10MB per file, keep 14 backups
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,
            backupCount=14,
            encoding='utf-8'
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(console_formatter)
        root_logger.addHandler(file_handler)

    # The docker SDK logs every HTTP round trip at DEBUG through urllib3
    logging.getLogger("urllib3").setLevel(max(log_level, logging.INFO))


class AppConfig:
    """Main application configuration"""

    # Update behaviour
    NO_RESTART = _env_bool('DOCKTURN_NO_RESTART')
    MONITOR_ONLY = _env_bool('DOCKTURN_MONITOR_ONLY')
    ROLLING_RESTART = _env_bool('DOCKTURN_ROLLING_RESTART')
    CLEANUP = _env_bool('DOCKTURN_CLEANUP')
    LIFECYCLE_HOOKS = _env_bool('DOCKTURN_LIFECYCLE_HOOKS')
    TIMEOUT = float(os.getenv('DOCKTURN_TIMEOUT', 10))

    # Container selection
    CONTAINER_NAMES = _env_list('DOCKTURN_CONTAINERS')
    LABEL_ENABLE = _env_bool('DOCKTURN_LABEL_ENABLE')
    SCOPE = os.getenv('DOCKTURN_SCOPE', '')

    # Runtime client behaviour
    NO_PULL = _env_bool('DOCKTURN_NO_PULL')
    INCLUDE_STOPPED = _env_bool('DOCKTURN_INCLUDE_STOPPED')
    INCLUDE_RESTARTING = _env_bool('DOCKTURN_INCLUDE_RESTARTING')
    REVIVE_STOPPED = _env_bool('DOCKTURN_REVIVE_STOPPED')
    REMOVE_VOLUMES = _env_bool('DOCKTURN_REMOVE_VOLUMES')

    # Logging
    LOG_LEVEL = os.getenv('DOCKTURN_LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('DOCKTURN_LOG_FILE', '')

    @classmethod
    def validate(cls):
        """Validate configuration"""
        if cls.TIMEOUT <= 0:
            raise ValueError(f"Stop timeout must be positive: {cls.TIMEOUT}")

        logger = logging.getLogger(__name__)
        if cls.REVIVE_STOPPED and not cls.INCLUDE_STOPPED:
            logger.warning(
                "DOCKTURN_REVIVE_STOPPED has no effect without DOCKTURN_INCLUDE_STOPPED"
            )

        if cls.MONITOR_ONLY and cls.NO_RESTART:
            logger.warning("DOCKTURN_NO_RESTART has no effect in monitor-only mode")

        return True

    @classmethod
    def client_options(cls):
        """Runtime client options derived from the environment"""
        from dockturn.container.client import ClientOptions

        return ClientOptions(
            pull_images=not cls.NO_PULL,
            include_stopped=cls.INCLUDE_STOPPED,
            include_restarting=cls.INCLUDE_RESTARTING,
            revive_stopped=cls.REVIVE_STOPPED,
            remove_volumes=cls.REMOVE_VOLUMES,
        )

    @classmethod
    def update_params(cls):
        """Per-run update configuration derived from the environment"""
        from dockturn.container.filters import build_filter
        from dockturn.updates.types import UpdateParams

        container_filter, description = build_filter(
            cls.CONTAINER_NAMES, cls.LABEL_ENABLE, cls.SCOPE
        )
        logging.getLogger(__name__).info(description)

        return UpdateParams(
            filter=container_filter,
            no_restart=cls.NO_RESTART,
            monitor_only=cls.MONITOR_ONLY,
            rolling_restart=cls.ROLLING_RESTART,
            cleanup=cls.CLEANUP,
            lifecycle_hooks=cls.LIFECYCLE_HOOKS,
            timeout=cls.TIMEOUT,
        )
