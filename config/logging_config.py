"""Logging configuration.

Sets up console logging and logs the store configuration at startup.
"""

import logging

from config.flatfile_config import PipelineSettings, StoreConfig
from services.settings_helpers import get_setting


def setup_console_logging() -> logging.Logger:
    """Set up console logging.

    Returns:
        The configured uvicorn logger.
    """
    console_level = get_setting("FLATFILES_LOG_CONSOLE_LEVEL", "WARNING")
    logging.basicConfig(
        level=getattr(logging, console_level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    return logging.getLogger("uvicorn")


def print_startup_info() -> None:
    """Log store configs for visibility at startup. Secrets are never logged."""
    startup_logger = logging.getLogger("uvicorn")
    config = StoreConfig.from_env()
    settings = PipelineSettings.from_env()
    startup_logger.info(f"FLATFILES_S3_ENDPOINT={config.endpoint_url}")
    startup_logger.info(f"FLATFILES_S3_BUCKET={config.bucket}")
    startup_logger.info(
        f"FLATFILES_S3 credentials set: {'yes' if config.has_credentials else 'no'}"
    )
    startup_logger.info(f"FLATFILES_DESTINATION_DIR={settings.destination_dir}")
