"""
Centralized logging configuration for the Pollution Report API
"""

import logging
import sys

from .config import settings


def setup_logging() -> logging.Logger:
    """Setup centralized logging configuration"""

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    configure_third_party_loggers()

    app_logger = logging.getLogger("pollution_reports")
    app_logger.info(f"🚀 Logging initialized - Level: {settings.log_level}")
    app_logger.info(f"🌍 Environment: {settings.environment}")

    return app_logger


def configure_third_party_loggers():
    """Reduce noise from third-party libraries"""

    noisy_loggers = [
        "urllib3.connectionpool",
        "requests.packages.urllib3.connectionpool",
        "PIL.PngImagePlugin",
        "PIL.TiffImagePlugin",
        "PIL.Image",
        "geopy",
    ]

    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name"""
    return logging.getLogger(f"pollution_reports.{name}")


# Initialize logging on import
logger = setup_logging()
