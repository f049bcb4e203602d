import logging
import sys
from typing import Optional
from velox.core.config import Settings, settings as default_settings

def setup_logging(settings: Optional[Settings] = None):
    """Configures logging for the application."""
    settings = settings or default_settings
    log_level = logging.DEBUG if settings.DEBUG else logging.INFO

    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE, encoding="utf-8"))

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt=date_format,
        handlers=handlers
    )

    noisy_loggers = [
        "httpcore",
        "httpx",
        "asyncio",
        "aiosqlite",
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "multipart.multipart",
    ]

    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
