import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from auth_starter.config import get_settings

settings = get_settings()

LEVEL = logging.DEBUG if settings.APP_DEBUG else logging.INFO
CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Package root logger; modules log through children of it
logger = logging.getLogger("auth_starter")
logger.setLevel(LEVEL)

# Prevent duplicate handlers on re-import
if logger.handlers:
    logger.handlers.clear()


def _rotating_handler(path: Path, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5)  # 10MB
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(LEVEL)
console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
logger.addHandler(console_handler)

# OTP codes printed by the dummy SMS provider and dev mail end up in app.log too
if settings.LOG_TO_FILE:
    logs_dir = Path(settings.LOG_DIR)
    logs_dir.mkdir(parents=True, exist_ok=True)
    logger.addHandler(_rotating_handler(logs_dir / "app.log", logging.INFO))
    logger.addHandler(_rotating_handler(logs_dir / "errors.log", logging.ERROR))


def get_logger(name: str = None) -> logging.Logger:
    """Get a logger instance. If name is provided, returns a child logger."""
    if name:
        return logger.getChild(name)
    return logger
