"""
Leveled logging sink used by the dashboard services
"""

import logging
from typing import Any, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Install the dashboard log format on the root logger"""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


class LoggingService:
    """Thin wrapper over the "prodash" logger with info/warning/error levels"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("prodash")

    def info(self, message: str):
        self.logger.info(message)

    def warning(self, message: str):
        self.logger.warning(message)

    def error(self, message: str, cause: Any = None):
        """Log an error; a cause exception adds its traceback"""
        if cause is None:
            self.logger.error(message)
        elif isinstance(cause, BaseException):
            self.logger.error(
                f"{message}: {cause}",
                exc_info=(type(cause), cause, cause.__traceback__),
            )
        else:
            self.logger.error(f"{message}: {cause}")
