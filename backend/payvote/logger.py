import logging
from logging.handlers import RotatingFileHandler

from payvote.core.settings import Settings

FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

root_logger = logging.getLogger("payvote")
payments_logger = logging.getLogger("payvote.payments")
ledger_logger = logging.getLogger("payvote.ledger")
http_logger = logging.getLogger("payvote.http")


def configure_logging(settings: Settings) -> None:
    root_logger.setLevel(settings.log_level.upper())

    # Prevent duplicate handlers when the app is created more than once
    if root_logger.handlers or not settings.log_file:
        return

    # Rotating file handler: max 5 MB per file, keep 3 backups
    file_handler = RotatingFileHandler(settings.log_file, maxBytes=5 * 1024 * 1024, backupCount=3)
    file_handler.setFormatter(logging.Formatter(FORMAT))
    root_logger.addHandler(file_handler)
