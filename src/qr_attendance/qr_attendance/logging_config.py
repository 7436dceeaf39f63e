from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from flask import Flask

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(threadName)s : %(message)s"


def setup_logging(app: Flask) -> None:
    """Attach console and (optionally) rotating file handlers.

    Module loggers come from `logging.getLogger(__name__)`, so the handlers
    are installed on the package logger. Calling this again replaces them.
    """
    level_name = str(app.config.get("LOG_LEVEL") or ("DEBUG" if app.debug else "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    package_logger = logging.getLogger(__name__.rsplit(".", 1)[0])
    package_logger.setLevel(level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    package_logger.addHandler(console_handler)

    log_dir = app.config.get("LOG_DIR")
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "qr_attendance.log"),
            maxBytes=1024 * 1024 * 10,  # 10MB
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.INFO)
        package_logger.addHandler(file_handler)

    app.logger.setLevel(level)
    # mysql-connector is chatty at DEBUG
    logging.getLogger("mysql.connector").setLevel(logging.WARNING)
