# logger.py - Centralized logging configuration
import os
import logging
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]"


def setup_logger(name, log_file=None, level=logging.INFO, to_file=True):
    """Set up a logger with file rotation"""
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        logger.setLevel(level)

        if to_file:
            if not os.path.exists("logs"):
                os.makedirs("logs")
            if not log_file:
                log_file = f"logs/{name}.log"

            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=10240,
                backupCount=10
            )
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            file_handler.setLevel(level)
            logger.addHandler(file_handler)

        # Console handler for development
        if os.environ.get("FLASK_ENV") != "production":
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.DEBUG)
            console_handler.setFormatter(logging.Formatter(
                "%(name)s - %(levelname)s - %(message)s"
            ))
            logger.addHandler(console_handler)

    return logger


def configure_app_logging(app):
    """Attach rotating file + console handlers to the app and the ledger package."""
    to_file = not app.config.get("TESTING", False)
    level = logging.DEBUG if app.debug else logging.INFO

    if to_file:
        if not os.path.exists("logs"):
            os.makedirs("logs")
        file_handler = RotatingFileHandler("logs/app.log", maxBytes=10240, backupCount=10)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(logging.INFO)
        app.logger.handlers.clear()
        app.logger.addHandler(file_handler)
        app.logger.propagate = False

    app.logger.setLevel(level)

    if app.debug:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        app.logger.addHandler(console_handler)

    # every ledger.* module logger inherits these handlers
    setup_logger("ledger", level=level, to_file=to_file)
