import logging
import sys


def setup_logger(level: int = logging.INFO):
    """Configures the root logger for the application."""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Console handler on stdout
    handler = logging.StreamHandler(sys.stdout)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler.setFormatter(formatter)

    # Only add the handler once
    if not logger.handlers:
        logger.addHandler(handler)
