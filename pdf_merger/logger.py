import logging
import os

LOG_LEVEL = os.getenv("PDF_MERGE_LOG_LEVEL", os.getenv("LOG_LEVEL", "INFO")).upper()
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# httpx logs every request at INFO; the fetcher already logs each download.
_NOISY_LOGGERS = ("httpx", "httpcore")


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger for `name`. The first call configures the root handler
    and quiets the HTTP client loggers.
    """
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
        for noisy in _NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)
    logger = logging.getLogger(name)
    logger.setLevel(LOG_LEVEL)
    return logger
