import logging
import sys

LOG_FORMAT = '[%(levelname)s] %(threadName)s %(name)s: %(message)s'

def configure_logging(level=logging.INFO, fmt: str = LOG_FORMAT):
    """Configure logging to stderr"""
    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter(fmt)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    if root_logger.handlers:
        root_logger.handlers.clear()

    root_logger.addHandler(handler)

    # requests/urllib3 connection chatter drowns out timer output at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
