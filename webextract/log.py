import sys

from loguru import logger

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"


def configure_logging(level: str = "INFO", verbose: bool = False) -> None:
    """Replace loguru's default sink with a single formatted stderr sink."""
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level="DEBUG" if verbose else level.upper())
