import logging
import sys

LOGGER_NAME = 'swarmctl'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def setup_logging(level: str = 'WARNING') -> logging.Logger:
    """Configure the swarmctl logger to write diagnostics to stderr."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    # Re-running inside one process (tests) must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logger.level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)
    logger.propagate = False

    return logger
