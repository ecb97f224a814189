import logging
import os

LOG_LEVEL = os.environ.get("LOG_LEVEL", "info")
LOG_FORMAT = "[{asctime}|{filename}:{funcName}:{lineno:d}]{levelname}  {message}"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
}


def setup_logger(level: str | None = None) -> logging.Logger:
    logger = logging.getLogger("vlogflow")
    logger.setLevel(_LEVELS.get((level or LOG_LEVEL).lower(), logging.INFO))

    formatter = logging.Formatter(LOG_FORMAT, style="{", datefmt="%H:%M:%S")

    # Replace handlers from a previous call instead of stacking them
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger
