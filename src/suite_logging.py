import logging
import sys

from suite_settings import SuiteSettings

LOGGER_NAME = "angelcard"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(settings: SuiteSettings, verbose: bool = False, name: str = LOGGER_NAME) -> logging.Logger:
    """Build the process logger: console plus combined.log and error.log under LOG_DIR.

    Calling it again replaces the handlers rather than stacking them.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG if verbose else settings.log_level.upper())
    console.setFormatter(formatter)
    logger.addHandler(console)

    settings.log_dir.mkdir(parents=True, exist_ok=True)
    combined = logging.FileHandler(settings.log_dir / "combined.log", encoding="utf-8")
    combined.setLevel(logging.DEBUG if verbose else settings.log_level.upper())
    combined.setFormatter(formatter)
    logger.addHandler(combined)

    errors = logging.FileHandler(settings.log_dir / "error.log", encoding="utf-8")
    errors.setLevel(logging.ERROR)
    errors.setFormatter(formatter)
    logger.addHandler(errors)

    return logger
