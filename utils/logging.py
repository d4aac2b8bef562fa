import logging
import sys
from typing import Iterable, Optional

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "openai", "aiosmtplib")


def setup_logging(level: Optional[str] = "INFO", quiet: Iterable[str] = _NOISY_LOGGERS) -> None:
    """
    Configure application-wide logging on the root logger.
    Third-party loggers listed in ``quiet`` are capped at WARNING unless DEBUG is requested.
    """
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates in reloads
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING)
