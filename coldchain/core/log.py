import logging
from logging.handlers import RotatingFileHandler

from .config import settings

_configured = False


def configure_logging() -> None:
    global _configured
    if _configured:
        return

    logger = logging.getLogger()
    logger.setLevel(logging.INFO)

    fmt = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s - %(message)s"
    )

    # Console
    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    # Rotating file (avoid filling the disk)
    if settings.log_file:
        fh = RotatingFileHandler(
            settings.log_file, maxBytes=2_000_000, backupCount=5
        )
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    # Silence noisy httpx request logging
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    _configured = True
