import logging
import sys
from pythonjsonlogger import jsonlogger
from .config import settings

def setup_logger(name: str = "facecast", level: str = "INFO") -> logging.Logger:
    """
    JSON logs on stdout; every record carries `service` so generation logs
    can be filtered out of shared log streams.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        rename_fields={"levelname": "level"},
        static_fields={"service": name},
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    return logger

logger = setup_logger(level=settings.LOG_LEVEL)
