import logging
import sys

from pythonjsonlogger import jsonlogger

from .config import Settings


def setup_logging(settings: Settings) -> logging.Logger:
    """
    Configures structured logging for the application.
    Uses JSON formatting in production, standard formatting in development.
    """
    logger = logging.getLogger()

    # clear existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)

    if settings.ENVIRONMENT == "production":
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            json_ensure_ascii=False
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(settings.LOG_LEVEL)

    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").disabled = True
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("kubernetes.client.rest").setLevel(logging.WARNING)

    return logger
