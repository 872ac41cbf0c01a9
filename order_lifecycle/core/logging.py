import logging
import sys
from pythonjsonlogger.json import JsonFormatter

from order_lifecycle.core.config import settings

NOISY_LOGGERS = ("sqlalchemy.engine", "aio_pika", "aiormq")


def build_formatter() -> JsonFormatter:
    return JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        static_fields={"service": settings.service_name}
    )


def setup_logging() -> None:
    root = logging.getLogger()
    root.setLevel(settings.log_level)

    # lifespan can run more than once per process
    for handler in list(root.handlers):
        if isinstance(handler.formatter, JsonFormatter):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter())
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
