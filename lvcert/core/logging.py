# lvcert/core/logging.py
import logging

from lvcert.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    # SQL de cada transação só em DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
