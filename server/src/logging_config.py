import logging
import os
import json
from rich.console import Console
from rich.logging import RichHandler


class JsonFormatter(logging.Formatter):
    """
    Formats log records as a JSON string.
    """

    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record, ensure_ascii=False)


def setup_logging():
    is_production = os.getenv("APP_ENV", "development").lower() == "production"
    level = os.getenv("LOG_LEVEL", "INFO").upper()

    if is_production:
        # Configure for production: JSON output to stdout
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=level, handlers=[handler], force=True)
        # Suppress uvicorn's default access logger to avoid duplicate logs
        logging.getLogger("uvicorn.access").handlers = []
    else:
        logging.basicConfig(
            level=level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
            force=True,
        )

    # Chunk walking and payload fallbacks log at DEBUG
    if os.getenv("CARD_DEBUG", "").lower() in ("1", "true", "yes"):
        logging.getLogger("services").setLevel(logging.DEBUG)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
