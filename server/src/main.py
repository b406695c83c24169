import os

import uvicorn
from dotenv import load_dotenv
from litestar import Litestar
from litestar.router import Router
from litestar.exceptions import ValidationException
from litestar.config.cors import CORSConfig

from controllers.character_import import CharacterImportController
from controllers.health import HealthController
from exceptions import (
    CardImportError,
    card_import_exception_handler,
    generic_exception_handler,
    validation_exception_handler,
)
from logging_config import get_logger, setup_logging

logger = get_logger(__name__)

DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://127.0.0.1:5173"

# Litestar picks the handler for the closest class in the exception's MRO
EXCEPTION_HANDLERS = {
    Exception: generic_exception_handler,
    ValidationException: validation_exception_handler,
    CardImportError: card_import_exception_handler,
}


def _cors_config() -> CORSConfig:
    origins = os.getenv("CORS_ALLOW_ORIGINS", DEFAULT_CORS_ORIGINS)
    return CORSConfig(
        allow_origins=[origin.strip() for origin in origins.split(",") if origin.strip()]
    )


def create_app() -> Litestar:
    api_router = Router(
        path="/api",
        exception_handlers=EXCEPTION_HANDLERS,
        route_handlers=[
            HealthController,
            CharacterImportController,
        ],
    )

    return Litestar(
        cors_config=_cors_config(),
        exception_handlers=EXCEPTION_HANDLERS,
        route_handlers=[api_router],
    )


def main():
    """Loads configuration and serves the import API."""
    load_dotenv()
    setup_logging()

    app = create_app()
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 3000))

    logger.info(f"Starting API server on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
