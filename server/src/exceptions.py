from litestar import Request, Response
from litestar.exceptions import ValidationException, HTTPException
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    HTTP_500_INTERNAL_SERVER_ERROR,
)
from logging_config import get_logger

logger = get_logger(__name__)


class CardImportError(Exception):
    """Base class for every failure of the character card import pipeline."""

    message = "The character card could not be imported."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class FormatError(CardImportError):
    """The input is not a container this pipeline can read."""


class NotPngError(FormatError):
    message = "Not a valid PNG file"


class TruncatedError(FormatError):
    """A chunk declares more bytes than the buffer holds."""

    def __init__(self, offset: int, detail: str | None = None):
        self.offset = offset
        super().__init__(detail or f"PNG data is truncated at offset {offset}")


class UnsupportedFormatError(FormatError):
    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(
            f"Unsupported file format: .{extension}. Expected .json or .png"
        )


class CardError(CardImportError):
    """The container was read but holds no usable character card."""


class NoEmbeddedDataError(CardError):
    message = (
        'No "chara" metadata found in PNG. '
        "This may not be a SillyTavern character card."
    )


class InvalidJsonError(CardError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Character card is not valid JSON: {detail}")


class InvalidCardError(CardError):
    def __init__(self, type_name: str):
        self.type_name = type_name
        super().__init__(
            f"Character card must be a JSON object, got {type_name} instead"
        )


class CharacterCardFetchError(HTTPException):
    """Custom exception for failures while reading a character card source."""
    status_code = 400
    detail = "The provided character card location could not be read."


def card_import_exception_handler(_: Request, exc: CardImportError) -> Response:
    """Translates pipeline errors into client errors."""
    status_code = HTTP_400_BAD_REQUEST
    if isinstance(exc, UnsupportedFormatError):
        status_code = HTTP_415_UNSUPPORTED_MEDIA_TYPE

    logger.warning(f"Character card import failed: {exc}")
    return Response(
        content={"status_code": status_code, "detail": str(exc)},
        status_code=status_code,
    )


def generic_exception_handler(_: Request, exc: Exception) -> Response:
    """
    Default handler for exceptions.
    HTTPExceptions keep their own status code and detail,
    while all other exceptions are logged and reported as a generic 500.
    """
    if isinstance(exc, HTTPException):
        return Response(
            content={"status_code": exc.status_code, "detail": exc.detail},
            status_code=exc.status_code,
        )

    # For any other, truly unexpected exception, log it and return a generic 500.
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return Response(
        content={
            "status_code": HTTP_500_INTERNAL_SERVER_ERROR,
            "detail": "Internal Server Error",
        },
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
    )


def validation_exception_handler(
    request: Request, exc: ValidationException
) -> Response:
    logger.warning(f"Validation failed: {exc.detail}")
    missing_fields_pretty = "No additional information"
    if exc.extra:
        field_messages = []
        for field in exc.extra:
            if isinstance(field, dict):
                field_messages.append(
                    f" - {field.get('key', '')}: {field.get('message', '')}"
                )
            elif isinstance(field, str):
                field_messages.append(f" - {field}")
        if field_messages:
            missing_fields_pretty = "\n".join(field_messages)
    return Response(
        content={
            "status_code": HTTP_400_BAD_REQUEST,
            "detail": f"Validation failed:\n{missing_fields_pretty}",
        },
        status_code=HTTP_400_BAD_REQUEST,
    )
