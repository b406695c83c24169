import base64
import binascii
import json
import re
from typing import Any, Mapping

from exceptions import InvalidJsonError, NoEmbeddedDataError
from services.text_chunks import KeywordMap
from logging_config import get_logger

logger = get_logger(__name__)

CHARA_KEYWORD = "chara"

_ASCII_WHITESPACE = re.compile(r"[\t\n\f\r ]")
_BASE64_BODY = re.compile(r"[A-Za-z0-9+/]*")


def base64_decode(text: str) -> str:
    """
    Decodes base64 the way browsers' atob() does and returns a binary string,
    one character per decoded byte.

    ASCII whitespace is ignored and padding is optional, but any character
    outside the base64 alphabet is an error.

    Raises:
        binascii.Error: The text is not valid base64.
    """
    data = _ASCII_WHITESPACE.sub("", text)
    if len(data) % 4 == 0:
        if data.endswith("=="):
            data = data[:-2]
        elif data.endswith("="):
            data = data[:-1]

    if len(data) % 4 == 1 or not _BASE64_BODY.fullmatch(data):
        raise binascii.Error("Invalid base64 data")

    padded = data + "=" * (-len(data) % 4)
    return base64.b64decode(padded).decode("latin-1")


def repair_mojibake(text: str) -> str:
    """
    Undoes UTF-8 text that was read one byte at a time as Latin-1.
    Returns the text unchanged when it doesn't fit that pattern.
    """
    try:
        return text.encode("latin-1").decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        return text


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unexpected token {name} in JSON")


def parse_card_json(text: str) -> Any:
    """Parses card JSON strictly: NaN and Infinity literals are rejected."""
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError as e:
        raise InvalidJsonError(str(e)) from e


def extract_card_document(keywords: Mapping[str, str]) -> Any:
    """
    Finds the 'chara' entry of a PNG's text chunks and parses the card inside.

    The value is usually base64-encoded JSON, but plain JSON text is accepted
    too. Both forms then get a mojibake repair pass before parsing.
    """
    value = keywords.get(CHARA_KEYWORD)
    if not value:
        raise NoEmbeddedDataError()

    if isinstance(keywords, KeywordMap):
        entry = keywords.entry(CHARA_KEYWORD)
        if entry is not None and entry.warning:
            logger.warning(entry.warning)

    try:
        text = base64_decode(value)
    except binascii.Error:
        # Might already be plain JSON (some tools skip base64)
        logger.debug("'chara' value is not base64, treating it as plain JSON text")
        text = value

    return parse_card_json(repair_mojibake(text))
