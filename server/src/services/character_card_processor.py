from typing import Any, Union

from exceptions import UnsupportedFormatError
from schemas import CharacterProfile
from services.card_normalizer import normalize_card
from services.card_payload import extract_card_document, parse_card_json
from services.text_chunks import extract_text_chunks
from logging_config import get_logger

logger = get_logger(__name__)

JSON_EXTENSION = "json"
PNG_EXTENSION = "png"


def get_extension(filename: str) -> str:
    """Returns the lower-cased text after the last '.', or the whole name if there is none."""
    return filename.lower().rsplit(".", 1)[-1]


def _decode_text_file(content: Union[bytes, str]) -> str:
    if isinstance(content, str):
        return content
    # Same as reading a browser File as text: BOM dropped, bad bytes replaced
    return content.decode("utf-8-sig", errors="replace")


def load_json_document(content: Union[bytes, str]) -> Any:
    """Parses a .json character card file into its raw card document."""
    return parse_card_json(_decode_text_file(content))


def load_png_document(content: bytes) -> Any:
    """Extracts the raw card document embedded in a PNG's 'chara' text chunk."""
    keywords = extract_text_chunks(content)
    logger.debug(f"PNG text chunks: {list(keywords)}")
    return extract_card_document(keywords)


def load_card_document(filename: str, content: bytes) -> Any:
    """
    Reads the raw card document from a file, choosing the JSON or PNG path
    from the filename's extension.

    Raises:
        UnsupportedFormatError: The extension is neither .json nor .png.
    """
    extension = get_extension(filename)

    if extension == JSON_EXTENSION:
        return load_json_document(content)

    if extension == PNG_EXTENSION:
        return load_png_document(content)

    raise UnsupportedFormatError(extension)


def load_character_card_from_content(filename: str, content: bytes) -> CharacterProfile:
    """
    Parses a character card file (.json or .png) into a CharacterProfile.
    Every failure surfaces as a FormatError or CardError.
    """
    profile = normalize_card(load_card_document(filename, content))
    logger.info(
        f"Imported character '{profile.name}' from {filename} ({profile.source_format.value})"
    )
    return profile
