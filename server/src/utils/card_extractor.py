import sys
import json
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

from exceptions import CardImportError
from services.character_card_processor import (
    load_card_document,
    load_character_card_from_content,
)
from logging_config import setup_logging

USAGE = "Usage: card-extractor <path_to_character_card_file> [--raw]"


class CardExtractorError(Exception):
    """Custom exception for errors during card extraction."""
    pass


def _read_card_file(file_path: str) -> bytes:
    path = Path(file_path)
    if not path.is_file():
        raise CardExtractorError(f"File not found: {path}")
    return path.read_bytes()


def extract_raw_data_from_card(file_path: str) -> Any:
    """
    Extracts the raw card document from a character card file (PNG or JSON),
    without normalizing it.
    """
    return load_card_document(Path(file_path).name, _read_card_file(file_path))


def extract_profile_from_card(file_path: str) -> Dict[str, Any]:
    """Parses a character card file into its profile record."""
    profile = load_character_card_from_content(
        Path(file_path).name, _read_card_file(file_path)
    )
    return profile.to_record()


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    raw = "--raw" in args
    paths = [arg for arg in args if arg != "--raw"]

    if len(paths) != 1:
        print(USAGE, file=sys.stderr)
        return 1

    load_dotenv()
    setup_logging()

    try:
        if raw:
            output = extract_raw_data_from_card(paths[0])
        else:
            output = extract_profile_from_card(paths[0])
    except (CardExtractorError, CardImportError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
