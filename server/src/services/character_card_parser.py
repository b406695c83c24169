import os
import re
from pathlib import Path, PurePosixPath
from typing import Optional, Tuple
from urllib.parse import urlparse, unquote
from urllib.request import url2pathname

import httpx

from exceptions import CharacterCardFetchError
from schemas import CharacterProfile
from services.character_card_processor import (
    JSON_EXTENSION,
    PNG_EXTENSION,
    get_extension,
    load_character_card_from_content,
)
from logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_FETCH_TIMEOUT = 10.0

# Used when a remote URL doesn't end in a usable file name
_CONTENT_TYPE_EXTENSIONS = {
    "image/png": PNG_EXTENSION,
    "application/json": JSON_EXTENSION,
    "text/json": JSON_EXTENSION,
}


def _fetch_timeout() -> float:
    try:
        return float(os.getenv("CARD_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT))
    except ValueError:
        logger.warning("CARD_FETCH_TIMEOUT is not a number, using the default")
        return DEFAULT_FETCH_TIMEOUT


def _is_windows_drive(scheme: str) -> bool:
    return len(scheme) == 1 and scheme.isalpha()


def _local_path(url: str) -> Path:
    parsed_url = urlparse(url)
    if parsed_url.scheme == "file":
        # url2pathname handles Windows drive letters and path separators
        path_to_open = url2pathname(parsed_url.path)
        # Remove leading slash on Windows drive letter paths (e.g., /C:/...)
        if re.match(r"^/[a-zA-Z]:", path_to_open):
            path_to_open = path_to_open[1:]
        return Path(path_to_open)
    # Plain paths, including C:\... where 'C' is parsed as the scheme
    return Path(url)


def _read_local_file(url: str) -> Tuple[str, bytes]:
    file_path = _local_path(url)
    if not file_path.is_file():
        logger.error(f"Attempted to open path: {file_path}")
        raise CharacterCardFetchError(f"Local file not found: {url}")

    try:
        return file_path.name, file_path.read_bytes()
    except OSError as e:
        raise CharacterCardFetchError(f"Failed to read local file {url}: {e}")


def _remote_filename(url: str, response: httpx.Response) -> str:
    filename = PurePosixPath(unquote(urlparse(url).path)).name or "card"
    if get_extension(filename) in (JSON_EXTENSION, PNG_EXTENSION):
        return filename

    content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
    extension = _CONTENT_TYPE_EXTENSIONS.get(content_type)
    if extension:
        return f"{filename}.{extension}"
    return filename


async def _read_remote_file(
    url: str, client: Optional[httpx.AsyncClient]
) -> Tuple[str, bytes]:
    try:
        if client is None:
            async with httpx.AsyncClient(
                follow_redirects=True, timeout=_fetch_timeout()
            ) as own_client:
                response = await own_client.get(url)
                response.raise_for_status()
        else:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise CharacterCardFetchError(
            f"Failed to fetch remote URL {url}: HTTP error {e.response.status_code}"
        )
    except httpx.RequestError as e:
        raise CharacterCardFetchError(f"Failed to fetch remote URL {url}: Request error {e}")

    return _remote_filename(url, response), response.content


async def fetch_character_card(
    url: str, client: Optional[httpx.AsyncClient] = None
) -> Tuple[str, bytes]:
    """
    Reads a character card from a local path, a file:// URL or an http(s) URL.
    Returns the file name used for format detection along with the raw bytes.
    """
    scheme = urlparse(url).scheme

    if scheme in ("file", "") or _is_windows_drive(scheme):
        return _read_local_file(url)
    if scheme in ("http", "https"):
        return await _read_remote_file(url, client)

    raise CharacterCardFetchError(f"Unsupported URL scheme: {scheme}")


async def fetch_and_parse_character_card(
    url: str, client: Optional[httpx.AsyncClient] = None
) -> CharacterProfile:
    """
    Fetches a character card from a URL (remote or local file path) and
    parses it into a CharacterProfile.
    """
    filename, content = await fetch_character_card(url, client)
    logger.debug(f"Read {len(content)} bytes for {filename} from {url}")
    return load_character_card_from_content(filename, content)
