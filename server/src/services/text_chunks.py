from collections.abc import Mapping
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from services.png_chunks import Buffer, RawChunk, iter_chunks
from logging_config import get_logger

logger = get_logger(__name__)

NUL = b"\x00"


@dataclass(frozen=True)
class TextEntry:
    """
    A decoded tEXt/iTXt keyword and value.

    `warning` is set when the value is only a best-effort decode, such as a
    compressed iTXt payload that was decoded without being decompressed.
    """

    keyword: str
    value: str
    warning: Optional[str] = None


class KeywordMap(Mapping):
    """
    keyword -> text for every text chunk of a PNG.
    A later chunk with the same keyword replaces the earlier one,
    and iteration follows the order of the chunks that supplied the values.
    """

    def __init__(self):
        self._entries: Dict[str, TextEntry] = {}

    def add(self, entry: TextEntry) -> None:
        self._entries.pop(entry.keyword, None)
        self._entries[entry.keyword] = entry

    def entry(self, keyword: str) -> Optional[TextEntry]:
        return self._entries.get(keyword)

    @property
    def warnings(self) -> List[str]:
        return [e.warning for e in self._entries.values() if e.warning]

    def __getitem__(self, keyword: str) -> str:
        return self._entries[keyword].value

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"KeywordMap({dict(self)!r})"


def decode_latin1(data: bytes) -> str:
    return data.decode("latin-1")


def decode_utf8(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def decode_text_chunk(payload: bytes) -> Optional[TextEntry]:
    """Decodes a tEXt payload: keyword NUL value, both Latin-1."""
    separator = payload.find(NUL)
    if separator <= 0:
        return None

    return TextEntry(
        keyword=decode_latin1(payload[:separator]),
        value=decode_latin1(payload[separator + 1 :]),
    )


def _skip_terminated(payload: bytes, pos: int) -> int:
    """Returns the position after the next NUL, or the payload end if there is none."""
    terminator = payload.find(NUL, pos)
    if terminator == -1:
        return len(payload)
    return terminator + 1


def decode_international_text_chunk(payload: bytes) -> Optional[TextEntry]:
    """
    Decodes an iTXt payload:
    keyword NUL flag(1) method(1) language NUL translated-keyword NUL text

    Compressed text is not inflated. Its raw bytes still go through a lenient
    UTF-8 decode and the entry comes back with a warning attached.
    """
    separator = payload.find(NUL)
    if separator <= 0:
        return None

    keyword = decode_latin1(payload[:separator])
    compression_flag = payload[separator + 1] if separator + 1 < len(payload) else None

    # Skip the compression method, then the language tag and translated keyword
    pos = _skip_terminated(payload, separator + 3)
    pos = _skip_terminated(payload, pos)
    text = decode_utf8(payload[pos:])

    if compression_flag == 0:
        return TextEntry(keyword=keyword, value=text)

    if compression_flag is None:
        warning = f"iTXt chunk '{keyword}' ends before its compression flag"
    else:
        warning = (
            f"iTXt chunk '{keyword}' is compressed; "
            "its text was decoded without decompression and is likely garbled"
        )
    return TextEntry(keyword=keyword, value=text, warning=warning)


CHUNK_DECODERS = {
    "tEXt": decode_text_chunk,
    "iTXt": decode_international_text_chunk,
}


def decode_chunk(chunk: RawChunk) -> Optional[TextEntry]:
    decoder = CHUNK_DECODERS.get(chunk.type)
    if decoder is None:
        return None

    entry = decoder(chunk.payload)
    if entry is None:
        logger.debug(f"Skipping {chunk.type} chunk without a keyword separator")
    return entry


def extract_text_chunks(buffer: Buffer) -> KeywordMap:
    """Collects every tEXt and iTXt entry of a PNG into a single KeywordMap."""
    keywords = KeywordMap()
    for chunk in iter_chunks(buffer):
        entry = decode_chunk(chunk)
        if entry is not None:
            keywords.add(entry)
    return keywords
