import base64
import io
import json
import struct
import zlib
from typing import Any, Callable, Iterable, Optional, Tuple

import pytest
from PIL import Image, PngImagePlugin

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# 1x1 RGB, 8 bits per sample
IHDR_PAYLOAD = struct.pack(">IIBBBBB", 1, 1, 8, 2, 0, 0, 0)

ChunkSpec = Tuple[str, bytes]


def make_chunk(chunk_type: str, payload: bytes, crc: Optional[int] = None) -> bytes:
    """Assembles one chunk: length, type, payload, CRC (computed unless given)."""
    tag = chunk_type.encode("latin-1")
    if crc is None:
        crc = zlib.crc32(tag + payload)
    return struct.pack(">I", len(payload)) + tag + payload + struct.pack(">I", crc)


def build_png(chunks: Iterable[ChunkSpec], with_header: bool = True, with_end: bool = True) -> bytes:
    data = PNG_SIGNATURE
    if with_header:
        data += make_chunk("IHDR", IHDR_PAYLOAD)
    for chunk_type, payload in chunks:
        data += make_chunk(chunk_type, payload)
    if with_end:
        data += make_chunk("IEND", b"")
    return data


def itxt_payload(
    keyword: str,
    text: str,
    language: str = "",
    translated_keyword: str = "",
) -> bytes:
    return (
        keyword.encode("latin-1")
        + b"\x00\x00\x00"
        + language.encode("ascii")
        + b"\x00"
        + translated_keyword.encode("utf-8")
        + b"\x00"
        + text.encode("utf-8")
    )


def encode_card(card: Any) -> str:
    """Base64 of the card's UTF-8 JSON, the way card editors write 'chara'."""
    return base64.b64encode(json.dumps(card, ensure_ascii=False).encode("utf-8")).decode("ascii")


def pillow_png(entries: Iterable[Tuple[str, str, str]] = ()) -> bytes:
    """
    Writes a real PNG with Pillow.
    Each entry is (kind, keyword, value) where kind is 'text', 'itxt' or 'itxt-zip'.
    """
    png_info = PngImagePlugin.PngInfo()
    for kind, keyword, value in entries:
        if kind == "text":
            png_info.add_text(keyword, value)
        elif kind == "itxt":
            png_info.add_itxt(keyword, value)
        elif kind == "itxt-zip":
            png_info.add_itxt(keyword, value, zip=True)
        else:
            raise ValueError(f"Unknown text chunk kind: {kind}")

    byte_io = io.BytesIO()
    Image.new("RGB", (4, 4), "white").save(byte_io, "PNG", pnginfo=png_info)
    return byte_io.getvalue()


@pytest.fixture
def chunk() -> Callable[..., bytes]:
    return make_chunk


@pytest.fixture
def png() -> Callable[..., bytes]:
    return build_png


@pytest.fixture
def itxt() -> Callable[..., bytes]:
    return itxt_payload


@pytest.fixture
def card_png() -> Callable[..., bytes]:
    return pillow_png


@pytest.fixture
def encoded() -> Callable[[Any], str]:
    return encode_card


@pytest.fixture
def aria_v2() -> dict:
    return {
        "spec": "chara_card_v2",
        "spec_version": "2.0",
        "data": {
            "name": "Aria",
            "description": "A cat girl.",
            "personality": "playful",
            "scenario": "a cafe",
            "first_mes": "Hi!",
        },
    }


@pytest.fixture
def aria_png(card_png, encoded, aria_v2) -> bytes:
    return card_png([("text", "chara", encoded(aria_v2))])
