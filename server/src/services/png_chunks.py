import struct
from typing import Iterator, NamedTuple, Union

from exceptions import NotPngError, TruncatedError
from logging_config import get_logger

logger = get_logger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# length(4) + type(4)
CHUNK_HEADER_SIZE = 8
CRC_SIZE = 4

END_CHUNK = "IEND"

Buffer = Union[bytes, bytearray, memoryview]


class RawChunk(NamedTuple):
    type: str
    length: int
    payload: bytes


def read_u32_be(buffer: bytes, offset: int) -> int:
    """Reads an unsigned 32-bit big-endian integer at offset."""
    return struct.unpack_from(">I", buffer, offset)[0]


def is_png(buffer: Buffer) -> bool:
    return bytes(buffer[: len(PNG_SIGNATURE)]) == PNG_SIGNATURE


def iter_chunks(buffer: Buffer) -> Iterator[RawChunk]:
    """
    Walks the chunks of a PNG byte stream in file order, up to and including IEND.

    The signature is checked before the iterator is handed out, so a non-PNG
    input fails here and no chunk is ever read. CRC fields are skipped and
    never verified.

    Raises:
        NotPngError: The first 8 bytes are not the PNG signature.
        TruncatedError: (while iterating) a chunk runs past the end of the buffer.
    """
    data = bytes(buffer)
    if not is_png(data):
        raise NotPngError()
    return _walk(data)


def _walk(data: bytes) -> Iterator[RawChunk]:
    offset = len(PNG_SIGNATURE)
    end = len(data)

    # A tail no longer than a CRC field counts as the end of the data
    while end - offset > CRC_SIZE:
        if offset + CHUNK_HEADER_SIZE > end:
            raise TruncatedError(
                offset, f"PNG data ends inside a chunk header at offset {offset}"
            )

        length = read_u32_be(data, offset)
        chunk_type = data[offset + 4 : offset + CHUNK_HEADER_SIZE].decode("latin-1")

        data_start = offset + CHUNK_HEADER_SIZE
        data_end = data_start + length
        if data_end + CRC_SIZE > end:
            raise TruncatedError(
                offset,
                f"Chunk '{chunk_type}' at offset {offset} declares {length} bytes "
                f"but only {max(end - data_start - CRC_SIZE, 0)} are available",
            )

        yield RawChunk(chunk_type, length, data[data_start:data_end])

        if chunk_type == END_CHUNK:
            return

        # Move to next chunk: length(4) + type(4) + data(length) + crc(4)
        offset = data_end + CRC_SIZE

    logger.debug("PNG data ended without an IEND chunk")
