"""Encode and decode the per-array blocks of a raw ``<AppendedData>`` section.

Each array stored in the appended section carries its own header made of
``UInt32`` or ``UInt64`` words (``header_type`` on ``<VTKFile>``):

- Without a compressor the header is a single word giving the payload size
  in bytes, followed by the payload.
- With ``vtkZLibDataCompressor`` the payload is cut into blocks of
  ``block_size`` uncompressed bytes, each deflated on its own. The header is
  ``[nblocks, block_size, last_block_size, csize_0 ... csize_{nblocks-1}]``
  followed by the concatenated compressed blocks. ``last_block_size`` is the
  uncompressed size of the final block, ``0`` meaning a full block.

Payload bytes are interpreted as little-endian values. No byte swapping is
done; files declaring ``byte_order="BigEndian"`` are rejected upstream.
"""

from __future__ import annotations

import zlib
from dataclasses import dataclass

import numpy as np

from ..errors import DecompressionError
from .BinaryReader import BinaryReader, pack_words

DEFAULT_BLOCK_SIZE = 32768

VTK_DTYPES: dict[str, np.dtype] = {
    "Int8": np.dtype("<i1"),
    "UInt8": np.dtype("<u1"),
    "Int16": np.dtype("<i2"),
    "UInt16": np.dtype("<u2"),
    "Int32": np.dtype("<i4"),
    "UInt32": np.dtype("<u4"),
    "Int64": np.dtype("<i8"),
    "UInt64": np.dtype("<u8"),
    "Float32": np.dtype("<f4"),
    "Float64": np.dtype("<f8"),
}
FLOAT64 = "Float64"


@dataclass(frozen=True, slots=True)
class BlockHeader:
    """Decoded header of one stored array.

    Attributes
    ----------
    compressed
        Whether the payload is split into zlib blocks.
    nbytes
        Uncompressed payload size in bytes.
    header_bytes
        Size of the header itself.
    payload_bytes
        Stored payload size following the header (compressed size when
        ``compressed``).
    block_size
        Uncompressed size of every block but the last. ``0`` when not
        compressed.
    compressed_sizes
        Stored size of each block. Empty when not compressed.
    """

    compressed: bool
    nbytes: int
    header_bytes: int
    payload_bytes: int
    block_size: int = 0
    compressed_sizes: tuple[int, ...] = ()

    @property
    def extent(self) -> int:
        """Total number of bytes the array occupies in the appended section."""
        return self.header_bytes + self.payload_bytes

    @property
    def nblocks(self) -> int:
        return len(self.compressed_sizes)


def _expected_size(nblocks: int, block_size: int, last_block_size: int) -> int:
    if nblocks == 0:
        return 0
    last = last_block_size if last_block_size else block_size
    return (nblocks - 1) * block_size + last


def read_header(reader: BinaryReader, compressed: bool) -> BlockHeader:
    """Read one array header at the reader cursor and validate it.

    The cursor is left at the first payload byte.

    Raises
    ------
    DecompressionError
        If the header is truncated or declares more bytes than remain.
    """
    start = reader.tell()
    try:
        if not compressed:
            nbytes = reader.read_word()
            header = BlockHeader(False, nbytes, reader.word_size, nbytes)
        else:
            nblocks, block_size, last = reader.read_words(3)
            sizes = reader.read_words(nblocks)
            if nblocks and block_size == 0:
                raise DecompressionError("compressed header declares a zero block size")
            if last > block_size:
                raise DecompressionError(
                    f"last block size {last} exceeds block size {block_size}"
                )
            header = BlockHeader(
                True,
                _expected_size(nblocks, block_size, last),
                reader.word_size * (3 + nblocks),
                sum(sizes),
                block_size,
                sizes,
            )
    except EOFError as exc:
        raise DecompressionError(f"truncated block header at offset {start}") from exc
    if header.payload_bytes > reader.remaining():
        raise DecompressionError(
            f"block at offset {start} declares {header.payload_bytes} payload bytes "
            f"but only {reader.remaining()} remain"
        )
    return header


def block_extent(
    blob: bytes | memoryview, offset: int, compressed: bool, header_type: str = "UInt32"
) -> int:
    """Return how many bytes the array stored at ``offset`` spans, header included."""
    with BinaryReader(blob, header_type) as reader:
        reader.seek(offset)
        return read_header(reader, compressed).extent


def decode_block(
    raw: bytes | memoryview, compressed: bool, header_type: str = "UInt32"
) -> bytes:
    """Return the uncompressed payload of one stored array.

    Parameters
    ----------
    raw
        The stored bytes of the array, header first. Trailing bytes past the
        declared extent are ignored.
    compressed
        ``True`` when the file declares ``vtkZLibDataCompressor``.
    header_type
        ``"UInt32"`` or ``"UInt64"``.

    Raises
    ------
    DecompressionError
        On a truncated header, declared sizes past the end of ``raw``, a
        corrupt zlib stream, or inflated sizes that disagree with the header.
    """
    with BinaryReader(raw, header_type) as reader:
        header = read_header(reader, compressed)
        if not compressed:
            return reader.read(header.nbytes)

        last_index = header.nblocks - 1
        out: list[bytes] = []
        for k, csize in enumerate(header.compressed_sizes):
            chunk = reader.read(csize)
            try:
                block = zlib.decompress(chunk)
            except zlib.error as exc:
                raise DecompressionError(f"block {k}: {exc}") from exc
            want = header.block_size
            if k == last_index:
                want = header.nbytes - header.block_size * last_index
            if len(block) != want:
                raise DecompressionError(
                    f"block {k} inflated to {len(block)} bytes, header expects {want}"
                )
            out.append(block)

    data = b"".join(out)
    if len(data) != header.nbytes:
        raise DecompressionError(
            f"inflated {len(data)} bytes, header expects {header.nbytes}"
        )
    return data


def _chunk_it(data: bytes, n: int):
    k = 0
    while k * n < len(data):
        yield data[k * n : (k + 1) * n]
        k += 1


def encode_block(
    data: bytes,
    compress: bool,
    header_type: str = "UInt32",
    block_size: int = DEFAULT_BLOCK_SIZE,
    level: int = zlib.Z_DEFAULT_COMPRESSION,
) -> bytes:
    """Build the stored bytes of one array, header first.

    Inverse of :func:`decode_block`: when compressing, ``data`` is cut into
    ``block_size`` chunks, each deflated on its own, and the header is rebuilt
    from the sizes actually produced.
    """
    data = bytes(data)
    if not compress:
        return pack_words([len(data)], header_type) + data

    if block_size <= 0:
        raise ValueError("block_size must be positive")
    blocks = [zlib.compress(chunk, level) for chunk in _chunk_it(data, block_size)]
    last = len(data) % block_size
    header = pack_words(
        [len(blocks), block_size, last] + [len(b) for b in blocks], header_type
    )
    return header + b"".join(blocks)


def bytes_to_array(data: bytes, type_name: str = FLOAT64) -> np.ndarray:
    """View decoded payload bytes as a 1D array of the VTK type ``type_name``."""
    dtype = VTK_DTYPES[type_name]
    if len(data) % dtype.itemsize:
        raise DecompressionError(
            f"{len(data)} bytes is not a whole number of {type_name} values"
        )
    return np.frombuffer(data, dtype=dtype).copy()


def array_to_bytes(values: np.ndarray, type_name: str = FLOAT64) -> bytes:
    """Serialize values as little-endian ``type_name`` payload bytes."""
    return np.ascontiguousarray(values, dtype=VTK_DTYPES[type_name]).tobytes()
