# ---------------------------------------------------------------------
# Appended-data cursor
# ---------------------------------------------------------------------
from __future__ import annotations

import os
import struct

_HEADER_FORMATS = {"UInt32": "<I", "UInt64": "<Q"}


class BinaryReader:
    """Cursor over the raw ``<AppendedData>`` blob of a VTU file.

    Design
    ------
    - Wraps a ``memoryview``; bytes are copied out only by ``read``.
    - Integer cursor ``pos`` replaces file seeks.
    - Header words are little-endian ``UInt32`` or ``UInt64`` depending on the
      ``header_type`` attribute of ``<VTKFile>``.

    Notes
    -----
    Every array in the blob starts with its own header:
        uncompressed: [word nbytes][nbytes of payload]
        compressed:   [word nblocks][word blocksize][word lastsize]
                      [word csize_0] ... [word csize_{nblocks-1}][payload]
    """

    __slots__ = ("_buf", "size", "pos", "_fmt", "word_size")

    def __init__(self, blob: bytes | memoryview, header_type: str = "UInt32"):
        try:
            self._fmt = _HEADER_FORMATS[header_type]
        except KeyError:
            raise ValueError(f"unsupported header_type {header_type!r}") from None
        self._buf = memoryview(blob)
        self.size = len(self._buf)
        self.pos = 0
        self.word_size = struct.calcsize(self._fmt)

    def __repr__(self) -> str:
        return f"BinaryReader(size={self.size}, pos={self.pos}, word={self.word_size})"

    __str__ = __repr__

    # ------------- low-level cursor ops -------------

    def _ensure(self, n: int) -> None:
        if n < 0 or self.pos + n > self.size:
            raise EOFError(
                f"read of {n} bytes at {self.pos} past end of appended data ({self.size})"
            )

    def tell(self) -> int:
        return self.pos

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> None:
        if whence == os.SEEK_SET:
            np = offset
        elif whence == os.SEEK_CUR:
            np = self.pos + offset
        elif whence == os.SEEK_END:
            np = self.size + offset
        else:
            raise ValueError("invalid whence")
        if np < 0 or np > self.size:
            raise ValueError(f"invalid seek to {np}")
        self.pos = np

    def skip(self, n: int) -> None:
        self._ensure(n)
        self.pos += n

    def remaining(self) -> int:
        return self.size - self.pos

    # ------------- typed reads -------------

    def read(self, n: int) -> bytes:
        """Return ``n`` bytes and advance."""
        self._ensure(n)
        out = self._buf[self.pos : self.pos + n].tobytes()
        self.pos += n
        return out

    def read_word(self) -> int:
        """Read one header word."""
        self._ensure(self.word_size)
        val = struct.unpack_from(self._fmt, self._buf, self.pos)[0]
        self.pos += self.word_size
        return int(val)

    def read_words(self, count: int) -> tuple[int, ...]:
        """Read ``count`` consecutive header words."""
        n = count * self.word_size
        self._ensure(n)
        fmt = self._fmt[0] + self._fmt[1] * count
        vals = struct.unpack_from(fmt, self._buf, self.pos)
        self.pos += n
        return tuple(int(v) for v in vals)

    def peek_word(self) -> int:
        """Peek the next header word without advancing."""
        self._ensure(self.word_size)
        return int(struct.unpack_from(self._fmt, self._buf, self.pos)[0])

    # ------------- lifecycle -------------

    def close(self) -> None:
        self._buf.release()

    def __enter__(self) -> "BinaryReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def pack_words(values, header_type: str = "UInt32") -> bytes:
    """Pack header words in the layout :class:`BinaryReader` reads back."""
    fmt = _HEADER_FORMATS[header_type]
    values = list(values)
    return struct.pack(fmt[0] + fmt[1] * len(values), *values)
