"""VTU result files as algebraic objects.

A :class:`VTUFile` wraps a parsed :class:`~interVTU.VTU.Document.VTUDocument`
and exposes the elementwise operators of :mod:`interVTU.Algebra.Operators`
at file granularity. Typical Monte-Carlo use sums samples and divides by
their count:

>>> from interVTU import FieldKeywords, VTUFile
>>> kw = FieldKeywords(uncompress=["temperature"], interpolation=["temperature"])
>>> mean = VTUFile("sample_0.vtu", keywords=kw)
>>> for k in range(1, n):
...     mean += VTUFile(f"sample_{k}.vtu", keywords=kw)
>>> mean /= n
>>> mean.write()          # sample_0_<timestamp>.vtu next to the source

Arithmetic only touches fields that are decoded and listed in the
interpolation keywords; everything else is written back as read.
"""

from __future__ import annotations

import numbers
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, List

import numpy as np
from loguru import logger

from ..Algebra.Operators import (
    Op,
    UnaryOp,
    apply,
    apply_into,
    combine,
    combine_into,
    fill_into,
    transform,
    transform_into,
)
from ..Fields.NumericField import NumericField
from ..Fields.Registry import FieldKeywords, FieldState
from .Document import VTUDocument, parse, serialize

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"


def timestamped(path: str | Path, when: datetime | None = None) -> Path:
    """Return ``path`` with ``_<timestamp>`` inserted before the suffix."""
    path = Path(path)
    stamp = (when or datetime.now()).strftime(TIMESTAMP_FORMAT)
    return path.with_name(f"{path.stem}_{stamp}{path.suffix or '.vtu'}")


class VTUFile:
    """VTU file opened for elementwise arithmetic.

    Parameters
    ----------
    filename
        File to read. The file is read completely and closed before the
        constructor returns.
    keywords
        Decode/arithmetic gating. ``None`` takes a snapshot of the
        process-wide default from :mod:`interVTU.Fields.Registry`.

    Raises
    ------
    OSError
        If the file cannot be read.
    FormatError, DecompressionError
        If the content is not a supported VTU file.
    """

    __slots__ = ("path", "document")

    # make numpy scalars defer to the reflected operators below
    __array_ufunc__ = None

    def __init__(self, filename: str | Path, *, keywords: FieldKeywords | None = None):
        self.path = Path(filename)
        data = self.path.read_bytes()
        self.document = parse(data, keywords)
        logger.info(
            "opened {} ({} points, {} cells, {} eligible field(s))",
            self.path,
            self.document.number_of_points,
            self.document.number_of_cells,
            len(self.document.eligible()),
        )

    @classmethod
    def from_document(cls, document: VTUDocument, path: str | Path) -> VTUFile:
        """Wrap an already parsed document; ``path`` is used by :meth:`write`."""
        obj = cls.__new__(cls)
        obj.path = Path(path)
        obj.document = document
        return obj

    @classmethod
    def from_bytes(
        cls, data: bytes, path: str | Path = "memory.vtu", *, keywords: FieldKeywords | None = None
    ) -> VTUFile:
        return cls.from_document(parse(data, keywords), path)

    def __repr__(self) -> str:
        doc = self.document
        return (
            f"VTUFile(path={str(self.path)!r}, points={doc.number_of_points}, "
            f"cells={doc.number_of_cells}, compressor={'zlib' if doc.compressed else 'none'}, "
            f"fields={self.keys()})"
        )

    __str__ = __repr__

    # ------------- output -------------

    def to_bytes(self) -> bytes:
        return serialize(self.document)

    def write(self, path: str | Path | None = None, add_timestamp: bool = True) -> Path:
        """Serialize and persist the file; return the path written.

        Parameters
        ----------
        path
            Target file. Defaults to the path the file was opened from.
        add_timestamp
            Insert ``_<YYYYmmdd_HHMMSS_ffffff>`` before the suffix so the
            source file is not overwritten.

        The bytes go to a temporary file in the target directory first and
        are moved into place once complete.
        """
        target = Path(path) if path is not None else self.path
        if add_timestamp:
            target = timestamped(target)
        data = self.to_bytes()
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp, target)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        logger.info("wrote {} ({} bytes)", target, len(data))
        return target

    # ------------- fields -------------

    @property
    def keywords(self) -> FieldKeywords:
        return self.document.keywords

    @property
    def number_of_points(self) -> int:
        return self.document.number_of_points

    @property
    def number_of_cells(self) -> int:
        return self.document.number_of_cells

    def keys(self) -> List[str]:
        """Names of the fields eligible for arithmetic, in document order."""
        return self.document.eligible_names()

    def fields(self) -> List[NumericField]:
        return list(self.document.eligible().values())

    def field(self, name: str, section: str | None = None) -> NumericField:
        """Return an eligible field; raises :class:`NotInterpolatableError` otherwise."""
        return self.document.field(name, section)

    def inspect(self, name: str, section: str | None = None) -> NumericField:
        """Return any decoded field, eligible for arithmetic or not."""
        return self.document.inspect(name, section)

    def state(self, name: str, section: str | None = None) -> FieldState:
        return self.document.state(name, section)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self.keys()

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __getitem__(self, name: str) -> np.ndarray:
        """Values of an eligible field, shape ``(tuples, components)``."""
        return self.document.field(name).values

    def __setitem__(self, name: str, values: np.ndarray | NumericField) -> None:
        """Replace the values of an eligible field; the shape must not change."""
        fld = self.document.field(name)
        idx = self.document.find(name)
        d = self.document.descriptors[idx]
        self.document.set_field(d.key, values)
        logger.debug("replaced values of {}/{} {}", d.section, fld.name, fld.shape)

    # ------------- algebra, explicit -------------

    def copy(self) -> VTUFile:
        return VTUFile.from_document(self.document.copy(), self.path)

    def combine(self, other: VTUFile, op: Op | str, *, names: Iterable[str] | None = None) -> VTUFile:
        """Return ``op(self, other)`` as a new file."""
        return VTUFile.from_document(combine(self.document, other.document, op, names=names), self.path)

    def combine_into(
        self, other: VTUFile, op: Op | str, *, names: Iterable[str] | None = None
    ) -> VTUFile:
        """Replace ``self`` with ``op(self, other)``."""
        combine_into(self.document, self.document, other.document, op, names=names)
        return self

    def apply(self, scalar: float, op: Op | str, *, names: Iterable[str] | None = None) -> VTUFile:
        """Return ``op(self, scalar)`` as a new file."""
        return VTUFile.from_document(apply(self.document, scalar, op, names=names), self.path)

    def apply_into(
        self, scalar: float, op: Op | str, *, names: Iterable[str] | None = None
    ) -> VTUFile:
        apply_into(self.document, scalar, op, names=names)
        return self

    def transform(self, op: UnaryOp | str, *, names: Iterable[str] | None = None) -> VTUFile:
        return VTUFile.from_document(transform(self.document, op, names=names), self.path)

    def transform_into(self, op: UnaryOp | str, *, names: Iterable[str] | None = None) -> VTUFile:
        transform_into(self.document, op, names=names)
        return self

    def fill(self, value: float, *, names: Iterable[str] | None = None) -> VTUFile:
        """Set every eligible value to ``value`` in place."""
        fill_into(self.document, value, names=names)
        return self

    def zero(self) -> VTUFile:
        """Copy with every eligible field set to 0."""
        return self.copy().fill(0.0)

    def one(self) -> VTUFile:
        """Copy with every eligible field set to 1."""
        return self.copy().fill(1.0)

    def minimum(self, other: VTUFile | float) -> VTUFile:
        return self._binary(other, Op.Min)

    def maximum(self, other: VTUFile | float) -> VTUFile:
        return self._binary(other, Op.Max)

    # ------------- algebra, operator sugar -------------

    def _binary(self, other: object, op: Op) -> VTUFile:
        if isinstance(other, VTUFile):
            return self.combine(other, op)
        if isinstance(other, numbers.Real):
            return self.apply(other, op)
        return NotImplemented

    def _binary_into(self, other: object, op: Op) -> VTUFile:
        if isinstance(other, VTUFile):
            return self.combine_into(other, op)
        if isinstance(other, numbers.Real):
            return self.apply_into(other, op)
        return NotImplemented

    def __add__(self, other):
        return self._binary(other, Op.Add)

    def __sub__(self, other):
        return self._binary(other, Op.Sub)

    def __mul__(self, other):
        return self._binary(other, Op.Mul)

    def __truediv__(self, other):
        return self._binary(other, Op.Div)

    def __pow__(self, other):
        if isinstance(other, VTUFile):
            raise TypeError("a file can only be raised to a scalar exponent")
        return self._binary(other, Op.Pow)

    def __iadd__(self, other):
        return self._binary_into(other, Op.Add)

    def __isub__(self, other):
        return self._binary_into(other, Op.Sub)

    def __imul__(self, other):
        return self._binary_into(other, Op.Mul)

    def __itruediv__(self, other):
        return self._binary_into(other, Op.Div)

    def __ipow__(self, other):
        if isinstance(other, VTUFile):
            raise TypeError("a file can only be raised to a scalar exponent")
        return self._binary_into(other, Op.Pow)

    def __radd__(self, other):
        # scalar + file
        return self._binary(other, Op.Add)

    def __rmul__(self, other):
        return self._binary(other, Op.Mul)

    def __rsub__(self, other):
        if not isinstance(other, numbers.Real):
            return NotImplemented
        return self.transform(UnaryOp.Neg).apply_into(other, Op.Add)

    def __rtruediv__(self, other):
        if not isinstance(other, numbers.Real):
            return NotImplemented
        return self.apply(other, Op.RDiv)

    def __neg__(self):
        return self.transform(UnaryOp.Neg)

    def __abs__(self):
        return self.transform(UnaryOp.Abs)


def read(filename: str | Path, keywords: FieldKeywords | None = None) -> VTUFile:
    """Open ``filename`` as a :class:`VTUFile`."""
    return VTUFile(filename, keywords=keywords)


def write(
    vtu: VTUFile, add_timestamp: bool = True, path: str | Path | None = None
) -> Path:
    """Write ``vtu``; see :meth:`VTUFile.write`."""
    return vtu.write(path, add_timestamp=add_timestamp)
