"""In-memory double-precision field with tuple/component shape."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..errors import ShapeMismatchError


@dataclass
class NumericField:
    """Values of one decoded ``DataArray``.

    Attributes
    ----------
    name
        ``Name`` attribute of the array.
    values
        Array of shape ``(tuple_count, components)``. Stored as float64.
    """

    name: str
    values: np.ndarray

    def __post_init__(self) -> None:
        a = np.asarray(self.values, dtype=np.float64)
        if a.ndim == 1:
            a = a.reshape(-1, 1)
        if a.ndim != 2:
            raise ValueError(f"{self.name}: values must be 1D or 2D, got {a.ndim}D")
        self.values = a

    @classmethod
    def from_flat(cls, name: str, flat: np.ndarray, components: int) -> NumericField:
        """Build a field from interleaved values, ``components`` per tuple."""
        flat = np.asarray(flat, dtype=np.float64).reshape(-1)
        if components < 1 or flat.size % components:
            raise ValueError(
                f"{name}: {flat.size} values do not split into tuples of {components}"
            )
        return cls(name, flat.reshape(-1, components))

    @property
    def shape(self) -> tuple[int, int]:
        """``(tuple_count, components)``."""
        return (int(self.values.shape[0]), int(self.values.shape[1]))

    @property
    def tuple_count(self) -> int:
        return int(self.values.shape[0])

    @property
    def components(self) -> int:
        return int(self.values.shape[1])

    def __len__(self) -> int:
        return self.tuple_count

    def is_compatible(self, other: NumericField) -> bool:
        """Return ``True`` when both tuple and component counts match."""
        return self.shape == other.shape

    def check_compatible(self, other: NumericField) -> None:
        if not self.is_compatible(other):
            raise ShapeMismatchError(
                f"field {self.name!r}: shape {self.shape} does not match {other.shape}"
            )

    def copy(self) -> NumericField:
        return NumericField(self.name, self.values.copy())

    def flat(self) -> np.ndarray:
        """Return the interleaved values in file order."""
        return self.values.reshape(-1)

    def __repr__(self) -> str:
        return f"NumericField(name={self.name!r}, shape={self.shape})"

    __str__ = __repr__
