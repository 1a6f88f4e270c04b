"""Which arrays get decoded, and which of those take part in arithmetic.

Two lists of ``DataArray`` names drive a parse:

- ``uncompress``: arrays decoded into :class:`~interVTU.Fields.NumericField`.
- ``interpolation``: decoded arrays that the operators may read and write.

Both are carried by a :class:`FieldKeywords` value. Every entry point that
parses or combines files accepts ``keywords=``; when it is omitted, the
process-wide default set with :func:`set_uncompress_keywords` and
:func:`set_interpolation_keywords` is used. A parsed document keeps the value
it was parsed with, so later changes to the default never reach open files.

The default is plain module state without locking. Set it before opening
files and do not change it while another thread is parsing.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable

from loguru import logger


class FieldState(Enum):
    """How a stored array is held after parsing."""

    OPAQUE = "opaque"
    DECODED = "decoded"
    DECODED_NOT_INTERPOLATABLE = "decoded_not_interpolatable"


def _unique(names: Iterable[str]) -> tuple[str, ...]:
    if isinstance(names, str):
        names = (names,)
    out: dict[str, None] = {}
    for n in names:
        if not isinstance(n, str):
            raise TypeError(f"keyword names must be strings, got {type(n).__name__}")
        out.setdefault(n, None)
    return tuple(out)


@dataclass(frozen=True, slots=True)
class FieldKeywords:
    """Decode and arithmetic gating for one parse.

    Attributes:
        uncompress (tuple[str, ...]): Names of arrays decoded at parse time.
            Anything else is kept as stored bytes and written back verbatim.
        interpolation (tuple[str, ...]): Names of decoded arrays the
            operators act on. A name listed here but not in ``uncompress`` is
            never decoded and so never eligible.
    """

    uncompress: tuple[str, ...] = field(default=())
    interpolation: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "uncompress", _unique(self.uncompress))
        object.__setattr__(self, "interpolation", _unique(self.interpolation))

    def wants_decoded(self, name: str) -> bool:
        return name in self.uncompress

    def is_interpolatable(self, name: str) -> bool:
        return name in self.uncompress and name in self.interpolation

    def state_for(self, name: str) -> FieldState:
        """Return the state an array named ``name`` ends up in after parsing."""
        if name not in self.uncompress:
            return FieldState.OPAQUE
        if name in self.interpolation:
            return FieldState.DECODED
        return FieldState.DECODED_NOT_INTERPOLATABLE

    def with_uncompress(self, names: Iterable[str]) -> FieldKeywords:
        return replace(self, uncompress=_unique(names))

    def with_interpolation(self, names: Iterable[str]) -> FieldKeywords:
        return replace(self, interpolation=_unique(names))


_default = FieldKeywords()


def get_keywords() -> FieldKeywords:
    """Return the process-wide default keywords."""
    return _default


def set_keywords(keywords: FieldKeywords) -> None:
    """Replace the process-wide default keywords."""
    global _default
    if not isinstance(keywords, FieldKeywords):
        raise TypeError("keywords must be a FieldKeywords instance")
    _default = keywords


def set_uncompress_keywords(names: Iterable[str]) -> None:
    """Replace the default list of arrays decoded at parse time."""
    set_keywords(_default.with_uncompress(names))
    logger.debug("uncompress keywords set to {}", _default.uncompress)


def set_interpolation_keywords(names: Iterable[str]) -> None:
    """Replace the default list of decoded arrays the operators act on."""
    set_keywords(_default.with_interpolation(names))
    logger.debug("interpolation keywords set to {}", _default.interpolation)


def reset_keywords() -> None:
    """Restore empty defaults."""
    set_keywords(FieldKeywords())


def resolve(keywords: FieldKeywords | None) -> FieldKeywords:
    """Return ``keywords`` or, when ``None``, a snapshot of the default."""
    return _default if keywords is None else keywords
