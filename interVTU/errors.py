"""Exception types raised while reading, combining, and writing VTU files."""

from __future__ import annotations


class VTUError(Exception):
    """Base class for every interVTU failure."""


class FormatError(VTUError, ValueError):
    """The XML skeleton or the appended section does not describe a usable VTU file."""


class DecompressionError(VTUError, ValueError):
    """A binary block header or zlib stream could not be decoded."""


class TopologyMismatchError(VTUError, ValueError):
    """Two files do not share the same points and cells."""


class ShapeMismatchError(VTUError, ValueError):
    """Two fields with the same name differ in tuple or component count."""


class NotInterpolatableError(VTUError, KeyError):
    """The field was never decoded or is not registered for arithmetic."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""
