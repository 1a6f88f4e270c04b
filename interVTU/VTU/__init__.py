"""Reading and writing VTU files with raw appended data."""

from .Blocks import BlockHeader, block_extent, decode_block, encode_block
from .Document import DataArrayDescriptor, Decoded, Opaque, VTUDocument, parse, serialize
from .VTUFile import VTUFile, read, timestamped, write

__all__ = [
    "BlockHeader",
    "block_extent",
    "decode_block",
    "encode_block",
    "DataArrayDescriptor",
    "Decoded",
    "Opaque",
    "VTUDocument",
    "parse",
    "serialize",
    "VTUFile",
    "read",
    "write",
    "timestamped",
]
