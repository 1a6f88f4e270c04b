"""Independent VTU writer for tests, built on struct and zlib only."""

import struct
import zlib
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

_NP = {
    "Float64": "<f8",
    "Float32": "<f4",
    "Int64": "<i8",
    "Int32": "<i4",
    "UInt8": "<u1",
}
_WORD = {"UInt32": "<I", "UInt64": "<Q"}


@dataclass
class Array:
    section: str
    name: str
    type: str
    values: np.ndarray
    components: int = 1
    ranges: bool = False


@dataclass
class GridSpec:
    arrays: list[Array] = field(default_factory=list)
    n_points: int = 0
    n_cells: int = 0
    compress: bool = False
    header_type: str = "UInt32"
    block_size: int = 32768


def _words(values, header_type):
    fmt = _WORD[header_type]
    return struct.pack(fmt[0] + fmt[1] * len(values), *values)


def stored_bytes(payload: bytes, compress: bool, header_type: str, block_size: int) -> bytes:
    """Header plus payload, written the way ParaView does it."""
    if not compress:
        return _words([len(payload)], header_type) + payload
    chunks = [payload[i : i + block_size] for i in range(0, len(payload), block_size)]
    blocks = [zlib.compress(c) for c in chunks]
    last = len(payload) % block_size
    return _words([len(blocks), block_size, last] + [len(b) for b in blocks], header_type) + b"".join(blocks)


def build_vtu(spec: GridSpec) -> bytes:
    """Serialize ``spec`` as a VTU file with raw appended data."""
    blob = b""
    tags = {"PointData": [], "CellData": [], "Points": [], "Cells": []}
    for arr in spec.arrays:
        payload = np.ascontiguousarray(arr.values, dtype=_NP[arr.type]).tobytes()
        extra = ""
        if arr.components != 1:
            extra += f' NumberOfComponents="{arr.components}"'
        if arr.ranges:
            v = np.asarray(arr.values, dtype=float).reshape(-1, arr.components)
            mag = v[:, 0] if arr.components == 1 else np.linalg.norm(v, axis=1)
            extra += f' RangeMin="{mag.min():g}" RangeMax="{mag.max():g}"'
        tags[arr.section].append(
            f'        <DataArray type="{arr.type}" Name="{arr.name}"{extra} '
            f'format="appended" offset="{len(blob)}"/>'
        )
        blob += stored_bytes(payload, spec.compress, spec.header_type, spec.block_size)

    compressor = ' compressor="vtkZLibDataCompressor"' if spec.compress else ""
    lines = [
        '<?xml version="1.0"?>',
        f'<VTKFile type="UnstructuredGrid" version="1.0" byte_order="LittleEndian" '
        f'header_type="{spec.header_type}"{compressor}>',
        "  <UnstructuredGrid>",
        f'    <Piece NumberOfPoints="{spec.n_points}" NumberOfCells="{spec.n_cells}">',
    ]
    for section in ("PointData", "CellData", "Points", "Cells"):
        lines.append(f"      <{section}>")
        lines.extend(tags[section])
        lines.append(f"      </{section}>")
    lines += [
        "    </Piece>",
        "  </UnstructuredGrid>",
        '  <AppendedData encoding="raw">',
        "   _",
    ]
    head = "\n".join(lines).encode()
    return head + blob + b"\n  </AppendedData>\n</VTKFile>\n"


def ramp_spec(
    compress: bool = False,
    header_type: str = "UInt32",
    n: int = 5,
    shift: float = 0.0,
    block_size: int = 32768,
    with_area: bool = True,
) -> GridSpec:
    """Line mesh of ``n`` nodes on x in [0, 0.8] carrying ``xRamp = x``."""
    x = np.linspace(0.0, 0.8, n)
    points = np.column_stack([x + shift, np.zeros(n), np.zeros(n)])
    conn = np.column_stack([np.arange(n - 1), np.arange(1, n)]).reshape(-1)
    offsets = np.arange(2, 2 * (n - 1) + 1, 2)
    types = np.full(n - 1, 3)
    velocity = np.column_stack([x, 2.0 * x, np.ones(n)])
    arrays = [
        Array("PointData", "xRamp", "Float64", x, ranges=True),
        Array("PointData", "velocity", "Float64", velocity, components=3),
        Array("PointData", "nodeId", "Int32", np.arange(n)),
        Array("PointData", "untouched", "Float64", np.sin(x)),
    ]
    if with_area:
        arrays.append(Array("CellData", "area", "Float64", np.full(n - 1, 0.5)))
    arrays += [
        Array("Points", "Points", "Float64", points, components=3),
        Array("Cells", "connectivity", "Int64", conn),
        Array("Cells", "offsets", "Int64", offsets),
        Array("Cells", "types", "UInt8", types),
    ]
    return GridSpec(arrays, n, n - 1, compress, header_type, block_size)


def ramp_bytes(**kwargs) -> bytes:
    return build_vtu(ramp_spec(**kwargs))


def write_file(path: Path, data: bytes) -> Path:
    path.write_bytes(data)
    return path

