"""VTU document model with raw appended data.

Overview
========
A VTU file is an XML skeleton followed, inside ``<AppendedData>``, by a raw
binary section that every ``<DataArray format="appended">`` references by a
byte ``offset``. This module splits a file into three byte ranges and keeps
them apart:

- ``head``: everything up to and including the ``_`` marker that opens the
  appended section. Its XML is parsed with :mod:`xml.etree.ElementTree` to
  find the arrays, but the bytes themselves are re-emitted as read.
- ``blob``: the appended section, one stored array after another.
- ``tail``: whatever follows the last stored array (closing tags, newlines).

Each appended array gets a :class:`DataArrayDescriptor` and an entry that is
either :class:`Opaque` (stored bytes, never decoded) or :class:`Decoded`
(values materialized as a :class:`~interVTU.Fields.NumericField`). Which one
is decided by the :class:`~interVTU.Fields.FieldKeywords` given to
:func:`parse`.

Writing back
------------
:func:`serialize` walks the stored arrays in offset order. Opaque entries and
decoded entries whose values are unchanged contribute their original bytes;
changed decoded entries are re-encoded. Only the ``offset`` attributes that
moved and the ``RangeMin``/``RangeMax`` attributes of changed arrays are
rewritten in ``head``, in place, so a document that no operator touched is
written back byte for byte.

Topology
--------
Arrays under ``<Points>`` and ``<Cells>`` form the topology signature. They
may be decoded for inspection but never take part in arithmetic, so the
signature of a document never changes.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

import numpy as np
from loguru import logger

from ..errors import DecompressionError, FormatError, NotInterpolatableError
from ..Fields.NumericField import NumericField
from ..Fields.Registry import FieldKeywords, FieldState, resolve
from .BinaryReader import BinaryReader
from .Blocks import (
    DEFAULT_BLOCK_SIZE,
    FLOAT64,
    VTK_DTYPES,
    array_to_bytes,
    bytes_to_array,
    decode_block,
    encode_block,
    read_header,
)

SECTIONS = ("Points", "PointData", "CellData", "Cells")
TOPOLOGY_SECTIONS = ("Points", "Cells")
DATA_SECTIONS = ("PointData", "CellData")
ZLIB_COMPRESSOR = "vtkZLibDataCompressor"

FieldKey = Tuple[str, str]  # (section, name)

_APPENDED_OPEN = re.compile(rb"<AppendedData\b[^>]*>")
_APPENDED_CLOSE = b"</AppendedData>"
_DATAARRAY_TAG = re.compile(rb"<DataArray\b[^>]*>")
_COMMENT = re.compile(rb"<!--.*?-->", re.S)
_EDITABLE_ATTRS = ("offset", "RangeMin", "RangeMax")
_ATTR_VALUE = {
    name: re.compile(rb"\s" + name.encode() + rb"""\s*=\s*(["'])(.*?)\1""")
    for name in _EDITABLE_ATTRS
}


# --------------------------- descriptors and entries ---------------------------


@dataclass(frozen=True, slots=True)
class DataArrayDescriptor:
    """Where one appended ``<DataArray>`` lives and how to read it.

    Attributes
    ----------
    name
        ``Name`` attribute, empty when the file gives none.
    section
        Enclosing element: ``Points``, ``PointData``, ``CellData``, ``Cells``,
        or the parent tag for arrays elsewhere (e.g. ``FieldData``).
    type_name
        VTK type such as ``"Float64"`` or ``"Int64"``.
    components
        ``NumberOfComponents`` (1 when absent).
    offset
        Byte offset of the stored array inside the appended section.
    extent
        Stored size in bytes, header included.
    compressed
        Inherited from the ``compressor`` attribute of ``<VTKFile>``.
    index
        Position among the document's appended arrays, in document order.
    """

    name: str
    section: str
    type_name: str
    components: int
    offset: int
    extent: int
    compressed: bool
    index: int

    @property
    def key(self) -> FieldKey:
        return (self.section, self.name)

    @property
    def is_topology(self) -> bool:
        return self.section in TOPOLOGY_SECTIONS

    @property
    def is_float64(self) -> bool:
        return self.type_name == FLOAT64


@dataclass(slots=True)
class Opaque:
    """Stored bytes of an array that was never decoded."""

    raw: bytes

    @property
    def state(self) -> FieldState:
        return FieldState.OPAQUE

    def is_modified(self) -> bool:
        return False

    def payload(self, compressed: bool, header_type: str) -> bytes:
        return self.raw

    def copy(self) -> Opaque:
        # bytes are immutable, sharing is safe
        return Opaque(self.raw)


@dataclass(slots=True)
class Decoded:
    """Decoded values of an array plus what is needed to write it back unchanged.

    Attributes
    ----------
    field
        Current values.
    raw
        Stored bytes as read from the file.
    original
        Bytes of the values right after decoding; the current values are
        compared against them to detect any change.
    original_shape
        ``(tuple_count, components)`` right after decoding.
    block_size
        Uncompressed block size of the stored array, reused when re-encoding.
    interpolatable
        ``False`` for arrays decoded for inspection only.
    """

    field: NumericField
    raw: bytes
    original: bytes
    original_shape: tuple[int, int]
    block_size: int = DEFAULT_BLOCK_SIZE
    interpolatable: bool = True

    @property
    def state(self) -> FieldState:
        if self.interpolatable:
            return FieldState.DECODED
        return FieldState.DECODED_NOT_INTERPOLATABLE

    def is_modified(self) -> bool:
        if self.field.shape != self.original_shape:
            return True
        return array_to_bytes(self.field.values) != self.original

    def encode(self, compressed: bool, header_type: str) -> bytes:
        """Encode the current values, header first."""
        return encode_block(
            array_to_bytes(self.field.values),
            compressed,
            header_type,
            block_size=self.block_size or DEFAULT_BLOCK_SIZE,
        )

    def payload(self, compressed: bool, header_type: str) -> bytes:
        if not self.is_modified():
            return self.raw
        return self.encode(compressed, header_type)

    def copy(self) -> Decoded:
        return Decoded(
            self.field.copy(),
            self.raw,
            self.original,
            self.original_shape,
            self.block_size,
            self.interpolatable,
        )


Entry = Opaque | Decoded


@dataclass(slots=True)
class _TagSpans:
    """Absolute byte spans of editable attribute values inside one ``<DataArray>`` tag."""

    spans: Dict[str, Tuple[int, int]] = field(default_factory=dict)


# --------------------------- document ---------------------------


class VTUDocument:
    """Parsed VTU file: XML skeleton, stored arrays, and decoded fields.

    Build instances with :func:`parse`. Documents are cheap to
    :meth:`copy`: stored bytes are shared and only decoded values are
    duplicated.
    """

    __slots__ = (
        "root",
        "header_type",
        "compressed",
        "keywords",
        "number_of_points",
        "number_of_cells",
        "descriptors",
        "entries",
        "_head",
        "_blob",
        "_tail",
        "_tag_spans",
        "_index",
        "_inline_topology",
    )

    def __init__(
        self,
        *,
        root: ET.Element,
        head: bytes,
        blob: bytes,
        tail: bytes,
        header_type: str,
        compressed: bool,
        keywords: FieldKeywords,
        number_of_points: int,
        number_of_cells: int,
        descriptors: List[DataArrayDescriptor],
        entries: List[Entry],
        tag_spans: List[_TagSpans],
        inline_topology: Tuple[bytes, ...] = (),
    ):
        self.root = root
        self._head = head
        self._blob = blob
        self._tail = tail
        self.header_type = header_type
        self.compressed = compressed
        self.keywords = keywords
        self.number_of_points = number_of_points
        self.number_of_cells = number_of_cells
        self.descriptors = descriptors
        self.entries = entries
        self._tag_spans = tag_spans
        self._inline_topology = inline_topology
        self._index: Dict[FieldKey, int] = {d.key: d.index for d in descriptors}

    def __repr__(self) -> str:
        decoded = sum(1 for e in self.entries if isinstance(e, Decoded))
        return (
            f"VTUDocument(points={self.number_of_points}, cells={self.number_of_cells}, "
            f"arrays={len(self.descriptors)}, decoded={decoded}, "
            f"compressor={'zlib' if self.compressed else 'none'}, header={self.header_type})"
        )

    __str__ = __repr__

    # ------------- lookup -------------

    def __len__(self) -> int:
        return len(self.descriptors)

    def __iter__(self) -> Iterator[Tuple[DataArrayDescriptor, Entry]]:
        return iter(zip(self.descriptors, self.entries))

    def find(self, name: str, section: str | None = None) -> int | None:
        """Return the descriptor index for ``name``, or ``None``.

        Without ``section``, ``PointData`` is searched before ``CellData`` and
        then every other section in document order.
        """
        if section is not None:
            return self._index.get((section, name))
        for sec in DATA_SECTIONS:
            if (sec, name) in self._index:
                return self._index[(sec, name)]
        for d in self.descriptors:
            if d.name == name:
                return d.index
        return None

    def state(self, name: str, section: str | None = None) -> FieldState:
        i = self.find(name, section)
        if i is None:
            raise KeyError(name)
        return self.entries[i].state

    def field(self, name: str, section: str | None = None) -> NumericField:
        """Return an interpolation-eligible field.

        Raises
        ------
        NotInterpolatableError
            When ``name`` is absent, was never decoded, or is not registered
            for arithmetic.
        """
        i = self.find(name, section)
        if i is None:
            raise NotInterpolatableError(f"no appended array named {name!r}")
        entry = self.entries[i]
        if not isinstance(entry, Decoded):
            raise NotInterpolatableError(
                f"{name!r} was not decoded; add it to the uncompress keywords"
            )
        if not entry.interpolatable:
            raise NotInterpolatableError(
                f"{name!r} is decoded but not listed in the interpolation keywords"
            )
        return entry.field

    def inspect(self, name: str, section: str | None = None) -> NumericField:
        """Return a decoded field whether or not it is eligible for arithmetic."""
        i = self.find(name, section)
        entry = None if i is None else self.entries[i]
        if not isinstance(entry, Decoded):
            raise NotInterpolatableError(f"{name!r} was not decoded")
        return entry.field

    def eligible(self) -> Dict[FieldKey, NumericField]:
        """Return every interpolation-eligible field keyed by ``(section, name)``."""
        return {
            d.key: e.field
            for d, e in zip(self.descriptors, self.entries)
            if isinstance(e, Decoded) and e.interpolatable
        }

    def eligible_names(self) -> List[str]:
        return [name for _, name in self.eligible()]

    def set_field(self, key: FieldKey, values: NumericField | np.ndarray) -> None:
        """Replace the values of an eligible field, keeping its shape."""
        current = self.field(key[1], key[0])
        new = values if isinstance(values, NumericField) else NumericField(current.name, values)
        current.check_compatible(new)
        self.entries[self._index[key]].field = NumericField(current.name, new.values.copy())

    # ------------- topology -------------

    def topology_signature(self) -> Tuple[object, ...]:
        """Counts plus the stored bytes of every ``Points`` and ``Cells`` array."""
        stored = tuple(
            (d.section, d.name, self.entries[d.index].payload(self.compressed, self.header_type))
            for d in self.descriptors
            if d.is_topology
        )
        return (self.number_of_points, self.number_of_cells, stored, self._inline_topology)

    def is_topology_compatible(self, other: VTUDocument) -> bool:
        if (self.number_of_points, self.number_of_cells) != (
            other.number_of_points,
            other.number_of_cells,
        ):
            return False
        return self.topology_signature() == other.topology_signature()

    def read_array(self, name: str, section: str) -> np.ndarray:
        """Decode any stored array into a flat numpy array of its VTK type.

        Does not change the entry state; used to inspect topology arrays.
        """
        i = self.find(name, section)
        if i is None:
            raise KeyError(f"{section}/{name}")
        d = self.descriptors[i]
        entry = self.entries[i]
        if isinstance(entry, Decoded):
            return entry.field.flat().copy()
        if d.type_name not in VTK_DTYPES:
            raise FormatError(f"{section}/{name}: unsupported type {d.type_name!r}")
        return bytes_to_array(decode_block(entry.raw, d.compressed, self.header_type), d.type_name)

    # ------------- copy / describe -------------

    def copy(self) -> VTUDocument:
        return VTUDocument(
            root=self.root,
            head=self._head,
            blob=self._blob,
            tail=self._tail,
            header_type=self.header_type,
            compressed=self.compressed,
            keywords=self.keywords,
            number_of_points=self.number_of_points,
            number_of_cells=self.number_of_cells,
            descriptors=list(self.descriptors),
            entries=[e.copy() for e in self.entries],
            tag_spans=self._tag_spans,
            inline_topology=self._inline_topology,
        )

    def describe(self) -> List[Dict[str, object]]:
        """One row per stored array: location, type, shape, and state."""
        rows = []
        for d, e in self:
            rows.append(
                {
                    "section": d.section,
                    "name": d.name,
                    "type": d.type_name,
                    "components": d.components,
                    "offset": d.offset,
                    "bytes": d.extent,
                    "state": e.state.value,
                    "modified": e.is_modified(),
                }
            )
        return rows


# --------------------------- parse ---------------------------


def _scan_tag_spans(head: bytes, count: int) -> List[_TagSpans]:
    """Locate editable attribute values of every ``<DataArray>`` tag, in document order."""
    masked = _COMMENT.sub(lambda m: b" " * len(m.group(0)), head)
    out: List[_TagSpans] = []
    for m in _DATAARRAY_TAG.finditer(masked):
        spans = _TagSpans()
        tag = m.group(0)
        for name, rx in _ATTR_VALUE.items():
            am = rx.search(tag)
            if am is not None:
                spans.spans[name] = (m.start() + am.start(2), m.start() + am.end(2))
        out.append(spans)
    if len(out) != count:
        raise FormatError(
            f"found {len(out)} <DataArray> tags in the header bytes but {count} in the XML tree"
        )
    return out


def _split_appended(data: bytes) -> Tuple[bytes, int, int]:
    """Return the XML text for ElementTree, and the start/stop of the raw section.

    Start is the first byte after the ``_`` marker, stop is the first byte of
    the closing ``</AppendedData>``. Both are ``-1`` when the file has no
    appended section.
    """
    m = _APPENDED_OPEN.search(data)
    if m is None:
        return data, -1, -1
    stop = data.rfind(_APPENDED_CLOSE)
    if stop < m.end():
        raise FormatError("<AppendedData> is not closed")
    marker = m.end()
    while marker < stop and data[marker : marker + 1] in b" \t\r\n":
        marker += 1
    if data[marker : marker + 1] != b"_":
        raise FormatError("appended data does not start with the '_' marker")
    xml_text = data[: m.end()] + data[stop:]
    return xml_text, marker + 1, stop


def _parent_sections(root: ET.Element) -> Dict[int, str]:
    sections: Dict[int, str] = {}
    for parent in root.iter():
        for child in parent:
            if child.tag == "DataArray":
                sections[id(child)] = parent.tag
    return sections


def _decode_entry(
    d: DataArrayDescriptor,
    raw: bytes,
    header_type: str,
    keywords: FieldKeywords,
    expected_tuples: int | None,
) -> Entry:
    state = keywords.state_for(d.name)
    if state is FieldState.OPAQUE:
        return Opaque(raw)
    if not d.is_float64:
        logger.warning(
            "{}/{} is {}, only Float64 arrays are decoded; kept as stored bytes",
            d.section,
            d.name,
            d.type_name,
        )
        return Opaque(raw)
    try:
        payload = decode_block(raw, d.compressed, header_type)
        with BinaryReader(raw, header_type) as reader:
            block_size = read_header(reader, d.compressed).block_size
        flat = bytes_to_array(payload, FLOAT64)
    except DecompressionError as exc:
        raise DecompressionError(f"{d.section}/{d.name}: {exc}") from exc
    try:
        fld = NumericField.from_flat(d.name, flat, d.components)
    except ValueError as exc:
        raise FormatError(str(exc)) from exc
    if expected_tuples is not None and fld.tuple_count != expected_tuples:
        raise FormatError(
            f"{d.section}/{d.name}: {fld.tuple_count} tuples, piece declares {expected_tuples}"
        )
    interpolatable = state is FieldState.DECODED and not d.is_topology
    if state is FieldState.DECODED and d.is_topology:
        logger.warning("{}/{} is part of the topology and stays out of arithmetic", d.section, d.name)
    logger.debug("decoded {}/{} shape={} state={}", d.section, d.name, fld.shape, state.value)
    return Decoded(
        fld,
        raw,
        array_to_bytes(fld.values),
        fld.shape,
        block_size or DEFAULT_BLOCK_SIZE,
        interpolatable,
    )


def parse(data: bytes, keywords: FieldKeywords | None = None) -> VTUDocument:
    """Parse the bytes of a VTU file.

    Parameters
    ----------
    data
        Whole file content.
    keywords
        Decode/arithmetic gating. ``None`` uses the process-wide default.

    Raises
    ------
    FormatError
        Malformed XML, not an unstructured grid, more than one piece, missing
        ``Points``/``Cells``, unsupported compressor or byte order, or an
        array offset outside the appended section.
    DecompressionError
        A stored array header or zlib stream is corrupt.
    """
    keywords = resolve(keywords)
    data = bytes(data)
    xml_text, blob_start, blob_stop = _split_appended(data)
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise FormatError(f"malformed XML: {exc}") from exc

    if root.tag != "VTKFile" or root.get("type") != "UnstructuredGrid":
        raise FormatError("not a VTKFile of type UnstructuredGrid")
    if root.get("byte_order", "LittleEndian") != "LittleEndian":
        raise FormatError(f"byte_order {root.get('byte_order')!r} is not supported")
    header_type = root.get("header_type", "UInt32")
    if header_type not in ("UInt32", "UInt64"):
        raise FormatError(f"header_type {header_type!r} is not supported")
    compressor = root.get("compressor")
    if compressor not in (None, ZLIB_COMPRESSOR):
        raise FormatError(f"compressor {compressor!r} is not supported")
    compressed = compressor == ZLIB_COMPRESSOR
    appended = root.find("AppendedData")
    if appended is not None and appended.get("encoding") != "raw":
        raise FormatError(
            f"encoding {appended.get('encoding')!r} of <AppendedData> is not supported, only raw"
        )

    grid = root.find("UnstructuredGrid")
    pieces = [] if grid is None else grid.findall("Piece")
    if len(pieces) != 1:
        raise FormatError(f"expected exactly one <Piece>, found {len(pieces)}")
    piece = pieces[0]
    for sec in TOPOLOGY_SECTIONS:
        if piece.find(sec) is None:
            raise FormatError(f"<{sec}> section is missing")
    try:
        n_points = int(piece.get("NumberOfPoints", "0"))
        n_cells = int(piece.get("NumberOfCells", "0"))
    except ValueError as exc:
        raise FormatError(f"invalid piece size: {exc}") from exc

    all_arrays = list(root.iter("DataArray"))
    sections = _parent_sections(root)
    head_end = blob_start if blob_start >= 0 else len(data)
    tag_spans = _scan_tag_spans(data[:head_end], len(all_arrays))
    blob = memoryview(data)[blob_start:blob_stop] if blob_start >= 0 else memoryview(b"")
    expected = {"PointData": n_points, "CellData": n_cells}

    descriptors: List[DataArrayDescriptor] = []
    entries: List[Entry] = []
    kept_spans: List[_TagSpans] = []
    inline_topology: List[bytes] = []
    seen: set[FieldKey] = set()
    taken: List[Tuple[int, int, str]] = []

    with BinaryReader(blob, header_type) as reader:
        for el, spans in zip(all_arrays, tag_spans):
            section = sections.get(id(el), "")
            name = el.get("Name", "")
            if el.get("format") != "appended":
                if section in TOPOLOGY_SECTIONS:
                    inline_topology.append(ET.tostring(el))
                if keywords.wants_decoded(name):
                    logger.warning(
                        "{}/{} is stored inline ({}); only appended arrays are decoded",
                        section,
                        name,
                        el.get("format", "ascii"),
                    )
                continue
            key = (section, name)
            if section in DATA_SECTIONS and key in seen:
                raise FormatError(f"duplicate array {name!r} in <{section}>")
            seen.add(key)
            try:
                offset = int(el.get("offset", ""))
            except ValueError as exc:
                raise FormatError(f"{section}/{name}: invalid offset") from exc
            if offset < 0 or offset >= reader.size:
                raise FormatError(
                    f"{section}/{name}: offset {offset} outside appended data ({reader.size} bytes)"
                )
            reader.seek(offset)
            try:
                extent = read_header(reader, compressed).extent
            except DecompressionError as exc:
                raise DecompressionError(f"{section}/{name}: {exc}") from exc
            d = DataArrayDescriptor(
                name=name,
                section=section,
                type_name=el.get("type", ""),
                components=int(el.get("NumberOfComponents", "1")),
                offset=offset,
                extent=extent,
                compressed=compressed,
                index=len(descriptors),
            )
            taken.append((offset, offset + extent, f"{section}/{name}"))
            raw = blob[offset : offset + extent].tobytes()
            entries.append(_decode_entry(d, raw, header_type, keywords, expected.get(section)))
            descriptors.append(d)
            kept_spans.append(spans)

    taken.sort()
    for (a0, a1, an), (b0, _, bn) in zip(taken, taken[1:]):
        if b0 < a1:
            raise FormatError(f"stored arrays {an} and {bn} overlap")

    for name in keywords.uncompress:
        if not any(d.name == name for d in descriptors):
            logger.warning("uncompress keyword {!r} matches no appended array", name)

    blob_end = max((d.offset + d.extent for d in descriptors), default=0)
    if blob_start >= 0:
        head = data[:blob_start]
        body = data[blob_start : blob_start + blob_end]
        tail = data[blob_start + blob_end :]
    else:
        head, body, tail = data, b"", b""

    doc = VTUDocument(
        root=root,
        head=head,
        blob=body,
        tail=tail,
        header_type=header_type,
        compressed=compressed,
        keywords=keywords,
        number_of_points=n_points,
        number_of_cells=n_cells,
        descriptors=descriptors,
        entries=entries,
        tag_spans=kept_spans,
        inline_topology=tuple(inline_topology),
    )
    logger.debug("parsed {}", doc)
    return doc


# --------------------------- serialize ---------------------------


def _format_range(value: float) -> bytes:
    return repr(float(value)).encode()


def _value_range(fld: NumericField) -> Tuple[float, float] | None:
    """Value range as VTK writes it: plain for scalars, of the L2 norm otherwise.

    Non-finite values are ignored; ``None`` when nothing finite is left.
    """
    v = fld.values[:, 0] if fld.components == 1 else np.linalg.norm(fld.values, axis=1)
    finite = v[np.isfinite(v)]
    if finite.size == 0:
        return None
    return (float(finite.min()), float(finite.max()))


def serialize(doc: VTUDocument) -> bytes:
    """Return the bytes of ``doc`` as a VTU file.

    Stored arrays are laid out again in their original offset order. Offsets
    that move and the value ranges of re-encoded arrays are patched in the
    header bytes; nothing else in the XML is touched.
    """
    modified = [e.is_modified() for e in doc.entries]
    order = sorted(range(len(doc.descriptors)), key=lambda i: doc.descriptors[i].offset)
    parts: List[bytes] = []
    new_offsets: Dict[int, int] = {}
    cursor = 0
    size = 0
    for i in order:
        d = doc.descriptors[i]
        entry = doc.entries[i]
        gap = doc._blob[cursor : d.offset]
        parts.append(gap)
        size += len(gap)
        new_offsets[i] = size
        if modified[i]:
            chunk = entry.encode(doc.compressed, doc.header_type)
            logger.debug("re-encoded {}/{} ({} bytes)", d.section, d.name, len(chunk))
        else:
            chunk = entry.raw
        parts.append(chunk)
        size += len(chunk)
        cursor = d.offset + d.extent

    edits: List[Tuple[int, int, bytes]] = []
    for i, d in enumerate(doc.descriptors):
        spans = doc._tag_spans[i].spans
        if new_offsets[i] != d.offset and "offset" in spans:
            edits.append((*spans["offset"], str(new_offsets[i]).encode()))
        entry = doc.entries[i]
        if modified[i] and isinstance(entry, Decoded):
            rng = _value_range(entry.field)
            if rng is None:
                logger.debug("{}/{} has no finite values; range attributes kept", d.section, d.name)
                continue
            lo, hi = rng
            if "RangeMin" in spans:
                edits.append((*spans["RangeMin"], _format_range(lo)))
            if "RangeMax" in spans:
                edits.append((*spans["RangeMax"], _format_range(hi)))

    head = doc._head
    if edits:
        buf = bytearray(head)
        for start, stop, text in sorted(edits, reverse=True):
            buf[start:stop] = text
        head = bytes(buf)
    return head + b"".join(parts) + doc._tail
