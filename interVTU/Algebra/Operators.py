"""Elementwise arithmetic over the eligible fields of VTU documents.

Operations are tagged with :class:`Op` (binary) or :class:`UnaryOp` and
dispatched through a handful of functions. Every function comes in two
forms:

- allocating: ``combine``, ``apply``, ``transform`` return a new document
  built from a copy of the first operand;
- in place: ``combine_into``, ``apply_into``, ``transform_into``,
  ``fill_into`` write into an existing document and return it.

Which fields take part
----------------------
Only fields that are decoded *and* listed in the interpolation keywords are
touched. For two documents, the operation runs over the fields eligible in
both; fields eligible on one side only are left as they are in the first
operand. Topology arrays never take part.

Checks run before anything is written: a topology mismatch or a shape
mismatch on any common field aborts the whole operation and leaves every
operand unchanged.

Floating point
--------------
Arithmetic is float64 with IEEE semantics. Division by zero gives ``inf`` or
``nan``, ``sqrt`` of a negative gives ``nan``, and no warning is raised.
"""

from __future__ import annotations

import numbers
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Tuple

import numpy as np
from loguru import logger

from ..errors import NotInterpolatableError, ShapeMismatchError, TopologyMismatchError
from ..Fields.NumericField import NumericField

if TYPE_CHECKING:
    from ..VTU.Document import FieldKey, VTUDocument


class Op(Enum):
    """Binary elementwise operations."""

    Add = "+"
    Sub = "-"
    Mul = "*"
    Div = "/"
    Pow = "**"
    Min = "min"
    Max = "max"
    # scalar / values, only with a scalar operand
    RDiv = "r/"


class UnaryOp(Enum):
    """Unary elementwise operations."""

    Neg = "neg"
    Abs = "abs"
    Sqrt = "sqrt"
    Inv = "inv"


_BINARY: Dict[Op, Callable[[np.ndarray, object], np.ndarray]] = {
    Op.Add: np.add,
    Op.Sub: np.subtract,
    Op.Mul: np.multiply,
    Op.Div: np.true_divide,
    Op.Pow: np.power,
    Op.Min: np.minimum,
    Op.Max: np.maximum,
    Op.RDiv: lambda v, s: np.true_divide(s, v),
}

_UNARY: Dict[UnaryOp, Callable[[np.ndarray], np.ndarray]] = {
    UnaryOp.Neg: np.negative,
    UnaryOp.Abs: np.abs,
    UnaryOp.Sqrt: np.sqrt,
    UnaryOp.Inv: np.reciprocal,
}

# a file raised to a file is not defined; RDiv is the reflected scalar form
FILE_OPS = frozenset({Op.Add, Op.Sub, Op.Mul, Op.Div, Op.Min, Op.Max})


# --------------------------- checks ---------------------------


def _as_op(op: Op | str) -> Op:
    if isinstance(op, Op):
        return op
    try:
        return Op(op)
    except ValueError:
        raise ValueError(f"unknown operation {op!r}") from None


def _as_unary(op: UnaryOp | str) -> UnaryOp:
    if isinstance(op, UnaryOp):
        return op
    try:
        return UnaryOp(op)
    except ValueError:
        raise ValueError(f"unknown unary operation {op!r}") from None


def _as_scalar(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise TypeError(f"scalar operand must be a real number, got {type(value).__name__}")
    return float(value)


def check_topology(a: VTUDocument, b: VTUDocument) -> None:
    """Raise :class:`TopologyMismatchError` unless both documents share points and cells."""
    if a is b:
        return
    if (a.number_of_points, a.number_of_cells) != (b.number_of_points, b.number_of_cells):
        raise TopologyMismatchError(
            f"points/cells differ: {a.number_of_points}/{a.number_of_cells} "
            f"vs {b.number_of_points}/{b.number_of_cells}"
        )
    if a.topology_signature() != b.topology_signature():
        raise TopologyMismatchError("Points or Cells arrays differ")


def _selected(doc: VTUDocument, names: Iterable[str] | None) -> Dict[FieldKey, NumericField]:
    """Eligible fields of ``doc``, restricted to ``names`` when given."""
    fields = doc.eligible()
    if names is None:
        return fields
    wanted = [names] if isinstance(names, str) else list(names)
    out: Dict[FieldKey, NumericField] = {}
    for name in wanted:
        keys = [k for k in fields if k[1] == name]
        if not keys:
            # raises with the reason (absent, not decoded, not registered)
            doc.field(name)
            raise NotInterpolatableError(f"{name!r} is not eligible for arithmetic")
        for k in keys:
            out[k] = fields[k]
    return out


def _common_fields(
    a: VTUDocument, b: VTUDocument, names: Iterable[str] | None
) -> List[Tuple[FieldKey, NumericField, NumericField]]:
    fa = _selected(a, names)
    fb = _selected(b, names) if names is not None else b.eligible()
    common = [(k, fa[k], fb[k]) for k in fa if k in fb]
    for k in fa:
        if k not in fb:
            logger.warning("{}/{} is eligible in the first operand only; left unchanged", *k)
    for k in fb:
        if k not in fa:
            logger.warning("{}/{} is eligible in the second operand only; ignored", *k)
    for _, x, y in common:
        x.check_compatible(y)
    return common


def _write(dest: VTUDocument, results: List[Tuple[FieldKey, np.ndarray]]) -> None:
    targets = dest.eligible()
    for key, values in results:
        if key not in targets:
            raise NotInterpolatableError(f"{key[0]}/{key[1]} is not eligible in the destination")
        if targets[key].values.shape != values.shape:
            raise ShapeMismatchError(
                f"{key[0]}/{key[1]}: destination shape {targets[key].shape} "
                f"does not match result shape {values.shape}"
            )
    for key, values in results:
        np.copyto(targets[key].values, values)


# --------------------------- file op file ---------------------------


def combine_into(
    dest: VTUDocument,
    a: VTUDocument,
    b: VTUDocument,
    op: Op | str,
    *,
    names: Iterable[str] | None = None,
) -> VTUDocument:
    """Write ``op(a, b)`` into ``dest`` field by field and return ``dest``.

    ``dest`` may be ``a`` or ``b``. Only fields eligible in both ``a`` and
    ``b`` (and named in ``names`` when given) are computed.

    Raises
    ------
    TopologyMismatchError
        When ``a``, ``b`` and ``dest`` do not share one topology.
    ShapeMismatchError
        When a common field differs in shape. Nothing is written.
    """
    op = _as_op(op)
    if op not in FILE_OPS:
        raise TypeError(f"{op.name} is only defined with a scalar operand")
    check_topology(a, b)
    check_topology(dest, a)
    common = _common_fields(a, b, names)
    func = _BINARY[op]
    with np.errstate(all="ignore"):
        results = [(k, func(x.values, y.values)) for k, x, y in common]
    _write(dest, results)
    logger.debug("combined {} field(s) with {}", len(results), op.name)
    return dest


def combine(
    a: VTUDocument, b: VTUDocument, op: Op | str, *, names: Iterable[str] | None = None
) -> VTUDocument:
    """Return a new document holding ``op(a, b)``; ``a`` and ``b`` are not modified."""
    op = _as_op(op)
    if op not in FILE_OPS:
        raise TypeError(f"{op.name} is only defined with a scalar operand")
    check_topology(a, b)
    return combine_into(a.copy(), a, b, op, names=names)


# --------------------------- file op scalar ---------------------------


def apply_into(
    doc: VTUDocument, scalar: float, op: Op | str, *, names: Iterable[str] | None = None
) -> VTUDocument:
    """Replace every eligible field ``v`` of ``doc`` with ``op(v, scalar)``."""
    op = _as_op(op)
    value = _as_scalar(scalar)
    func = _BINARY[op]
    fields = _selected(doc, names)
    with np.errstate(all="ignore"):
        results = [(k, func(f.values, value)) for k, f in fields.items()]
    _write(doc, results)
    logger.debug("applied {} {} to {} field(s)", op.name, value, len(results))
    return doc


def apply(
    doc: VTUDocument, scalar: float, op: Op | str, *, names: Iterable[str] | None = None
) -> VTUDocument:
    """Return a new document holding ``op(doc, scalar)``."""
    _as_scalar(scalar)
    return apply_into(doc.copy(), scalar, op, names=names)


# --------------------------- unary ---------------------------


def transform_into(
    doc: VTUDocument, op: UnaryOp | str, *, names: Iterable[str] | None = None
) -> VTUDocument:
    """Replace every eligible field ``v`` of ``doc`` with ``op(v)``."""
    op = _as_unary(op)
    func = _UNARY[op]
    fields = _selected(doc, names)
    with np.errstate(all="ignore"):
        results = [(k, func(f.values)) for k, f in fields.items()]
    _write(doc, results)
    return doc


def transform(
    doc: VTUDocument, op: UnaryOp | str, *, names: Iterable[str] | None = None
) -> VTUDocument:
    """Return a new document holding ``op(doc)``."""
    return transform_into(doc.copy(), op, names=names)


def fill_into(
    doc: VTUDocument, value: float, *, names: Iterable[str] | None = None
) -> VTUDocument:
    """Set every value of every eligible field to ``value``."""
    value = _as_scalar(value)
    for f in _selected(doc, names).values():
        f.values.fill(value)
    return doc
