"""Elementwise operators over VTU documents."""

from .Operators import (
    FILE_OPS,
    Op,
    UnaryOp,
    apply,
    apply_into,
    check_topology,
    combine,
    combine_into,
    fill_into,
    transform,
    transform_into,
)

__all__ = [
    "FILE_OPS",
    "Op",
    "UnaryOp",
    "apply",
    "apply_into",
    "check_topology",
    "combine",
    "combine_into",
    "fill_into",
    "transform",
    "transform_into",
]
