"""Decoded fields and the keywords that select them."""

from .NumericField import NumericField
from .Registry import (
    FieldKeywords,
    FieldState,
    get_keywords,
    reset_keywords,
    set_interpolation_keywords,
    set_keywords,
    set_uncompress_keywords,
)

__all__ = [
    "NumericField",
    "FieldKeywords",
    "FieldState",
    "get_keywords",
    "reset_keywords",
    "set_interpolation_keywords",
    "set_keywords",
    "set_uncompress_keywords",
]
