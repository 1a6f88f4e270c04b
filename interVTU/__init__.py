"""interVTU: VTU unstructured-grid result files as algebraic objects.

Open simulation results, add, subtract, scale, and raise them elementwise,
and write them back with every untouched byte preserved.

Example:
    import interVTU as iv

    iv.set_uncompress_keywords(["xRamp"])
    iv.set_interpolation_keywords(["xRamp"])

    a = iv.open("run_a.vtu")
    b = iv.open("run_b.vtu")
    mean = (a + b) / 2.0
    iv.write(mean)                 # run_a_<timestamp>.vtu
"""

from loguru import logger as _logger

from .Algebra import (
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
from .errors import (
    DecompressionError,
    FormatError,
    NotInterpolatableError,
    ShapeMismatchError,
    TopologyMismatchError,
    VTUError,
)
from .Fields import (
    FieldKeywords,
    FieldState,
    NumericField,
    get_keywords,
    reset_keywords,
    set_interpolation_keywords,
    set_keywords,
    set_uncompress_keywords,
)
from .Log import Log
from .VTU import VTUDocument, VTUFile, parse, read, serialize, write

__version__ = "0.1.0"

# library default: quiet until Log() is instantiated
_logger.disable(__name__)

open = read

__all__ = [
    # files
    "VTUFile",
    "open",
    "read",
    "write",
    # document model
    "VTUDocument",
    "parse",
    "serialize",
    # fields and configuration
    "NumericField",
    "FieldKeywords",
    "FieldState",
    "set_uncompress_keywords",
    "set_interpolation_keywords",
    "set_keywords",
    "get_keywords",
    "reset_keywords",
    # algebra
    "Op",
    "UnaryOp",
    "combine",
    "combine_into",
    "apply",
    "apply_into",
    "transform",
    "transform_into",
    "fill_into",
    "check_topology",
    # errors
    "VTUError",
    "FormatError",
    "DecompressionError",
    "TopologyMismatchError",
    "ShapeMismatchError",
    "NotInterpolatableError",
    # logging
    "Log",
]
