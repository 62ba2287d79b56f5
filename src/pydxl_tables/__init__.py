"""pydxl-tables: Dynamixel control tables scraped from the ROBOTIS e-Manual, normalized and compiled to lookups."""

__version__ = "0.1.0"

from .codegen import GeneratedArtifact, OutputMode, aggregate, generate
from .errors import (
    AmbiguousRangeTokenError,
    FetchError,
    GenerateError,
    HeaderMismatchError,
    MergeError,
    MissingMandatoryFieldError,
    NormalizeError,
    PyDXLTablesError,
    TableNotFoundError,
    UnknownAccessTokenError,
    UnrecognizedRangeTokenError,
)
from .merge import merge_tables
from .normalize import NormalizeResult, normalize_grid
from .serialize import dump_records, load_records
from .types import (
    AccessLevel,
    ControlTableRecord,
    Device,
    IntegerValue,
    NormalizeWarning,
    RangeValue,
    RawGrid,
    SymbolicValue,
)

__all__ = [
    "__version__",
    "GeneratedArtifact",
    "OutputMode",
    "aggregate",
    "generate",
    "AmbiguousRangeTokenError",
    "FetchError",
    "GenerateError",
    "HeaderMismatchError",
    "MergeError",
    "MissingMandatoryFieldError",
    "NormalizeError",
    "PyDXLTablesError",
    "TableNotFoundError",
    "UnknownAccessTokenError",
    "UnrecognizedRangeTokenError",
    "merge_tables",
    "NormalizeResult",
    "normalize_grid",
    "dump_records",
    "load_records",
    "AccessLevel",
    "ControlTableRecord",
    "Device",
    "IntegerValue",
    "NormalizeWarning",
    "RangeValue",
    "RawGrid",
    "SymbolicValue",
]
