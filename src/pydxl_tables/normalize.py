"""Normalize a merged RawGrid into typed ControlTableRecords."""

import logging
import re
from dataclasses import dataclass, field

from .errors import (
    MissingMandatoryFieldError,
    NormalizeError,
    UnknownAccessTokenError,
)
from .types import MINUS_SIGNS, AccessLevel, ControlTableRecord, NormalizeWarning, RangeValue, RawGrid

logger = logging.getLogger(__name__)

# A cell made only of these glyphs carries no value
_PLACEHOLDER_GLYPHS = frozenset({".", "-", " ", "\u2026", "~", "\u00a0"})

_ACCESS_TOKENS: dict[str, AccessLevel] = {
    "R": AccessLevel.READ,
    "W": AccessLevel.WRITE,
    "RW": AccessLevel.READ_WRITE,
    "R/RW": AccessLevel.READ_WRITE,
}

_INDIRECT_PATTERN = re.compile(r"Indirect\s+(?:Address|Data)\s*(\S*)")

# Header spellings seen across device pages, keyed by the column they name
_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "address": ("Address",),
    "size": ("Size(Byte)", "Size (Byte)", "Size"),
    "data_name": ("Data Name", "Name"),
    "description": ("Description",),
    "access": ("Access",),
    "initial_value": ("Initial Value", "Default Value", "Initial"),
    "range": ("Range",),
    "min": ("Min",),
    "max": ("Max",),
}
_REQUIRED_COLUMNS = ("address", "size", "access")


@dataclass
class NormalizeResult:
    """Records of one device plus the indirect index bounds and dropped-value warnings."""

    records: list[ControlTableRecord] = field(default_factory=list)
    indirect_range: tuple[int, int] | None = None
    warnings: list[NormalizeWarning] = field(default_factory=list)


def _header_key(heading: str) -> str:
    return "".join(heading.split()).lower()


def resolve_columns(header: tuple[str, ...]) -> dict[str, int]:
    """
    Map column names (address, size, ...) to indices; first occurrence wins.

    Raises MissingMandatoryFieldError when address, size or access has no column.
    """
    positions: dict[str, int] = {}
    for idx, heading in enumerate(header):
        positions.setdefault(_header_key(heading), idx)
    columns: dict[str, int] = {}
    for name, aliases in _COLUMN_ALIASES.items():
        for alias in aliases:
            key = _header_key(alias)
            if key in positions:
                columns[name] = positions[key]
                break
    for name in _REQUIRED_COLUMNS:
        if name not in columns:
            raise MissingMandatoryFieldError(name, f"No {name!r} column in header {list(header)!r}")
    return columns


def is_placeholder(cell: str | None) -> bool:
    """True for blank cells and cells made only of placeholder glyphs (., -, ~, ...)."""
    if cell is None:
        return True
    s = cell.strip()
    return not s or all(c in _PLACEHOLDER_GLYPHS for c in s)


def sanitize_name(text: str) -> str:
    """Keep alphabetic characters only: "Goal PWM" -> "GoalPWM"."""
    return "".join(c for c in text if c.isalpha())


def parse_access(token: str, row: int | None = None) -> AccessLevel:
    try:
        return _ACCESS_TOKENS[token.strip()]
    except KeyError:
        raise UnknownAccessTokenError(token, row=row) from None


def _parse_unsigned(text: str | None, name: str, limit: int, row: int) -> int:
    if text is None:
        raise MissingMandatoryFieldError(name, row=row)
    s = text.strip()
    if not (s.isascii() and s.isdigit()) or int(s) > limit:
        raise MissingMandatoryFieldError(name, f"Invalid {name} {text!r}", row=row)
    return int(s)


def _bound_token(side: str) -> str:
    """Keep alphanumerics and a leading minus: " -PWM Limit " -> "-PWMLimit"."""
    s = side.strip().translate(MINUS_SIGNS)
    sign = "-" if s.startswith("-") else ""
    return sign + "".join(c for c in s if c.isalnum())


def _parse_value(token: str, row: int, column: str) -> RangeValue:
    try:
        return RangeValue.parse(token)
    except NormalizeError as e:
        e.row = row
        e.column = column
        raise


def normalize_grid(grid: RawGrid) -> NormalizeResult:
    """
    Turn the merged rows of a device page into ControlTableRecords (document order).

    Blank separator rows and templated Indirect Address/Data rows are skipped;
    numeric indirect indices are tracked in ``indirect_range``. Structural
    problems raise a NormalizeError subclass; ambiguous-but-harmless values are
    dropped and reported in ``warnings``.
    """
    columns = resolve_columns(grid.header)
    result = NormalizeResult()
    indirect: list[int] = []
    seen_addresses: set[int] = set()

    def cell(row: tuple[str | None, ...], name: str) -> str | None:
        idx = columns.get(name)
        if idx is None or idx >= len(row) or is_placeholder(row[idx]):
            return None
        return row[idx].strip()

    def warn(row_no: int, column: str, message: str) -> None:
        logger.warning("Row %d, column %s: %s", row_no, column, message)
        result.warnings.append(NormalizeWarning(row=row_no, column=column, message=message))

    for row_no, row in enumerate(grid.rows):
        if all(is_placeholder(c) for c in row):
            continue

        data_name = cell(row, "data_name")
        m = _INDIRECT_PATTERN.search(data_name) if data_name else None
        if m:
            index = m.group(1)
            if index.isdigit():
                indirect.append(int(index))
            elif index != "N":
                warn(row_no, "data_name", f"Indirect row with unparsable index dropped: {data_name!r}")
            continue

        address = _parse_unsigned(cell(row, "address"), "address", 0xFFFF, row_no)
        size = _parse_unsigned(cell(row, "size"), "size", 0xFF, row_no)
        access_text = cell(row, "access")
        if access_text is None:
            raise MissingMandatoryFieldError("access", row=row_no)
        access = parse_access(access_text, row=row_no)

        initial_value = None
        initial_text = cell(row, "initial_value")
        if initial_text is not None:
            initial_value = _parse_value("".join(initial_text.split()), row_no, "initial_value")

        value_range = None
        range_text = cell(row, "range")
        min_text, max_text = cell(row, "min"), cell(row, "max")
        if range_text is not None and "~" in range_text:
            if range_text.count("~") > 1:
                warn(row_no, "range", f"Range with more than one '~' dropped: {range_text!r}")
            else:
                low, high = range_text.split("~")
                value_range = (
                    _parse_value(_bound_token(low), row_no, "range"),
                    _parse_value(_bound_token(high), row_no, "range"),
                )
        elif min_text is not None and max_text is not None:
            value_range = (
                _parse_value(min_text, row_no, "min"),
                _parse_value(max_text, row_no, "max"),
            )

        if address in seen_addresses:
            warn(row_no, "address", f"Duplicate address {address}")
        seen_addresses.add(address)

        field_name = sanitize_name(data_name) if data_name else ""
        result.records.append(ControlTableRecord(
            address=address,
            size=size,
            access=access,
            field_name=field_name or None,
            description=cell(row, "description"),
            initial_value=initial_value,
            range=value_range,
        ))

    if indirect:
        result.indirect_range = (min(indirect), max(indirect))
    logger.debug(
        "Normalized %d records (indirect range %s, %d warnings)",
        len(result.records), result.indirect_range, len(result.warnings),
    )
    return result
