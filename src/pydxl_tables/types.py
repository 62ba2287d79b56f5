"""Core data model: raw grid, access level, range values, control table records and devices."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlparse

from .errors import AmbiguousRangeTokenError, UnrecognizedRangeTokenError

_INTEGER_PATTERN = re.compile(r"^-?[0-9]+$")
# Trailing digits are footnote markers in the manual (e.g. "PWM Limit36")
_SYMBOLIC_PATTERN = re.compile(r"^(-?)([A-Za-z]+)[0-9]*$")
# Unicode minus and en dash both appear as sign characters in the manual
MINUS_SIGNS = str.maketrans({"\u2212": "-", "\u2013": "-"})


@dataclass(frozen=True)
class RawGrid:
    """Header cells plus data rows of one or more merged HTML tables."""

    header: tuple[str, ...]
    rows: list[tuple[str | None, ...]] = field(default_factory=list)

    @property
    def width(self) -> int:
        return len(self.header)


class AccessLevel(str, Enum):
    """Access rights of a control table field."""

    READ = "R"
    WRITE = "W"
    READ_WRITE = "RW"


class RangeValue(ABC):
    """A range bound or initial value: a literal integer or another field's value."""

    @classmethod
    def parse(cls, token: str) -> "IntegerValue | SymbolicValue":
        """
        Parse a range token such as "1023", "-1,023", "PWM Limit" or "-PWMLimit36".

        Commas are ignored and a Unicode minus reads as "-". Raises
        AmbiguousRangeTokenError or UnrecognizedRangeTokenError; tokens are
        never coerced.
        """
        s = token.translate(MINUS_SIGNS).replace(",", "")
        integer = _INTEGER_PATTERN.match(s)
        symbolic = _SYMBOLIC_PATTERN.match(s)
        if integer and symbolic:
            raise AmbiguousRangeTokenError(token)
        if integer:
            return IntegerValue(int(s))
        if symbolic:
            return SymbolicValue(symbolic.group(2), negated=symbolic.group(1) == "-")
        raise UnrecognizedRangeTokenError(token)

    @abstractmethod
    def render(self) -> str:
        """Text form as written in the manual."""


@dataclass(frozen=True)
class IntegerValue(RangeValue):
    value: int

    def render(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class SymbolicValue(RangeValue):
    """Bound expressed as the value of another field, e.g. -PWMLimit."""

    field_name: str
    negated: bool = False

    def render(self) -> str:
        return f"-{self.field_name}" if self.negated else self.field_name


@dataclass(frozen=True)
class ControlTableRecord:
    """Normalized control table row; immutable once built."""

    address: int
    size: int
    access: AccessLevel
    field_name: str | None = None
    description: str | None = None
    initial_value: RangeValue | None = None
    range: tuple[RangeValue, RangeValue] | None = None
    units: str | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.address <= 0xFFFF:
            raise ValueError(f"address must be 0..65535, got {self.address}")
        if not 0 <= self.size <= 0xFF:
            raise ValueError(f"size must be 0..255, got {self.size}")


@dataclass(frozen=True)
class NormalizeWarning:
    """A value that was dropped instead of guessed (multi-tilde range, odd indirect index...)."""

    row: int
    column: str
    message: str


@dataclass
class Device:
    """One scraped actuator page: its identity and its control table."""

    series: str
    model_id: str
    display_name: str
    records: list[ControlTableRecord] = field(default_factory=list)

    @classmethod
    def from_url(cls, url: str, display_name: str | None = None,
                 records: list[ControlTableRecord] | None = None) -> "Device":
        """Build a Device whose series and model_id are the last two URL path segments."""
        series, model_id = identity_from_url(url)
        return cls(
            series=series,
            model_id=model_id,
            display_name=display_name or model_id,
            records=list(records or []),
        )


def identity_from_url(url: str) -> tuple[str, str]:
    """Return (series, model_id) from e.g. https://host/docs/en/dxl/x/xl430-w250/ -> ("x", "xl430-w250")."""
    segments = [s for s in urlparse(url).path.split("/") if s]
    if len(segments) < 2:
        raise ValueError(f"Cannot derive series and model from URL: {url!r}")
    return segments[-2], segments[-1]
