"""Clear exceptions for pydxl-tables: fetch, table merge, normalization and generation errors."""


class PyDXLTablesError(Exception):
    """Base exception for pydxl-tables."""

    pass


class FetchError(PyDXLTablesError):
    """Raised when a page or the navigation index cannot be retrieved."""

    def __init__(self, url: str, message: str | None = None, *, cause: BaseException | None = None) -> None:
        self.url = url
        self.cause = cause
        super().__init__(message or f"Failed to fetch {url!r}")


class MergeError(PyDXLTablesError):
    """Raised when the two control tables of a page cannot be merged."""

    pass


class TableNotFoundError(MergeError):
    """Raised when the page has no <table> at the requested index."""

    def __init__(self, index: int, found: int) -> None:
        self.index = index
        self.found = found
        super().__init__(f"No table at index {index} (page has {found} tables)")


class HeaderMismatchError(MergeError):
    """Raised when the two tables do not share the same header row."""

    def __init__(self, first: tuple[str, ...], second: tuple[str, ...]) -> None:
        self.first = first
        self.second = second
        super().__init__(f"Table headers differ: {list(first)!r} != {list(second)!r}")


class NormalizeError(PyDXLTablesError):
    """Raised when a grid row cannot be turned into a control table record."""

    def __init__(self, message: str, *, row: int | None = None, column: str | None = None) -> None:
        self.message = message
        self.row = row
        self.column = column
        super().__init__(message)

    def __str__(self) -> str:
        where = []
        if self.row is not None:
            where.append(f"row {self.row}")
        if self.column is not None:
            where.append(f"column {self.column!r}")
        if not where:
            return self.message
        return f"{self.message} ({', '.join(where)})"


class MissingMandatoryFieldError(NormalizeError):
    """Raised when address, size or access is absent or unparsable."""

    def __init__(self, field: str, message: str | None = None, *, row: int | None = None) -> None:
        self.field = field
        super().__init__(message or f"Missing mandatory field {field!r}", row=row, column=field)


class UnknownAccessTokenError(NormalizeError):
    """Raised for access tokens other than R, W, RW and R/RW."""

    def __init__(self, token: str, *, row: int | None = None) -> None:
        self.token = token
        super().__init__(f"Unknown access level: {token!r}", row=row, column="Access")


class AmbiguousRangeTokenError(NormalizeError):
    """Raised when a range token reads both as an integer and as a field reference."""

    def __init__(self, token: str, *, row: int | None = None, column: str | None = None) -> None:
        self.token = token
        super().__init__(f"Ambiguous range value: {token!r}", row=row, column=column)


class UnrecognizedRangeTokenError(NormalizeError):
    """Raised when a range token is neither an integer nor a field reference."""

    def __init__(self, token: str, *, row: int | None = None, column: str | None = None) -> None:
        self.token = token
        super().__init__(f"Unrecognized range value: {token!r}", row=row, column=column)


class GenerateError(PyDXLTablesError):
    """Raised when a lookup module cannot be generated from the device set."""

    pass
