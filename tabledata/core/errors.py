"""Error taxonomy of the data API.

Terminal errors are ``HTTPException`` subclasses so FastAPI renders them as
``{"detail": ...}`` with the right status. ``MalformedFilterSyntax`` is not an
HTTP error: it never leaves the parsing stage.
"""

from __future__ import annotations

from fastapi import HTTPException


class MalformedFilterSyntax(ValueError):
    def __init__(self, expression: str, reason: str = ""):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Malformed filter expression {expression!r}: {reason}" if reason else expression)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=404, detail=detail)


class ViewTableMismatch(HTTPException):
    def __init__(self, detail: str = "View does not belong to table"):
        super().__init__(status_code=422, detail=detail)


class OffsetOutOfRange(HTTPException):
    def __init__(self, offset: int, total_rows: int):
        self.offset = offset
        self.total_rows = total_rows
        super().__init__(status_code=422, detail=f"Offset {offset} is beyond the last row ({total_rows} rows)")


class InvalidRecord(HTTPException):
    def __init__(self, detail: str, index: int | None = None):
        self.index = index
        if index is not None:
            detail = f"Record #{index}: {detail}"
        super().__init__(status_code=422, detail=detail)


class MissingPrimaryKey(InvalidRecord):
    def __init__(self, pk_title: str, index: int | None = None):
        super().__init__(f'Primary key "{pk_title}" is required', index=index)


class RecordNotFound(InvalidRecord):
    def __init__(self, pk_value, index: int | None = None):
        super().__init__(f"Record with primary key {pk_value!r} does not exist", index=index)


class ConnectivityFailure(HTTPException):
    def __init__(self, detail: str = "Database is unreachable"):
        super().__init__(status_code=503, detail=detail)


def bad_filter_value(field: str, kind: str) -> HTTPException:
    return HTTPException(status_code=400, detail=f'Invalid filter value for field "{field}" ({kind})')


def integrity_error(detail: str = "Data constraint violation") -> HTTPException:
    return HTTPException(status_code=400, detail=detail)
