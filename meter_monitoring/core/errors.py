from __future__ import annotations

from typing import Any

from fastapi import HTTPException


class DataProcessingError(HTTPException):
    status_code_default = 400

    def __init__(self, detail: str, *, status_code: int | None = None):
        super().__init__(status_code=status_code or self.status_code_default, detail=detail)

    def __str__(self) -> str:
        return str(self.detail)


class InvalidRequestError(DataProcessingError):
    pass


class InvalidFilterValueError(InvalidRequestError):
    def __init__(self, member: str, kind: str, value: Any):
        self.member = member
        self.kind = kind
        self.value = value
        super().__init__(f'Invalid filter value {value!r} for field "{member}" ({kind})')


class FieldNotFoundError(DataProcessingError):
    def __init__(self, member: str, record_type: type | None = None):
        self.member = member
        self.record_type = record_type
        type_name = getattr(record_type, "__name__", None) or "record"
        super().__init__(f'Field "{member}" not found on {type_name}')


class UnsupportedOperatorError(DataProcessingError):
    status_code_default = 500

    def __init__(self, operator: Any):
        self.operator = operator
        super().__init__(f"Unsupported filter operator: {operator}")
