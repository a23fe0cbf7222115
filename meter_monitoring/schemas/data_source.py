from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from meter_monitoring.core.config import settings
from meter_monitoring.services.filter_values import decode_filter_literal

T = TypeVar("T")


class FilterOperator(str, Enum):
    EQUAL = "Equal"
    NOT_EQUAL = "NotEqual"
    GREATER_THAN = "GreaterThan"
    GREATER_THAN_OR_EQUAL = "GreaterThanOrEqual"
    LESS_THAN = "LessThan"
    LESS_THAN_OR_EQUAL = "LessThanOrEqual"
    CONTAINS = "Contains"
    STARTS_WITH = "StartsWith"
    ENDS_WITH = "EndsWith"


class SortDirection(str, Enum):
    ASCENDING = "Ascending"
    DESCENDING = "Descending"


_OPERATOR_SYMBOLS = {
    "=": FilterOperator.EQUAL,
    "==": FilterOperator.EQUAL,
    "eq": FilterOperator.EQUAL,
    "!=": FilterOperator.NOT_EQUAL,
    "<>": FilterOperator.NOT_EQUAL,
    "neq": FilterOperator.NOT_EQUAL,
    ">": FilterOperator.GREATER_THAN,
    "gt": FilterOperator.GREATER_THAN,
    ">=": FilterOperator.GREATER_THAN_OR_EQUAL,
    "gte": FilterOperator.GREATER_THAN_OR_EQUAL,
    "<": FilterOperator.LESS_THAN,
    "lt": FilterOperator.LESS_THAN,
    "<=": FilterOperator.LESS_THAN_OR_EQUAL,
    "lte": FilterOperator.LESS_THAN_OR_EQUAL,
    "~": FilterOperator.CONTAINS,
}

_DIRECTION_SYMBOLS = {
    "asc": SortDirection.ASCENDING,
    "desc": SortDirection.DESCENDING,
}


def _enum_from_wire(enum_type, value, symbols: dict):
    """Accept ordinal, name/value (any case) or a short symbol for an enum field."""
    if isinstance(value, enum_type):
        return value
    members = list(enum_type)
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value < len(members):
            return members[value]
        raise ValueError(f"{enum_type.__name__} ordinal out of range: {value}")
    text = str(value or "").strip()
    if text.isdigit():
        return _enum_from_wire(enum_type, int(text), symbols)
    lowered = text.lower()
    if lowered in symbols:
        return symbols[lowered]
    squashed = lowered.replace("_", "")
    for member in members:
        if squashed in {member.value.lower(), member.name.lower().replace("_", "")}:
            return member
    raise ValueError(f"Unknown {enum_type.__name__}: {value!r}")


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FilterDescriptor(_WireModel):
    member: str
    operator: FilterOperator = FilterOperator.EQUAL
    value: Any = None

    @field_validator("operator", mode="before")
    @classmethod
    def parse_operator(cls, value):
        return _enum_from_wire(FilterOperator, value, _OPERATOR_SYMBOLS)

    @field_validator("value", mode="before")
    @classmethod
    def decode_value(cls, value):
        return decode_filter_literal(value)


class SortDescriptor(_WireModel):
    member: str
    sort_direction: SortDirection = Field(
        default=SortDirection.ASCENDING,
        validation_alias=AliasChoices("sortDirection", "sort_direction", "direction"),
    )

    @field_validator("sort_direction", mode="before")
    @classmethod
    def parse_direction(cls, value):
        return _enum_from_wire(SortDirection, value, _DIRECTION_SYMBOLS)


class DataSourceRequest(_WireModel):
    page: int = 1
    page_size: int = Field(default_factory=lambda: settings.DATA_PROCESSOR_DEFAULT_PAGE_SIZE)
    filters: List[FilterDescriptor] = Field(default_factory=list)
    sorts: List[SortDescriptor] = Field(default_factory=list)

    @field_validator("filters", "sorts", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return [] if value is None else value


class PagedData(_WireModel, Generic[T]):
    page: int
    page_size: int
    total_count: int
    data: List[T] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, arbitrary_types_allowed=True)

    @property
    def total_pages(self) -> Optional[int]:
        if self.page_size <= 0:
            return None
        return (self.total_count + self.page_size - 1) // self.page_size
