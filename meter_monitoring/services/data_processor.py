"""In-memory filtering, sorting and pagination for record sequences.

``DataProcessor.process_data`` runs three stages in order:

1. filter: every descriptor must hold (logical AND); large inputs are split
   into contiguous chunks evaluated on a thread pool and merged in chunk order,
2. sort: descriptors apply left to right as primary / then-by keys,
3. paginate: 1-based page slice.

``total_count`` is taken after filtering and before pagination. Without sort
descriptors the filtered records keep the caller's input order.
"""

from __future__ import annotations

import enum
import logging
import operator as op
import os
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Callable, Generic, Iterable, Sequence, TypeVar

from meter_monitoring.core.config import settings
from meter_monitoring.core.errors import InvalidRequestError, UnsupportedOperatorError
from meter_monitoring.schemas.data_source import (
    DataSourceRequest,
    FilterDescriptor,
    FilterOperator,
    PagedData,
    SortDescriptor,
    SortDirection,
)
from meter_monitoring.services.filter_values import coerce_filter_value, runtime_type
from meter_monitoring.services.record_fields import FieldAccessor, resolve_field

T = TypeVar("T")

_LOG = logging.getLogger("meter_monitoring.data_processor")

_ORDERING = {
    FilterOperator.GREATER_THAN: op.gt,
    FilterOperator.GREATER_THAN_OR_EQUAL: op.ge,
    FilterOperator.LESS_THAN: op.lt,
    FilterOperator.LESS_THAN_OR_EQUAL: op.le,
}

_TEXT_MATCH = {
    FilterOperator.CONTAINS: lambda text, needle: needle in text,
    FilterOperator.STARTS_WITH: lambda text, needle: text.startswith(needle),
    FilterOperator.ENDS_WITH: lambda text, needle: text.endswith(needle),
}

_SUPPORTED_OPERATORS = {FilterOperator.EQUAL, FilterOperator.NOT_EQUAL, *_ORDERING, *_TEXT_MATCH}

# Rank of each value kind when a sort column mixes kinds.
_KIND_NUMBER = 0
_KIND_TEMPORAL = 1
_KIND_TEXT = 2
_KIND_OTHER = 3


def _text_form(value: Any) -> str:
    if isinstance(value, enum.Enum):
        return str(value.value)
    return str(value)


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _comparable(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        value = value.value
    if isinstance(value, datetime):
        return _as_aware(value)
    if isinstance(value, date):
        return _as_aware(datetime.combine(value, time.min))
    return value


def sort_key(value: Any) -> tuple:
    """Box a field value into a key that orders across kinds; nulls sort first."""
    value = _comparable(value)
    if value is None:
        return (0, 0, 0)
    if isinstance(value, (bool, int, float, Decimal)):
        return (1, _KIND_NUMBER, value)
    if isinstance(value, datetime):
        return (1, _KIND_TEMPORAL, value)
    if isinstance(value, str):
        return (1, _KIND_TEXT, value)
    if isinstance(value, uuid.UUID):
        return (1, _KIND_TEXT, str(value))
    return (1, _KIND_OTHER, str(value))


@dataclass(frozen=True)
class _CompiledFilter:
    descriptor: FilterDescriptor
    accessor: FieldAccessor
    literal: Any

    def matches(self, record: Any) -> bool:
        field_value = self.accessor.get(record)
        literal = self.literal
        if self.accessor.python_type is None and self.descriptor.operator not in _TEXT_MATCH:
            literal = coerce_filter_value(self.accessor.name, runtime_type(field_value), self.descriptor.value)
        return evaluate_filter(self.descriptor.operator, field_value, literal)


def evaluate_filter(operator: Any, field_value: Any, literal: Any) -> bool:
    """Compare a field value with an already typed literal."""
    if operator == FilterOperator.EQUAL:
        return _comparable(field_value) == _comparable(literal)
    if operator == FilterOperator.NOT_EQUAL:
        return _comparable(field_value) != _comparable(literal)
    if operator in _ORDERING:
        if field_value is None or literal is None:
            return False
        left, right = sort_key(field_value), sort_key(literal)
        if left[1] != right[1]:
            # Values of different kinds are never ordered against each other.
            return False
        return _ORDERING[operator](left[2], right[2])
    if operator in _TEXT_MATCH:
        if field_value is None or literal is None:
            return False
        return _TEXT_MATCH[operator](_text_form(field_value), _text_form(literal))
    raise UnsupportedOperatorError(operator)


class DataProcessor(Generic[T]):
    """Filter, sort and paginate an in-memory record sequence.

    ``record_type`` lets field names be resolved before any record is read;
    without it they are resolved against the first record.
    """

    def __init__(
        self,
        record_type: type[T] | None = None,
        *,
        max_workers: int | None = None,
        parallel_threshold: int | None = None,
        max_page_size: int | None = None,
    ):
        self.record_type = record_type
        self.max_workers = max_workers if max_workers is not None else settings.data_processor_max_workers
        self.parallel_threshold = (
            parallel_threshold if parallel_threshold is not None else settings.DATA_PROCESSOR_PARALLEL_THRESHOLD
        )
        self.max_page_size = max_page_size if max_page_size is not None else settings.DATA_PROCESSOR_MAX_PAGE_SIZE

    def process_data(self, records: Iterable[T], request: DataSourceRequest) -> PagedData[T]:
        self.validate_request(request)
        items = list(records)

        filtered = self.apply_filtering(items, request.filters)
        total_count = len(filtered)
        ordered = self.apply_sorting(filtered, request.sorts, resolve_from=items)
        page_items = self.apply_pagination(ordered, request.page, request.page_size)

        _LOG.debug(
            "processed records=%s filtered=%s page=%s page_size=%s returned=%s",
            len(items),
            total_count,
            request.page,
            request.page_size,
            len(page_items),
        )
        return PagedData(
            page=request.page,
            page_size=request.page_size,
            total_count=total_count,
            data=page_items,
        )

    def validate_request(self, request: DataSourceRequest) -> None:
        if request.page <= 0:
            _LOG.warning("rejected request: page=%s", request.page)
            raise InvalidRequestError(f"Page must be a positive integer, got {request.page}")
        if request.page_size <= 0:
            _LOG.warning("rejected request: page_size=%s", request.page_size)
            raise InvalidRequestError(f"Page size must be a positive integer, got {request.page_size}")
        if self.max_page_size and request.page_size > self.max_page_size:
            _LOG.warning("rejected request: page_size=%s max=%s", request.page_size, self.max_page_size)
            raise InvalidRequestError(
                f"Page size must not exceed {self.max_page_size}, got {request.page_size}"
            )

    def _resolve(self, member: str, items: Sequence[T]) -> FieldAccessor | None:
        sample = items[0] if items else None
        if self.record_type is None and sample is None:
            return None
        return resolve_field(member, record_type=self.record_type, sample=sample)

    def _compile_filters(self, items: Sequence[T], filters: Sequence[FilterDescriptor]) -> list[_CompiledFilter]:
        compiled = []
        for descriptor in filters:
            if descriptor.operator not in _SUPPORTED_OPERATORS:
                raise UnsupportedOperatorError(descriptor.operator)
            accessor = self._resolve(descriptor.member, items)
            if accessor is None:
                continue
            if descriptor.operator in _TEXT_MATCH:
                # Text operators search the field's string form for the raw literal.
                literal = None if descriptor.value is None else _text_form(descriptor.value)
            else:
                literal = coerce_filter_value(accessor.name, accessor.python_type, descriptor.value)
            compiled.append(_CompiledFilter(descriptor=descriptor, accessor=accessor, literal=literal))
        return compiled

    def apply_filtering(self, items: Sequence[T], filters: Sequence[FilterDescriptor] | None) -> list[T]:
        if not filters:
            return list(items)
        compiled = self._compile_filters(items, filters)
        if not compiled:
            return list(items)

        def keep(record: T) -> bool:
            return all(item.matches(record) for item in compiled)

        if len(items) < max(int(self.parallel_threshold or 0), 1) or self.max_workers == 1:
            return [record for record in items if keep(record)]
        return self._filter_parallel(items, keep)

    def _filter_parallel(self, items: Sequence[T], keep: Callable[[T], bool]) -> list[T]:
        workers = self.max_workers or min(32, (os.cpu_count() or 1) + 4)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            chunk_size = max(1, -(-len(items) // workers))
            chunks = [items[start:start + chunk_size] for start in range(0, len(items), chunk_size)]
            _LOG.debug("parallel filter records=%s workers=%s chunks=%s", len(items), workers, len(chunks))
            futures = [executor.submit(_filter_chunk, chunk, keep) for chunk in chunks]
            try:
                parts = [future.result() for future in futures]
            except Exception:
                for future in futures:
                    future.cancel()
                raise
        merged: list[T] = []
        for part in parts:
            merged.extend(part)
        return merged

    def apply_sorting(
        self,
        items: Sequence[T],
        sorts: Sequence[SortDescriptor] | None,
        resolve_from: Sequence[T] | None = None,
    ) -> list[T]:
        ordered = list(items)
        if not sorts:
            return ordered
        keys = []
        for descriptor in sorts:
            accessor = self._resolve(descriptor.member, resolve_from if resolve_from is not None else items)
            if accessor is None:
                return ordered
            keys.append((accessor, descriptor.sort_direction == SortDirection.DESCENDING))
        # Stable sorts applied from the last key to the first give then-by semantics.
        for accessor, descending in reversed(keys):
            ordered.sort(key=lambda record, a=accessor: sort_key(a.get(record)), reverse=descending)
        return ordered

    @staticmethod
    def apply_pagination(items: Sequence[T], page: int, page_size: int) -> list[T]:
        start = (page - 1) * page_size
        return list(items[start:start + page_size])


def _filter_chunk(chunk: Sequence[T], keep: Callable[[T], bool]) -> list[T]:
    return [record for record in chunk if keep(record)]


def process_data(
    records: Iterable[T],
    request: DataSourceRequest,
    record_type: type[T] | None = None,
) -> PagedData[T]:
    return DataProcessor(record_type).process_data(records, request)
