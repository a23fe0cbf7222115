import unittest

from pydantic import ValidationError

from meter_monitoring.core.config import Settings, settings
from meter_monitoring.schemas.data_source import (
    DataSourceRequest,
    FilterDescriptor,
    FilterOperator,
    SortDescriptor,
    SortDirection,
)


class FilterDescriptorTests(unittest.TestCase):
    def test_operator_accepts_ordinal_name_and_symbol(self):
        self.assertEqual(FilterDescriptor(member="age", operator=2).operator, FilterOperator.GREATER_THAN)
        self.assertEqual(FilterDescriptor(member="age", operator="lessThanOrEqual").operator, FilterOperator.LESS_THAN_OR_EQUAL)
        self.assertEqual(FilterDescriptor(member="age", operator="starts_with").operator, FilterOperator.STARTS_WITH)
        self.assertEqual(FilterDescriptor(member="age", operator="!=").operator, FilterOperator.NOT_EQUAL)
        self.assertEqual(FilterDescriptor(member="age", operator="~").operator, FilterOperator.CONTAINS)

    def test_unknown_operator_is_a_validation_error(self):
        with self.assertRaises(ValidationError):
            FilterDescriptor(member="age", operator="Between")
        with self.assertRaises(ValidationError):
            FilterDescriptor(member="age", operator=9)

    def test_value_is_decoded_at_the_boundary(self):
        descriptor = FilterDescriptor.model_validate({"member": "cityName", "operator": 0, "value": '"Karaj"'})
        self.assertEqual(descriptor.value, "Karaj")


class SortDescriptorTests(unittest.TestCase):
    def test_direction_aliases(self):
        self.assertEqual(
            SortDescriptor.model_validate({"member": "id", "sortDirection": 1}).sort_direction,
            SortDirection.DESCENDING,
        )
        self.assertEqual(
            SortDescriptor.model_validate({"member": "id", "direction": "asc"}).sort_direction,
            SortDirection.ASCENDING,
        )
        self.assertEqual(SortDescriptor(member="id").sort_direction, SortDirection.ASCENDING)


class DataSourceRequestTests(unittest.TestCase):
    def test_defaults(self):
        request = DataSourceRequest()
        self.assertEqual(request.page, 1)
        self.assertEqual(request.page_size, settings.DATA_PROCESSOR_DEFAULT_PAGE_SIZE)
        self.assertEqual(request.filters, [])
        self.assertEqual(request.sorts, [])

    def test_null_lists_become_empty(self):
        request = DataSourceRequest.model_validate({"page": 2, "pageSize": 5, "filters": None, "sorts": None})
        self.assertEqual(request.page_size, 5)
        self.assertEqual(request.filters, [])
        self.assertEqual(request.sorts, [])


class SettingsTests(unittest.TestCase):
    def test_max_workers_zero_means_executor_default(self):
        self.assertIsNone(Settings(DATA_PROCESSOR_MAX_WORKERS=0).data_processor_max_workers)
        self.assertEqual(Settings(DATA_PROCESSOR_MAX_WORKERS=3).data_processor_max_workers, 3)


if __name__ == "__main__":
    unittest.main()
