import enum
import unittest
import uuid
from datetime import date, datetime
from decimal import Decimal

from meter_monitoring.core.errors import InvalidFilterValueError
from meter_monitoring.services.filter_values import coerce_filter_value, decode_filter_literal


class _MeterKind(enum.Enum):
    WATER = "water"
    GAS = "gas"


class FilterLiteralDecodingTests(unittest.TestCase):
    def test_plain_text_is_trimmed_and_unquoted(self):
        self.assertEqual(decode_filter_literal('  "Tehran" '), "Tehran")

    def test_plain_text_keeps_colons(self):
        self.assertEqual(decode_filter_literal("12:30"), "12:30")

    def test_object_wrapper_keeps_last_segment(self):
        self.assertEqual(decode_filter_literal({"ValueKind": "String", "Value": "Shiraz"}), "Shiraz")

    def test_serialized_wrapper_text_keeps_last_segment(self):
        self.assertEqual(decode_filter_literal('{"value": "42"}'), "42")

    def test_native_scalars_pass_through(self):
        self.assertEqual(decode_filter_literal(42), 42)
        self.assertIs(decode_filter_literal(True), True)
        self.assertIsNone(decode_filter_literal(None))


class FilterValueCoercionTests(unittest.TestCase):
    def test_boolean_accepts_string_values(self):
        self.assertTrue(coerce_filter_value("active", bool, "true"))
        self.assertTrue(coerce_filter_value("active", bool, "Y"))
        self.assertFalse(coerce_filter_value("active", bool, "0"))

    def test_boolean_invalid_value_raises_400(self):
        with self.assertRaises(InvalidFilterValueError) as ctx:
            coerce_filter_value("active", bool, "maybe")
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.member, "active")

    def test_numbers_accept_string_values(self):
        self.assertEqual(coerce_filter_value("city_id", int, "42"), 42)
        self.assertAlmostEqual(coerce_filter_value("reading", float, "3.14"), 3.14)
        self.assertAlmostEqual(coerce_filter_value("reading", float, "3,14"), 3.14)
        self.assertEqual(coerce_filter_value("balance", Decimal, "99.50"), Decimal("99.50"))

    def test_non_finite_numbers_are_rejected(self):
        for python_type, value in ((int, "Infinity"), (int, "-inf"), (Decimal, "NaN"), (float, "inf"), (float, float("nan"))):
            with self.subTest(python_type=python_type, value=value):
                with self.assertRaises(InvalidFilterValueError) as ctx:
                    coerce_filter_value("reading", python_type, value)
                self.assertEqual(ctx.exception.status_code, 400)

    def test_fractional_literal_for_integer_field_stays_fractional(self):
        self.assertEqual(coerce_filter_value("city_id", int, "2.5"), 2.5)

    def test_dates_accept_iso_date_and_datetime(self):
        self.assertEqual(coerce_filter_value("installed_on", date, "2026-02-26"), date(2026, 2, 26))
        self.assertEqual(
            coerce_filter_value("installed_on", date, "2026-02-26T13:45:00+03:00"),
            date(2026, 2, 26),
        )

    def test_datetime_accepts_date_only(self):
        self.assertEqual(coerce_filter_value("taken_at", datetime, "2026-02-26"), datetime(2026, 2, 26))

    def test_datetime_invalid_raises(self):
        with self.assertRaises(InvalidFilterValueError):
            coerce_filter_value("taken_at", datetime, "yesterday")

    def test_uuid_accepts_string(self):
        uid = uuid.uuid4()
        self.assertEqual(coerce_filter_value("meter_id", uuid.UUID, str(uid)), uid)

    def test_enum_accepts_value_or_name(self):
        self.assertIs(coerce_filter_value("kind", _MeterKind, "gas"), _MeterKind.GAS)
        self.assertIs(coerce_filter_value("kind", _MeterKind, "WATER"), _MeterKind.WATER)

    def test_null_literal_for_typed_field(self):
        self.assertIsNone(coerce_filter_value("city_id", int, "null"))
        self.assertEqual(coerce_filter_value("city_name", str, "null"), "null")

    def test_text_is_left_as_is(self):
        self.assertEqual(coerce_filter_value("city_name", str, "abc"), "abc")
        self.assertEqual(coerce_filter_value("city_name", str, 7), "7")


if __name__ == "__main__":
    unittest.main()
