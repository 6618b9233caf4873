"""
Tests for core.validators module.
"""
import pytest
from datetime import datetime

from core.validators import (
    validate_date_string,
    validate_date_range,
    validate_order_type,
)
from core.exceptions import ValidationError
from core.models import OrderType


class TestValidateDateString:
    """Tests for validate_date_string function."""

    def test_valid_date(self):
        """Plain date resolves to midnight."""
        assert validate_date_string("2026-01-15") == datetime(2026, 1, 15)

    def test_end_of_day(self):
        result = validate_date_string("2026-01-15", end_of_day=True)
        assert result == datetime(2026, 1, 15, 23, 59, 59, 999000)

    def test_iso_datetime(self):
        """Full ISO-8601 datetimes are accepted as given."""
        assert validate_date_string("2026-01-15T10:30:00") == datetime(2026, 1, 15, 10, 30)

    def test_iso_datetime_with_offset(self):
        """UTC input is converted to the business timezone (UTC+5)."""
        assert validate_date_string("2026-01-15T10:00:00Z") == datetime(2026, 1, 15, 15, 0)

    def test_invalid_format(self):
        """Invalid format should raise ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            validate_date_string("15-01-2026")  # Wrong format
        assert "Invalid date format" in str(exc_info.value)

    def test_invalid_date(self):
        """Invalid date should raise ValidationError."""
        with pytest.raises(ValidationError):
            validate_date_string("2026-02-30")  # Feb 30 doesn't exist

    def test_optional_empty(self):
        """Omitted optional dates are None."""
        assert validate_date_string("") is None
        assert validate_date_string(None) is None

    def test_required_empty(self):
        """Empty required date should raise ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            validate_date_string("", required=True)
        assert "required" in str(exc_info.value).lower()

    def test_non_string(self):
        """Non-string should raise ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            validate_date_string(12345)
        assert "string" in str(exc_info.value).lower()

    def test_field_name_in_error(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_date_string("bad", field="startDate")
        assert exc_info.value.field == "startDate"


class TestValidateDateRange:
    """Tests for validate_date_range function."""

    def test_valid_range(self):
        start, end = validate_date_range("2026-01-01", "2026-01-31")
        assert start == datetime(2026, 1, 1)
        assert end == datetime(2026, 1, 31, 23, 59, 59, 999000)

    def test_same_day(self):
        """Start equal to end is a one-day range."""
        start, end = validate_date_range("2026-01-15", "2026-01-15")
        assert start.date() == end.date()
        assert start < end

    def test_open_ended(self):
        assert validate_date_range("2026-01-01", None) == (datetime(2026, 1, 1), None)
        assert validate_date_range(None, None) == (None, None)
        _, end = validate_date_range(None, "2026-01-31")
        assert end.date() == datetime(2026, 1, 31).date()

    def test_reversed_range(self):
        """Start after end should raise ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            validate_date_range("2026-02-01", "2026-01-01")
        assert "before or equal" in str(exc_info.value)

    def test_reversed_times_same_day(self):
        with pytest.raises(ValidationError):
            validate_date_range("2026-01-15T18:00:00", "2026-01-15T08:00:00")

    def test_long_ranges_allowed(self):
        """Multi-year comparisons are valid requests."""
        start, end = validate_date_range("2024-01-01", "2025-12-31")
        assert (end - start).days == 730

    def test_mixed_date_and_datetime(self):
        start, end = validate_date_range("2026-01-15T08:00:00", "2026-01-15")
        assert start == datetime(2026, 1, 15, 8, 0)
        assert end == datetime(2026, 1, 15, 23, 59, 59, 999000)

    def test_invalid_start_reports_field(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_date_range("2026/01/01", "2026-01-31")
        assert exc_info.value.field == "startDate"


class TestValidateOrderType:
    """Tests for validate_order_type function."""

    def test_valid_values(self):
        assert validate_order_type("all") == OrderType.ALL
        assert validate_order_type("bank_orders") == OrderType.BANK_ORDERS
        assert validate_order_type("bip_orders") == OrderType.BIP_ORDERS

    def test_case_insensitive(self):
        assert validate_order_type("BANK_ORDERS") == OrderType.BANK_ORDERS

    def test_default_all(self):
        assert validate_order_type(None) == OrderType.ALL
        assert validate_order_type("") == OrderType.ALL

    def test_invalid(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_order_type("retail")
        assert exc_info.value.field == "orderType"
        assert "bip_orders" in exc_info.value.message
