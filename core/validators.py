"""
Input validation functions for dashboard API parameters.

All validators raise ValidationError on invalid input.
"""

from datetime import datetime
from typing import Optional, Tuple

from core.exceptions import ValidationError
from core.filters import parse_date_bound
from core.models import OrderType


def validate_date_string(
    value: Optional[str],
    field: str = "date",
    required: bool = False,
    end_of_day: bool = False,
) -> Optional[datetime]:
    """
    Validate and parse a date bound.

    Accepts a plain date (YYYY-MM-DD) or a full ISO-8601 datetime, with or
    without an offset. Offset-aware values are converted to the business
    timezone.

    Args:
        value: Date string to validate
        field: Field name for error messages
        required: Whether an empty value is an error
        end_of_day: Resolve a plain date to 23:59:59.999 instead of 00:00

    Returns:
        Naive local datetime, or None for an omitted optional date

    Raises:
        ValidationError: If the date is missing (when required) or malformed
    """
    if (value is None or value == "") and required:
        raise ValidationError(field, "Date is required", value)
    return parse_date_bound(value, field, end_of_day=end_of_day)


def validate_date_range(
    start_date: Optional[str],
    end_date: Optional[str],
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Validate an optional dashboard date range.

    Either bound may be omitted (open-ended range). A plain end date covers
    that whole day, so startDate == endDate is a one-day range.

    Returns:
        Tuple of (start, end) naive local datetimes or None

    Raises:
        ValidationError: If a bound is malformed or start is after end
    """
    start = validate_date_string(start_date, "startDate")
    end = validate_date_string(end_date, "endDate", end_of_day=True)

    if start is not None and end is not None and start > end:
        raise ValidationError(
            "date_range",
            "Start date must be before or equal to end date",
            f"{start_date} to {end_date}"
        )

    return start, end


def validate_order_type(value: Optional[str]) -> OrderType:
    """
    Validate the orderType selector.

    Args:
        value: all, bank_orders or bip_orders (None means all)

    Returns:
        OrderType enum member

    Raises:
        ValidationError: If the value is not a known order type
    """
    if value is None or value == "":
        return OrderType.ALL

    try:
        return OrderType(value.strip().lower())
    except (ValueError, AttributeError):
        allowed = ", ".join(t.value for t in OrderType)
        raise ValidationError("orderType", f"Must be one of: {allowed}", value)
