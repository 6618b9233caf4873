"""
Core shared library for the order dashboard.

This package contains the aggregation engine used by the web/ package:
- exceptions: Custom exception hierarchy
- validators: Input validation functions
- filters: Filter context built from request parameters
- panels: Dashboard panel calculators
- config: Centralized configuration
"""

# Import in dependency order
from core.exceptions import (
    DataStoreError,
    DataStoreUnavailableError,
    DataStoreQueryError,
    QueryTimeoutError,
    ValidationError,
    NotFoundError,
)

from core.validators import (
    validate_date_string,
    validate_date_range,
    validate_order_type,
)

from core.config import config

__all__ = [
    # Exceptions
    "DataStoreError",
    "DataStoreUnavailableError",
    "DataStoreQueryError",
    "QueryTimeoutError",
    "ValidationError",
    "NotFoundError",
    # Validators
    "validate_date_string",
    "validate_date_range",
    "validate_order_type",
    # Config
    "config",
]
