"""
Custom exception hierarchy for the dashboard analytics engine.

Exception Hierarchy:
    DataStoreError (base)
    ├── DataStoreUnavailableError - Store cannot be opened (recoverable)
    ├── DataStoreQueryError       - Store rejected or failed a query
    └── QueryTimeoutError         - Query exceeded its timeout

    ValidationError               - Input validation failed
    NotFoundError                 - Referenced entity does not exist
"""


class DataStoreError(Exception):
    """Base exception for failures of the underlying data store."""

    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class DataStoreUnavailableError(DataStoreError):
    """
    Store could not be opened (locked file, I/O failure, etc.).

    These are typically recoverable with retry.
    """

    def __init__(self, message: str, details: str = None, retry_after: int = None):
        super().__init__(message, details)
        self.retry_after = retry_after


class DataStoreQueryError(DataStoreError):
    """
    Store raised an error while executing a query.

    The offending SQL is kept (truncated) for the logs.
    """

    def __init__(self, message: str, details: str = None, query: str = None):
        super().__init__(message, details)
        if query and len(query) > 200:
            query = query[:200] + "..."
        self.query = query


class QueryTimeoutError(DataStoreError):
    """
    Database query exceeded timeout.

    Indicates a long-running query that should be investigated:
    - Missing index
    - Too much data being scanned
    - Complex join/aggregation
    """

    def __init__(self, query: str, timeout: float, details: str = None):
        self.query = query[:200] + "..." if len(query) > 200 else query
        self.timeout = timeout
        super().__init__(f"Query timed out after {timeout}s", details)

    def __str__(self) -> str:
        return f"QueryTimeoutError: Query timed out after {self.timeout}s - {self.query}"


class ValidationError(Exception):
    """
    Input validation failed.

    Used for validating user input before processing.
    """

    def __init__(self, field: str, message: str, value: any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value!r})"
        return f"{self.field}: {self.message}"


class NotFoundError(Exception):
    """Referenced entity (bank, order, ...) does not exist or is deleted."""

    def __init__(self, entity: str, identifier: str):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier}")
