# debtsentry/aged_debt/exceptions.py
"""Errors raised by the aged debt engine."""


class AgedDebtError(Exception):
    """Base class for every engine error."""

    retryable = False


class DatasetNotFound(AgedDebtError):
    """The requested datasetId does not resolve to a ledger."""

    def __init__(self, dataset_id: str):
        self.dataset_id = dataset_id
        super().__init__(f"Dataset not found: {dataset_id}")


class ValidationError(AgedDebtError):
    """Malformed request: bad filter values, unknown dimension or view."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message)


class StorageError(AgedDebtError):
    """The row source failed while reading. Callers may retry."""

    retryable = True


class NumericCoercionError(AgedDebtError):
    """A measure value could not be read as a number."""

    def __init__(self, field: str, value):
        self.field = field
        self.value = value
        super().__init__(f"Cannot read {field}={value!r} as a number")
