"""
Typed Exception Hierarchy for the StBVV fee engine.

===============================================================================
WHEN EXCEPTIONS ARE RAISED
===============================================================================

User input is never an exception. A position with a missing object value,
a negative hourly rate or an unknown billing type is calculated as zero and
reported by the validation pipeline as data.

Exceptions are reserved for programming and configuration failures:
  - a fee table whose bands overlap, leave gaps or are empty
  - a lookup against a table id that does not exist
  - a configuration set that cannot be found or fails validation
  - a document-number sequence reset to an impossible value

These indicate corrupted static data or a broken caller contract, so they
fail fast and loudly.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StbvvError (base)
    |
    +-- FeeTableError
    |   +-- MalformedFeeTableError
    |   +-- UnknownFeeTableError
    |   +-- InvalidLookupValueError
    |
    +-- ConfigurationError
    |   +-- ConfigurationNotFoundError
    |   +-- InvalidConfigurationError
    |
    +-- SequenceError
        +-- InvalidSequenceValueError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Fee table       | MALFORMED_FEE_TABLE         | Empty table, gap/overlap, decreasing fee
                | UNKNOWN_FEE_TABLE           | Table id not in repository
                | INVALID_LOOKUP_VALUE        | Negative object value passed to lookup
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_NOT_FOUND     | No set effective for the requested date
                | INVALID_CONFIGURATION       | Set fails structural validation
----------------|-----------------------------|-----------------------------------------
Sequence        | INVALID_SEQUENCE_VALUE      | Counter reset to negative/non-integer

===============================================================================
HANDLING PATTERN
===============================================================================

    try:
        config = get_active_config(as_of_date=invoice_date)
    except ConfigurationNotFoundError as e:
        log.error("no fee schedule", extra={"as_of_date": e.as_of_date})
        raise

Catch by type, read structured attributes, never parse messages.
"""

from __future__ import annotations

from typing import Any


class StbvvError(Exception):
    """
    Base exception for all fee engine errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "STBVV_ERROR"


# Fee table exceptions


class FeeTableError(StbvvError):
    """Base exception for fee table errors."""

    code: str = "FEE_TABLE_ERROR"


class MalformedFeeTableError(FeeTableError):
    """
    A fee table violates its structural invariants.

    Bands must be non-empty, start at zero, be contiguous half-open
    intervals and carry non-decreasing fees.
    """

    code: str = "MALFORMED_FEE_TABLE"

    def __init__(self, table_id: str, reason: str, index: int | None = None):
        self.table_id = table_id
        self.reason = reason
        self.index = index
        where = f" at band {index}" if index is not None else ""
        super().__init__(f"Fee table {table_id} is malformed{where}: {reason}")


class UnknownFeeTableError(FeeTableError):
    """Requested fee table id does not exist."""

    code: str = "UNKNOWN_FEE_TABLE"

    def __init__(self, table_id: str, available: tuple[str, ...] = ()):
        self.table_id = table_id
        self.available = available
        super().__init__(
            f"Unknown fee table: {table_id!r} (available: {', '.join(available) or 'none'})"
        )


class InvalidLookupValueError(FeeTableError):
    """Fee table lookup called with a negative object value."""

    code: str = "INVALID_LOOKUP_VALUE"

    def __init__(self, table_id: str, value: Any):
        self.table_id = table_id
        self.value = str(value)
        super().__init__(
            f"Cannot look up object value {value} in fee table {table_id}: "
            f"value must be non-negative"
        )


# Configuration exceptions


class ConfigurationError(StbvvError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class ConfigurationNotFoundError(ConfigurationError):
    """No configuration set is effective for the requested date."""

    code: str = "CONFIGURATION_NOT_FOUND"

    def __init__(self, config_dir: str, as_of_date: str | None = None):
        self.config_dir = config_dir
        self.as_of_date = as_of_date
        when = f" effective on {as_of_date}" if as_of_date else ""
        super().__init__(f"No StBVV configuration set{when} in {config_dir}")


class InvalidConfigurationError(ConfigurationError):
    """A configuration set failed structural validation."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, set_name: str, errors: list[str]):
        self.set_name = set_name
        self.errors = errors
        super().__init__(
            f"Configuration set {set_name!r} is invalid: "
            f"{len(errors)} error(s): " + "; ".join(errors)
        )


# Sequence exceptions


class SequenceError(StbvvError):
    """Base exception for document-number sequence errors."""

    code: str = "SEQUENCE_ERROR"


class InvalidSequenceValueError(SequenceError):
    """Sequence counter set to a value that is not a non-negative integer."""

    code: str = "INVALID_SEQUENCE_VALUE"

    def __init__(self, value: Any):
        self.value = value
        super().__init__(
            f"Sequence value must be a non-negative integer, got {value!r}"
        )
