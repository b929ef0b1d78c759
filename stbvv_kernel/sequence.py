"""
DocumentNumberSequence -- explicitly owned invoice/quote numbering.

Responsibility:
    Hands out document numbers (``RE-1001`` for invoices, ``AG-1001`` for
    quotes) from a single counter shared by both document kinds.

Architecture position:
    Kernel -- the only mutable object in the system. The fee engines never
    touch it; the export collaborator creates one, persists its ``current``
    value however it likes, and passes it to whoever needs a number.

Invariants enforced:
    - ``peek()`` never changes state; calling it any number of times
      returns the same number.
    - ``consume()`` returns exactly the number the preceding ``peek()``
      returned, then advances by one.
    - The counter is a non-negative integer.

Failure modes:
    - InvalidSequenceValueError on construction or reset with a negative
      or non-integer value.
"""

from __future__ import annotations

import threading
from enum import Enum

from stbvv_kernel.exceptions import InvalidSequenceValueError
from stbvv_kernel.logging_config import get_logger

logger = get_logger("kernel.sequence")

DEFAULT_START = 1000


class DocumentKind(str, Enum):
    """Document kinds and their number prefixes."""

    INVOICE = "invoice"
    QUOTE = "quote"

    @property
    def prefix(self) -> str:
        return "RE" if self is DocumentKind.INVOICE else "AG"


def _check_value(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidSequenceValueError(value)
    return value


def format_document_number(kind: DocumentKind | str, number: int) -> str:
    """Format a number with the prefix for its document kind."""
    return f"{DocumentKind(kind).prefix}-{number}"


class DocumentNumberSequence:
    """
    Counter for document numbers with an explicit peek/consume contract.

    ``current`` is the last number handed out (or the start value if none
    has been). The next number is always ``current + 1``.
    """

    def __init__(self, start: int = DEFAULT_START):
        self._current = _check_value(start)
        self._lock = threading.Lock()

    @property
    def current(self) -> int:
        return self._current

    def peek(self, kind: DocumentKind | str = DocumentKind.INVOICE) -> str:
        """Return the next document number without consuming it."""
        with self._lock:
            return format_document_number(kind, self._current + 1)

    def consume(self, kind: DocumentKind | str = DocumentKind.INVOICE) -> str:
        """Return the next document number and advance the counter."""
        with self._lock:
            self._current += 1
            value = self._current
            number = format_document_number(kind, value)
        logger.debug("document_number_consumed", extra={
            "document_kind": DocumentKind(kind).value,
            "sequence_value": value,
        })
        return number

    def reset(self, value: int = DEFAULT_START) -> None:
        """Set the counter; the next number will be ``value + 1``."""
        checked = _check_value(value)
        with self._lock:
            self._current = checked
        logger.info("document_sequence_reset", extra={"sequence_value": checked})
