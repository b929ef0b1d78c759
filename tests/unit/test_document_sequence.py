"""
Tests for DocumentNumberSequence.

peek() is side-effect free; consume() returns what peek() showed and
advances the shared counter for invoices and quotes alike.
"""

import threading

import pytest

from stbvv_kernel.exceptions import InvalidSequenceValueError
from stbvv_kernel.sequence import (
    DEFAULT_START,
    DocumentKind,
    DocumentNumberSequence,
    format_document_number,
)


class TestPeekConsume:
    """Tests for the peek/consume contract."""

    def test_default_start(self):
        seq = DocumentNumberSequence()
        assert seq.current == DEFAULT_START
        assert seq.peek() == "RE-1001"

    def test_peek_is_idempotent(self):
        seq = DocumentNumberSequence()
        assert seq.peek() == seq.peek() == seq.peek()
        assert seq.current == 1000

    def test_consume_returns_peeked_number(self):
        seq = DocumentNumberSequence()
        peeked = seq.peek()
        assert seq.consume() == peeked
        assert seq.peek() == "RE-1002"

    def test_quotes_and_invoices_share_counter(self):
        seq = DocumentNumberSequence(41)
        assert seq.consume(DocumentKind.QUOTE) == "AG-42"
        assert seq.consume("invoice") == "RE-43"
        assert seq.peek(DocumentKind.QUOTE) == "AG-44"

    def test_reset(self):
        seq = DocumentNumberSequence()
        seq.consume()
        seq.reset(5000)
        assert seq.peek() == "RE-5001"

    def test_reset_default(self):
        seq = DocumentNumberSequence(7)
        seq.reset()
        assert seq.current == DEFAULT_START

    def test_consume_logged(self, captured_logs):
        DocumentNumberSequence(10).consume(DocumentKind.QUOTE)
        record = [r for r in captured_logs() if r["message"] == "document_number_consumed"][-1]
        assert record["document_kind"] == "quote"
        assert record["sequence_value"] == 11

    def test_concurrent_consume_unique(self):
        seq = DocumentNumberSequence(0)
        numbers: list[str] = []
        lock = threading.Lock()

        def worker():
            for _ in range(50):
                number = seq.consume()
                with lock:
                    numbers.append(number)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(numbers)) == 400
        assert seq.current == 400


class TestInvalidValues:
    """The counter is a non-negative integer."""

    @pytest.mark.parametrize("value", [-1, 1.5, "1000", None, True])
    def test_construction(self, value):
        with pytest.raises(InvalidSequenceValueError) as exc_info:
            DocumentNumberSequence(value)
        assert exc_info.value.code == "INVALID_SEQUENCE_VALUE"

    def test_reset_rejects_negative(self):
        seq = DocumentNumberSequence()
        with pytest.raises(InvalidSequenceValueError):
            seq.reset(-5)
        assert seq.current == DEFAULT_START


class TestFormat:
    """Tests for format_document_number."""

    def test_prefixes(self):
        assert format_document_number(DocumentKind.INVOICE, 1) == "RE-1"
        assert format_document_number("quote", 1) == "AG-1"

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            format_document_number("receipt", 1)
