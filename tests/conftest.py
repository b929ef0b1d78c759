"""
Pytest fixtures for the StBVV fee engine test suite.

Provides:
- Structured logging configured for every test session
- The active 2025 configuration and small hand-built configurations
- Position factories shared by the engine tests
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from stbvv_config import clear_config_cache, get_active_config
from stbvv_engines.engine_config import EngineConfig, FeeRates
from stbvv_engines.fee_tables import FeeTable, FeeTableRepository
from stbvv_engines.minimum_values import MinimumValueEntry, MinimumValueRegistry
from stbvv_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture stbvv logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            calculate_total([], 12, True)
            logs = captured_logs()
            assert any(r["message"] == "totals_calculated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("stbvv")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Configuration fixtures
# =============================================================================


@pytest.fixture(scope="session")
def active_config() -> EngineConfig:
    """The bundled StBVV 2025 configuration."""
    clear_config_cache()
    return get_active_config()


def make_config(
    bands_by_table: dict[str, list[tuple]] | None = None,
    minimums: dict[str, str] | None = None,
    **rates,
) -> EngineConfig:
    """
    Hand-built EngineConfig for tests that need specific band fees.

    Defaults to a single small table A and an 8 000 EUR minimum for
    Einkommensteuererklärung.
    """
    if bands_by_table is None:
        bands_by_table = {
            "A": [
                (0, 5000, 100),
                (5000, 20000, 300),
                (20000, None, 700),
            ],
        }
    if minimums is None:
        minimums = {"Einkommensteuererklärung": "8000"}
    repository = FeeTableRepository(
        FeeTable(table_id, bands) for table_id, bands in bands_by_table.items()
    )
    registry = MinimumValueRegistry(
        MinimumValueEntry(activity=activity, min_value=Decimal(value), paragraph="§ 24 Abs. 1 Nr. 1")
        for activity, value in minimums.items()
    )
    return EngineConfig(
        fee_tables=repository,
        minimum_values=registry,
        rates=FeeRates(**rates),
        version="test",
    )


@pytest.fixture
def small_config() -> EngineConfig:
    """Table A with a 300 EUR band covering 10 000 EUR."""
    return make_config()


@pytest.fixture
def config_factory():
    """The ``make_config`` builder, for tests that need custom tables or rates."""
    return make_config
