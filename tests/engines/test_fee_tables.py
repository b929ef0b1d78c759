"""
Tests for the fee table repository.

Covers band validation at construction, lookups at band boundaries and
beyond the top band, the repository, and table checksums.
"""

from decimal import Decimal

import pytest

from stbvv_engines.fee_tables import (
    FeeTable,
    FeeTableEntry,
    FeeTableId,
    FeeTableRepository,
    lookup,
)
from stbvv_kernel.exceptions import (
    InvalidLookupValueError,
    MalformedFeeTableError,
    UnknownFeeTableError,
)


def _table(bands=None, table_id="A") -> FeeTable:
    if bands is None:
        bands = [(0, 300, 32), (300, 600, 65), (600, None, 130)]
    return FeeTable(table_id, bands)


# ============================================================================
# Construction
# ============================================================================


class TestFeeTableConstruction:
    """Malformed tables fail fast."""

    def test_valid_table(self):
        table = _table()
        assert len(table) == 3
        assert table.table_id == "A"
        assert table.top_band.max_value is None

    def test_accepts_enum_id(self):
        assert _table(table_id=FeeTableId.C).table_id == "C"

    def test_accepts_mapping_bands(self):
        table = FeeTable("B", [
            {"min_value": 0, "max_value": 100, "fee": 10},
            {"min_value": 100, "max_value": None, "fee": 20},
        ])
        assert table.lookup(150) == Decimal("20")

    def test_accepts_entries(self):
        entries = [
            FeeTableEntry(Decimal("0"), Decimal("10"), Decimal("1")),
            FeeTableEntry(Decimal("10"), None, Decimal("2")),
        ]
        assert FeeTable("D", entries).lookup(10) == Decimal("2")

    def test_empty_table_rejected(self):
        with pytest.raises(MalformedFeeTableError, match="no bands"):
            _table(bands=[])

    def test_first_band_must_start_at_zero(self):
        with pytest.raises(MalformedFeeTableError, match="not 0"):
            _table(bands=[(100, 300, 32), (300, None, 65)])

    def test_gap_rejected(self):
        with pytest.raises(MalformedFeeTableError, match="gap") as exc_info:
            _table(bands=[(0, 300, 32), (400, None, 65)])
        assert exc_info.value.index == 0
        assert exc_info.value.table_id == "A"

    def test_overlap_rejected(self):
        with pytest.raises(MalformedFeeTableError, match="overlap"):
            _table(bands=[(0, 300, 32), (200, None, 65)])

    def test_empty_band_rejected(self):
        with pytest.raises(MalformedFeeTableError, match="empty band"):
            _table(bands=[(0, 0, 32), (0, None, 65)])

    def test_decreasing_fee_rejected(self):
        with pytest.raises(MalformedFeeTableError, match="fee decreases"):
            _table(bands=[(0, 300, 65), (300, None, 32)])

    def test_negative_fee_rejected(self):
        with pytest.raises(MalformedFeeTableError, match="negative fee"):
            _table(bands=[(0, 300, -1), (300, None, 32)])

    def test_open_band_only_at_top(self):
        with pytest.raises(MalformedFeeTableError, match="only the top band"):
            _table(bands=[(0, None, 32), (300, None, 65)])

    def test_non_numeric_band_rejected(self):
        with pytest.raises(MalformedFeeTableError, match="non-numeric"):
            _table(bands=[(0, "abc", 32)])

    def test_unreadable_band_rejected(self):
        with pytest.raises(MalformedFeeTableError, match="cannot read"):
            _table(bands=[(0, 300)])


# ============================================================================
# Lookup
# ============================================================================


class TestFeeTableLookup:
    """Half-open bands and flat continuation."""

    def test_lower_bound_inclusive(self):
        assert _table().lookup(300) == Decimal("65")

    def test_upper_bound_exclusive(self):
        assert _table().lookup(Decimal("299.99")) == Decimal("32")

    def test_zero_is_first_band(self):
        assert _table().lookup(0) == Decimal("32")

    def test_open_top_band(self):
        assert _table().lookup(10**12) == Decimal("130")

    def test_closed_top_band_continues_flat(self):
        table = _table(bands=[(0, 300, 32), (300, 600, 65)])
        assert table.lookup(600) == Decimal("65")
        assert table.lookup(5000) == Decimal("65")

    def test_string_value(self):
        assert _table().lookup("450") == Decimal("65")

    def test_negative_value_raises(self):
        with pytest.raises(InvalidLookupValueError) as exc_info:
            _table().lookup(-1)
        assert exc_info.value.value == "-1"

    def test_non_numeric_value_raises(self):
        with pytest.raises(InvalidLookupValueError):
            _table().lookup("abc")


class TestStatutoryTables:
    """Spot checks against the bundled StBVV 2025 tables."""

    @pytest.mark.parametrize(
        "table_id,value,fee",
        [
            ("A", 0, "32"),
            ("A", 10000, "560"),
            ("A", 35000, "780"),
            ("A", 150000, "1430"),
            ("A", 78643200, "50700"),
            ("B", 25000, "560"),
            ("B", 150000, "1040"),
            ("C", 30000, "260"),
            ("D", 50000, "560"),
            ("D", 10**9, "35100"),
        ],
    )
    def test_lookup(self, active_config, table_id, value, fee):
        assert active_config.fee_tables.lookup(table_id, value) == Decimal(fee)

    def test_all_four_tables_present(self, active_config):
        assert active_config.fee_tables.table_ids == ("A", "B", "C", "D")

    def test_bands_contiguous(self, active_config):
        for table in active_config.fee_tables:
            for band, nxt in zip(table.entries, table.entries[1:]):
                assert band.max_value == nxt.min_value

    def test_module_level_lookup_uses_active_config(self):
        assert lookup(FeeTableId.A, 10000) == Decimal("560")

    def test_module_level_lookup_with_config(self, small_config):
        assert lookup("A", 10000, config=small_config) == Decimal("300")


# ============================================================================
# Repository
# ============================================================================


class TestFeeTableRepository:
    """Tests for FeeTableRepository."""

    def test_get_unknown_table(self):
        repo = FeeTableRepository([_table()])
        with pytest.raises(UnknownFeeTableError, match="Unknown fee table") as exc_info:
            repo.get("Z")
        assert exc_info.value.available == ("A",)

    def test_contains(self):
        repo = FeeTableRepository([_table()])
        assert "A" in repo
        assert FeeTableId.A in repo
        assert "B" not in repo

    def test_iteration_sorted(self):
        repo = FeeTableRepository([_table(table_id="B"), _table(table_id="A")])
        assert [t.table_id for t in repo] == ["A", "B"]

    def test_lookup_delegates(self):
        repo = FeeTableRepository([_table()])
        assert repo.lookup("A", 500) == Decimal("65")


class TestChecksum:
    """Deterministic table fingerprints."""

    def test_stable(self):
        assert _table().checksum() == _table().checksum()

    def test_equal_for_equivalent_input(self):
        a = _table(bands=[(0, 300, 32), (300, None, 65)])
        b = _table(bands=[("0", "300", "32"), ("300", None, "65")])
        assert a.checksum() == b.checksum()

    def test_changes_with_fee(self):
        a = _table(bands=[(0, 300, 32), (300, None, 65)])
        b = _table(bands=[(0, 300, 32), (300, None, 66)])
        assert a.checksum() != b.checksum()

    def test_changes_with_table_id(self):
        assert _table(table_id="A").checksum() != _table(table_id="B").checksum()
