"""
Fee Table Repository (``stbvv_engines.fee_tables``).

Responsibility
--------------
Holds the four statutory StBVV fee tables (A-D) and answers one question:
which base fee applies to a given object value.

Each table is an ordered list of half-open bands ``[min_value, max_value)``.
The top band may be open-ended (``max_value is None``); when it is not, any
value at or beyond its ``max_value`` still receives the top band's fee.

Architecture position
---------------------
**Engines layer** -- pure lookup data plus a lookup function. ZERO I/O.
Band data is supplied by ``stbvv_config``; a statutory amendment is a data
change only.

Invariants enforced
-------------------
* A table is non-empty and its first band starts at 0.
* Every band satisfies ``min_value < max_value``.
* Adjacent bands are contiguous: ``band[i].max_value == band[i+1].min_value``.
* Fees are non-decreasing, so a larger object value never yields a lower fee.

Failure modes
-------------
* ``MalformedFeeTableError`` when a table is constructed from bands that
  violate the invariants above. This is corrupted static configuration and
  fails fast.
* ``UnknownFeeTableError`` for a table id the repository does not hold.
* ``InvalidLookupValueError`` for a negative object value (caller contract
  violation; the position calculator never looks up non-positive values).
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from stbvv_engines.engine_config import EngineConfig, resolve_config
from stbvv_kernel.domain.values import ZERO, to_decimal
from stbvv_kernel.exceptions import (
    InvalidLookupValueError,
    MalformedFeeTableError,
    UnknownFeeTableError,
)
from stbvv_kernel.logging_config import get_logger

logger = get_logger("engines.fee_tables")


class FeeTableId(str, Enum):
    """The four statutory fee tables."""

    A = "A"  # Beratungstabelle
    B = "B"  # Abschlusstabelle
    C = "C"  # Buchführungstabelle
    D = "D"  # Landwirtschaftliche Tabelle


@dataclass(frozen=True)
class FeeTableEntry:
    """
    One band of a fee table.

    ``max_value`` of None marks the open-ended top band.
    """

    min_value: Decimal
    max_value: Decimal | None
    fee: Decimal

    def contains(self, value: Decimal) -> bool:
        """True if ``min_value <= value < max_value``."""
        if value < self.min_value:
            return False
        return self.max_value is None or value < self.max_value


def _band_values(table_id: str, index: int, raw: object) -> tuple[Decimal, Decimal | None, Decimal]:
    if isinstance(raw, FeeTableEntry):
        return raw.min_value, raw.max_value, raw.fee
    if isinstance(raw, Mapping):
        values = (raw.get("min_value"), raw.get("max_value"), raw.get("fee"))
    elif isinstance(raw, (list, tuple)) and len(raw) == 3:
        values = tuple(raw)
    else:
        raise MalformedFeeTableError(table_id, f"cannot read band {raw!r}", index)

    min_value = to_decimal(values[0], default=None)
    max_value = None if values[1] is None else to_decimal(values[1], default=None)
    fee = to_decimal(values[2], default=None)
    if min_value is None or fee is None or (values[1] is not None and max_value is None):
        raise MalformedFeeTableError(table_id, f"non-numeric band {raw!r}", index)
    return min_value, max_value, fee


class FeeTable:
    """
    A validated, immutable StBVV fee table.

    Construction checks every structural invariant; a FeeTable that exists
    is always safe to look up.
    """

    def __init__(self, table_id: FeeTableId | str, entries: Iterable[object], name: str = ""):
        self.table_id = table_id.value if isinstance(table_id, FeeTableId) else str(table_id)
        self.name = name
        bands = tuple(
            FeeTableEntry(*_band_values(self.table_id, i, raw))
            for i, raw in enumerate(entries)
        )
        self._validate(bands)
        self.entries: tuple[FeeTableEntry, ...] = bands

    def _validate(self, bands: tuple[FeeTableEntry, ...]) -> None:
        if not bands:
            raise MalformedFeeTableError(self.table_id, "table has no bands")
        if bands[0].min_value != ZERO:
            raise MalformedFeeTableError(
                self.table_id, f"first band starts at {bands[0].min_value}, not 0", 0
            )
        last = len(bands) - 1
        for i, band in enumerate(bands):
            if band.fee < ZERO:
                raise MalformedFeeTableError(self.table_id, "negative fee", i)
            if band.max_value is None:
                if i != last:
                    raise MalformedFeeTableError(
                        self.table_id, "only the top band may be open-ended", i
                    )
                continue
            if band.min_value >= band.max_value:
                raise MalformedFeeTableError(
                    self.table_id,
                    f"empty band [{band.min_value}, {band.max_value})",
                    i,
                )
            if i < last:
                nxt = bands[i + 1]
                if band.max_value != nxt.min_value:
                    kind = "gap" if band.max_value < nxt.min_value else "overlap"
                    raise MalformedFeeTableError(
                        self.table_id,
                        f"{kind} between {band.max_value} and {nxt.min_value}",
                        i,
                    )
                if nxt.fee < band.fee:
                    raise MalformedFeeTableError(
                        self.table_id, f"fee decreases from {band.fee} to {nxt.fee}", i + 1
                    )

    @property
    def top_band(self) -> FeeTableEntry:
        return self.entries[-1]

    def lookup(self, object_value: Decimal | int | str) -> Decimal:
        """
        Return the base fee for an object value.

        Values at or beyond the top band's upper bound receive the top
        band's fee (flat continuation).

        Raises:
            InvalidLookupValueError: If object_value is negative or not a number.
        """
        value = to_decimal(object_value, default=None)
        if value is None or value < ZERO:
            raise InvalidLookupValueError(self.table_id, object_value)

        for band in self.entries:
            if band.contains(value):
                return band.fee
        return self.top_band.fee

    def checksum(self) -> str:
        """Deterministic SHA-256 fingerprint of the band data."""
        canonical = "|".join(
            f"{b.min_value}:{'' if b.max_value is None else b.max_value}:{b.fee}"
            for b in self.entries
        )
        return hashlib.sha256(f"{self.table_id}|{canonical}".encode("utf-8")).hexdigest()

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"FeeTable({self.table_id!r}, bands={len(self.entries)})"


class FeeTableRepository:
    """The set of fee tables of one StBVV version, keyed by table id."""

    def __init__(self, tables: Iterable[FeeTable]):
        self._tables: dict[str, FeeTable] = {}
        for table in tables:
            self._tables[table.table_id] = table

    @property
    def table_ids(self) -> tuple[str, ...]:
        return tuple(sorted(self._tables))

    def get(self, table_id: FeeTableId | str) -> FeeTable:
        """Return a table by id. Raises UnknownFeeTableError."""
        key = table_id.value if isinstance(table_id, FeeTableId) else str(table_id)
        try:
            return self._tables[key]
        except KeyError:
            raise UnknownFeeTableError(key, self.table_ids) from None

    def lookup(self, table_id: FeeTableId | str, object_value: Decimal | int | str) -> Decimal:
        return self.get(table_id).lookup(object_value)

    def __contains__(self, table_id: object) -> bool:
        key = table_id.value if isinstance(table_id, FeeTableId) else table_id
        return key in self._tables

    def __iter__(self):
        return iter(self._tables[k] for k in self.table_ids)


def lookup(
    table: FeeTableId | str,
    object_value: Decimal | int | str,
    config: EngineConfig | None = None,
) -> Decimal:
    """
    Look up the base fee for ``object_value`` in fee table ``table``.

    Uses the active StBVV configuration unless ``config`` is given.
    """
    fee = resolve_config(config).fee_tables.lookup(table, object_value)
    logger.debug("fee_table_lookup", extra={
        "fee_table": str(getattr(table, "value", table)),
        "object_value": str(object_value),
        "base_fee": str(fee),
    })
    return fee
