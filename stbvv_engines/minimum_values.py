"""
Minimum-Object-Value Registry (``stbvv_engines.minimum_values``).

Maps a statutory activity (e.g. "Einkommensteuererklärung") to the minimum
object value the StBVV mandates for it (§ 24 ff.). The registry is read by
the validation pipeline only. The calculator never consults it: a position
below its statutory minimum is calculated exactly as entered and flagged
with a warning, never silently raised to the minimum.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from stbvv_engines.engine_config import EngineConfig, resolve_config
from stbvv_kernel.domain.values import ZERO


@dataclass(frozen=True)
class MinimumValueEntry:
    """Statutory minimum object value for one activity label."""

    activity: str
    min_value: Decimal
    paragraph: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        if self.min_value < ZERO:
            raise ValueError(f"min_value for {self.activity!r} must be non-negative")


class MinimumValueRegistry:
    """Activity label -> statutory minimum. Labels match exactly after strip()."""

    def __init__(self, entries: Iterable[MinimumValueEntry]):
        self._entries: dict[str, MinimumValueEntry] = {}
        for entry in entries:
            key = entry.activity.strip()
            if key in self._entries:
                raise ValueError(f"Duplicate minimum value for activity {key!r}")
            self._entries[key] = entry

    def entry_for(self, activity: str | None) -> MinimumValueEntry | None:
        if not activity:
            return None
        return self._entries.get(activity.strip())

    def min_for(self, activity: str | None) -> Decimal:
        """Statutory minimum for ``activity``, 0 if it has none."""
        entry = self.entry_for(activity)
        return entry.min_value if entry is not None else ZERO

    @property
    def activities(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def min_for(activity: str | None, config: EngineConfig | None = None) -> Decimal:
    """Statutory minimum object value for ``activity`` (0 if none)."""
    return resolve_config(config).minimum_values.min_for(activity)
