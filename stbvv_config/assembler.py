"""
stbvv_config.assembler -- composes YAML fragments into one configuration set.

Responsibility:
    Statutory data is authored as small YAML fragments, one per concern.
    This module composes them into a single ``StbvvConfigurationSet``.

Architecture position:
    Configuration -- YAML-driven statutory data. Called by
    ``stbvv_config.get_active_config()`` during the load phase and by
    tests that construct config fixtures. The assembler reads the
    filesystem; the resulting set is a frozen data structure.

Fragment structure::

    sets/stbvv_2025/
    +-- root.yaml            # Version, effective date, gazette reference
    +-- fee_tables.yaml      # Tables A-D
    +-- minimum_values.yaml  # § 24 ff. minimum object values
    +-- rates.yaml           # VAT, expense fee, document fee, thresholds

Invariants enforced:
    - All four fragments must exist in every set directory.
    - A deterministic SHA-256 checksum is computed over all assembled data.

Failure modes:
    - ``ConfigurationNotFoundError`` -- directory or a fragment is missing.
    - ``InvalidConfigurationError`` -- a fragment lacks required keys or
      holds values that do not parse.
    - ``yaml.YAMLError`` (propagated from loader) -- invalid YAML syntax.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from stbvv_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_fee_table,
    parse_minimum_value,
    parse_rates,
    parse_version,
)
from stbvv_config.schema import StbvvConfigurationSet
from stbvv_kernel.exceptions import ConfigurationNotFoundError, InvalidConfigurationError

FRAGMENTS = ("root.yaml", "fee_tables.yaml", "minimum_values.yaml", "rates.yaml")


def load_fragments(fragment_dir: Path) -> dict[str, dict[str, Any]]:
    """Raw YAML content of every fragment, keyed by file stem."""
    if not fragment_dir.is_dir():
        raise ConfigurationNotFoundError(str(fragment_dir))
    raw: dict[str, dict[str, Any]] = {}
    for name in FRAGMENTS:
        path = fragment_dir / name
        if not path.exists():
            raise ConfigurationNotFoundError(str(path))
        raw[path.stem] = load_yaml_file(path)
    return raw


def assemble_from_directory(fragment_dir: Path) -> StbvvConfigurationSet:
    """Compose fragments from a directory into one configuration set.

    Args:
        fragment_dir: Path to the fragment directory (e.g.,
            ``stbvv_config/sets/stbvv_2025/``).

    Returns:
        Assembled ``StbvvConfigurationSet`` with its checksum.

    Raises:
        ConfigurationNotFoundError: If the directory or a fragment is missing.
        InvalidConfigurationError: If a fragment cannot be parsed.
    """
    raw = load_fragments(fragment_dir)

    try:
        version = parse_version(raw["root"])
        fee_tables = tuple(parse_fee_table(t) for t in raw["fee_tables"].get("fee_tables", []))
        minimum_values = tuple(
            parse_minimum_value(m) for m in raw["minimum_values"].get("minimum_values", [])
        )
        rates = parse_rates(raw["rates"])
    except KeyError as exc:
        raise InvalidConfigurationError(fragment_dir.name, [f"missing key {exc}"]) from exc
    except (AttributeError, TypeError, ValueError) as exc:
        raise InvalidConfigurationError(fragment_dir.name, [str(exc)]) from exc

    checksum = compute_checksum(raw)

    # INVARIANT: checksum must be a non-empty SHA-256 hex digest.
    assert checksum and len(checksum) == 64, (
        f"Checksum must be a 64-char SHA-256 hex digest, got {checksum!r}"
    )

    return StbvvConfigurationSet(
        set_name=fragment_dir.name,
        version=version,
        fee_tables=fee_tables,
        minimum_values=minimum_values,
        rates=rates,
        checksum=checksum,
    )
