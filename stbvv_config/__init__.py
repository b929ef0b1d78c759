"""
stbvv_config -- single public entrypoint for StBVV statutory data.

Responsibility:
    Provides the ONLY way to obtain fee tables, minimum object values and
    rates at runtime through ``get_active_config()``. Returns an
    ``EngineConfig`` -- the sole runtime artifact. YAML loading is internal
    tooling and never exposed to the engines.

Architecture position:
    Configuration -- YAML-authored statutory data, validated at load time.
    This package sits above ``stbvv_kernel`` and ``stbvv_engines``. The
    engines never import it at module level; they reach it lazily through
    ``stbvv_engines.engine_config.resolve_config``.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Load-time validation: a set must pass ``validate_configuration``
      before it is compiled.
    - Deterministic compilation: the same YAML fragments always produce the
      same ``EngineConfig.checksum``.
    - A statutory amendment is a new set directory; code never changes.

Failure modes:
    - ``ConfigurationNotFoundError`` -- no set is effective on the requested
      date, or the sets directory does not exist.
    - ``InvalidConfigurationError`` -- a set fails parsing or validation.
    - ``yaml.YAMLError`` -- a fragment is not valid YAML.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``STBVV_CONFIG_TRACE`` log entry with the set name, ordinance version,
    effective date and checksum, tying every calculated document back to
    the statutory data that governed it.
"""

from __future__ import annotations

import functools
from datetime import date
from pathlib import Path

from stbvv_config.assembler import assemble_from_directory
from stbvv_config.compiler import compile_engine_config
from stbvv_config.loader import load_yaml_file, parse_version
from stbvv_config.validator import validate_configuration
from stbvv_engines.engine_config import EngineConfig
from stbvv_kernel.exceptions import ConfigurationNotFoundError, InvalidConfigurationError
from stbvv_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    as_of_date: date | None = None,
    config_dir: Path | None = None,
) -> EngineConfig:
    """The ONLY public configuration entrypoint.

    Selects the configuration set whose ``effective_from`` is the latest on
    or before ``as_of_date``. Without a date, the most recent set is used.
    Compiled configurations are cached per ``(directory, set)``.

    Args:
        as_of_date: Date the fees are billed for (e.g. the invoice date).
        config_dir: Override path to the configuration sets directory.
            Defaults to stbvv_config/sets/.

    Returns:
        EngineConfig -- the sole runtime artifact.

    Raises:
        ConfigurationNotFoundError: If no set is effective on the date.
        InvalidConfigurationError: If the selected set fails validation.
    """
    sets_dir = Path(config_dir or _DEFAULT_CONFIG_DIR).resolve()
    set_dir, effective_from = _find_matching_set(sets_dir, as_of_date)
    config = _load_engine_config(set_dir)

    _logger.info(
        "STBVV_CONFIG_TRACE",
        extra={
            "trace_type": "STBVV_CONFIG_TRACE",
            "config_set": set_dir.name,
            "stbvv_version": config.version,
            "effective_from": effective_from.isoformat(),
            "as_of_date": as_of_date.isoformat() if as_of_date else None,
            "checksum": config.checksum,
            "fee_table_count": len(config.fee_tables.table_ids),
            "minimum_value_count": len(config.minimum_values),
        },
    )
    return config


def available_sets(config_dir: Path | None = None) -> tuple[tuple[str, date], ...]:
    """(set name, effective_from) of every set, oldest first."""
    sets_dir = Path(config_dir or _DEFAULT_CONFIG_DIR).resolve()
    return tuple((path.name, effective) for effective, path in _index_sets(sets_dir))


def clear_config_cache() -> None:
    """Forget loaded sets, e.g. after editing YAML in tests."""
    _index_sets.cache_clear()
    _load_engine_config.cache_clear()


@functools.lru_cache(maxsize=None)
def _index_sets(sets_dir: Path) -> tuple[tuple[date, Path], ...]:
    """All set directories with a root.yaml, ordered by effective date."""
    if not sets_dir.is_dir():
        raise ConfigurationNotFoundError(str(sets_dir))
    found: list[tuple[date, Path]] = []
    for subdir in sorted(sets_dir.iterdir()):
        root_file = subdir / "root.yaml"
        if not subdir.is_dir() or not root_file.exists():
            continue
        try:
            version = parse_version(load_yaml_file(root_file))
        except (KeyError, ValueError) as exc:
            raise InvalidConfigurationError(subdir.name, [f"root.yaml: {exc}"]) from exc
        found.append((version.effective_from, subdir))
    return tuple(sorted(found, key=lambda pair: (pair[0], pair[1].name)))


def _find_matching_set(sets_dir: Path, as_of_date: date | None) -> tuple[Path, date]:
    """Latest set effective on or before ``as_of_date``.

    Raises:
        ConfigurationNotFoundError: If no set qualifies.
    """
    candidates = [
        (effective, path)
        for effective, path in _index_sets(sets_dir)
        if as_of_date is None or effective <= as_of_date
    ]
    if not candidates:
        raise ConfigurationNotFoundError(
            str(sets_dir), as_of_date.isoformat() if as_of_date else None
        )
    effective, path = candidates[-1]
    return path, effective


@functools.lru_cache(maxsize=None)
def _load_engine_config(set_dir: Path) -> EngineConfig:
    config_set = assemble_from_directory(set_dir)

    validation = validate_configuration(config_set)
    for warning in validation.warnings:
        _logger.warning("config_validation_warning", extra={
            "config_set": config_set.set_name,
            "detail": warning,
        })
    if not validation.is_valid:
        raise InvalidConfigurationError(config_set.set_name, validation.errors)

    config = compile_engine_config(config_set)

    # INVARIANT: compiled checksum must match assembled source checksum.
    assert config.checksum == config_set.checksum, (
        f"Checksum drift: compiled={config.checksum!r} != source={config_set.checksum!r}"
    )
    return config


__all__ = [
    "available_sets",
    "clear_config_cache",
    "get_active_config",
]
