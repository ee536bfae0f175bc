"""
finance_config — single public entrypoint for report mapping configuration.

Responsibility:
    Provides the ONLY way to obtain a mapping definition at runtime through
    ``get_active_mapping()``.  Report structure lives in versioned YAML
    mapping sets under ``finance_config/sets/``; swapping the set changes
    report shape without code changes.

Architecture position:
    Configuration -- YAML-driven, load-time validation.
    This package sits above ``finance_kernel`` / ``finance_engines`` and
    below ``finance_modules``.  The kernel MUST NEVER import from
    ``finance_config``.

Invariants enforced:
    - Single entrypoint: runtime mapping loads flow through
      ``get_active_mapping()``.
    - Load-time validation: a mapping with validation errors is never
      returned.
    - Fingerprint pinning: when an APPROVED_FINGERPRINT file exists, the
      mapping checksum must match the pinned value.

Failure modes:
    - ``MappingNotFoundError`` -- no such mapping set directory.
    - ``MappingLoadError`` -- unreadable or malformed YAML.
    - ``MappingValidationError`` -- validation found errors.
    - ``MappingIntegrityError`` -- checksum differs from the pin.

Audit relevance:
    Every successful ``get_active_mapping()`` call emits a
    ``FINANCE_MAPPING_TRACE`` log entry with the set name, version and
    checksum, tying every generated report to the exact layout used.
"""

from __future__ import annotations

import logging
from pathlib import Path

from finance_config.integrity import verify_fingerprint_pin
from finance_config.loader import load_mapping_set
from finance_config.schema import (
    CalculatedNode,
    CategorySelectors,
    DataLeafNode,
    MappingDefinition,
    SectionNode,
    SectionRole,
    SectionSign,
    StatementMapping,
    StatementType,
)
from finance_config.validator import validate_mapping
from finance_kernel.exceptions import MappingNotFoundError, MappingValidationError

_logger = logging.getLogger("finance_kernel.config")

DEFAULT_SET_NAME = "default"

# Default mapping sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

__all__ = [
    "CalculatedNode",
    "CategorySelectors",
    "DataLeafNode",
    "MappingDefinition",
    "SectionNode",
    "SectionRole",
    "SectionSign",
    "StatementMapping",
    "StatementType",
    "DEFAULT_SET_NAME",
    "get_active_mapping",
]


def get_active_mapping(
    set_name: str = DEFAULT_SET_NAME,
    config_dir: Path | None = None,
) -> MappingDefinition:
    """The ONLY public mapping entrypoint.

    Guarantees:
        - The returned ``MappingDefinition`` has passed load-time validation
          and (when a pin exists) fingerprint verification.
        - Validation warnings are logged, one record each.
        - A ``FINANCE_MAPPING_TRACE`` log entry is emitted on every
          successful call.

    Args:
        set_name: Name of the mapping set directory.
        config_dir: Override path to the mapping sets directory.
            Defaults to finance_config/sets/.

    Raises:
        MappingNotFoundError: If the set directory does not exist.
        MappingLoadError: If a file is unreadable or malformed.
        MappingValidationError: If validation produces errors.
        MappingIntegrityError: If the checksum differs from the pin.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    set_dir = sets_dir / set_name
    if not set_dir.is_dir():
        raise MappingNotFoundError(set_name, str(sets_dir))

    mapping = load_mapping_set(set_dir)

    validation = validate_mapping(mapping)
    for warning in validation.warnings:
        _logger.warning(
            "mapping_validation_warning",
            extra={"mapping_set": mapping.name, "detail": warning},
        )
    if not validation.is_valid:
        raise MappingValidationError(mapping.name, validation.errors)

    verify_fingerprint_pin(mapping.name, mapping.checksum, set_dir)

    _logger.info(
        "FINANCE_MAPPING_TRACE",
        extra={
            "trace_type": "FINANCE_MAPPING_TRACE",
            "mapping_set": mapping.name,
            "mapping_version": mapping.version,
            "checksum": mapping.checksum,
            "statements": sorted(s.value for s in mapping.statements),
            "section_count": sum(
                len(m.all_keys()) for m in mapping.statements.values()
            ),
        },
    )

    return mapping
