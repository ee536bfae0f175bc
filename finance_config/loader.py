"""
Mapping Loader (``finance_config.loader``).

Responsibility
--------------
Loads mapping set YAML files and parses them into typed
``finance_config.schema`` dataclass instances.  Callers at runtime go
through ``finance_config.get_active_mapping()``; the functions here are
the building blocks it uses and are exposed for tests and tooling.

Layout of a mapping set directory::

    <set_dir>/
        mapping_set.yaml        name, version, description, statements
        income_statement.yaml   statement: income_statement, sections: [...]
        balance_sheet.yaml
        cash_flow.yaml
        APPROVED_FINGERPRINT    optional checksum pin

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* A node with a non-empty ``calculation`` parses as ``CalculatedNode``;
  otherwise it parses as ``DataLeafNode``.  Selectors on a calculated node
  are dropped with a warning.
* Empty strings in selector lists are discarded; account numbers are
  normalised to strings.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  YAML content for identity and change detection.

Failure modes
-------------
* Missing file  -> ``MappingLoadError``.
* Malformed YAML or wrong structure  -> ``MappingLoadError`` naming the
  file and the offending section.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

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
from finance_kernel.exceptions import MappingLoadError
from finance_kernel.logging_config import get_logger

logger = get_logger("config.loader")

SET_MANIFEST_NAME = "mapping_set.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        MappingLoadError: if the file is missing, is not valid YAML, or
            does not contain a mapping at the top level.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise MappingLoadError(str(path), "file not found") from e
    except yaml.YAMLError as e:
        raise MappingLoadError(str(path), f"invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise MappingLoadError(str(path), "top level must be a mapping")
    return data


def _string_list(value: Any, source: str, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, int)):
        value = [value]
    if not isinstance(value, list):
        raise MappingLoadError(source, f"'{field_name}' must be a list")
    return tuple(str(item).strip() for item in value if str(item).strip())


def _enum_value(enum_cls, value: Any, source: str, field_name: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = [m.value for m in enum_cls]
        raise MappingLoadError(
            source, f"'{field_name}' must be one of {allowed}, got {value!r}"
        ) from e


def parse_selectors(data: dict[str, Any], source: str) -> CategorySelectors:
    """Parse the category selectors of a section."""
    return CategorySelectors(
        category_types=_string_list(data.get("category_types"), source, "category_types"),
        account_numbers=_string_list(data.get("account_numbers"), source, "account_numbers"),
    )


def parse_section(data: dict[str, Any], source: str) -> SectionNode:
    """
    Parse one section node (and its children) from a dict.

    Preconditions:
        - ``data`` contains ``key`` and ``label``.
    Raises:
        MappingLoadError: on missing keys or invalid enum values.
    """
    if not isinstance(data, dict):
        raise MappingLoadError(source, f"section must be a mapping, got {data!r}")
    try:
        key = str(data["key"]).strip()
        label = str(data["label"])
    except KeyError as e:
        raise MappingLoadError(source, f"section missing required field {e}") from e

    where = f"{source} [{key}]"

    children_raw = data.get("children") or []
    if not isinstance(children_raw, list):
        raise MappingLoadError(where, "'children' must be a list")
    children = tuple(parse_section(child, source) for child in children_raw)

    role = None
    if data.get("role") is not None:
        role = _enum_value(SectionRole, data["role"], where, "role")

    selectors = parse_selectors(data, where)
    calculation = str(data.get("calculation") or "").strip()

    if calculation:
        if not selectors.is_empty:
            logger.warning(
                "mapping_selectors_ignored",
                extra={"source": source, "section_key": key},
            )
        statement_source = None
        if data.get("statement_source") is not None:
            statement_source = _enum_value(
                StatementType, data["statement_source"], where, "statement_source"
            )
        return CalculatedNode(
            key=key,
            label=label,
            calculation=calculation,
            children=children,
            role=role,
            statement_source=statement_source,
        )

    if data.get("statement_source") is not None:
        raise MappingLoadError(where, "'statement_source' requires a calculation")

    sign = _enum_value(
        SectionSign,
        data.get("sign", SectionSign.INCOME_POSITIVE.value),
        where,
        "sign",
    )
    return DataLeafNode(
        key=key,
        label=label,
        selectors=selectors,
        sign=sign,
        children=children,
        role=role,
    )


def parse_statement(data: dict[str, Any], source: str) -> StatementMapping:
    """Parse a statement file (``statement`` plus ordered ``sections``)."""
    if "statement" not in data:
        raise MappingLoadError(source, "missing 'statement'")
    statement = _enum_value(StatementType, data["statement"], source, "statement")
    sections_raw = data.get("sections") or []
    if not isinstance(sections_raw, list):
        raise MappingLoadError(source, "'sections' must be a list")
    return StatementMapping(
        statement=statement,
        sections=tuple(parse_section(section, source) for section in sections_raw),
    )


def load_mapping_set(set_dir: Path) -> MappingDefinition:
    """
    Load a complete mapping set from a directory.

    Postconditions:
        - Returns a ``MappingDefinition`` whose checksum covers the manifest
          and every statement file it names.
    Raises:
        MappingLoadError: on any unreadable or malformed file.
    """
    manifest_path = set_dir / SET_MANIFEST_NAME
    manifest = load_yaml_file(manifest_path)

    try:
        name = str(manifest["name"])
    except KeyError as e:
        raise MappingLoadError(str(manifest_path), "missing 'name'") from e
    version = int(manifest.get("version", 1))

    files = manifest.get("statements") or {
        statement.value: f"{statement.value}.yaml" for statement in StatementType
    }
    if not isinstance(files, dict):
        raise MappingLoadError(str(manifest_path), "'statements' must be a mapping")

    raw: dict[str, Any] = {"manifest": manifest}
    statements: dict[StatementType, StatementMapping] = {}
    for statement_name, filename in files.items():
        declared = _enum_value(StatementType, statement_name, str(manifest_path), "statements")
        path = set_dir / filename
        data = load_yaml_file(path)
        mapping = parse_statement(data, str(path))
        if mapping.statement != declared:
            raise MappingLoadError(
                str(path),
                f"declares statement '{mapping.statement.value}' but is listed "
                f"as '{declared.value}'",
            )
        statements[declared] = mapping
        raw[declared.value] = data

    return MappingDefinition(
        name=name,
        version=version,
        statements=statements,
        description=str(manifest.get("description", "")),
        checksum=compute_checksum(raw),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
