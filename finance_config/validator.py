"""
Mapping Validator (``finance_config.validator``).

Responsibility
--------------
Validates a ``MappingDefinition`` at load time so that broken report
layouts are rejected before any ledger query runs.

Invariants enforced
-------------------
* Key uniqueness -- section keys are unique within a statement and match
  ``[A-Za-z_][A-Za-z0-9_]*``.
* Formula safety -- every calculation parses under the formula grammar
  (``finance_engines.formula``).
* Declaration order -- a calculation may only reference keys visible at
  that point: earlier top-level sections, earlier siblings, its own
  direct children (and their role aliases), and keys imported from other
  statements.  Forward and self references are errors; since nothing can
  reference a later key, reference cycles are impossible.
* Roles -- at most one child per role under a parent; top-level sections
  carry no role.
* Cross-statement imports -- ``statement_source`` names another statement
  present in the set, the calculation is a bare key that exists there, and
  statement imports do not form a cycle.

Failure modes
-------------
* Validation errors (``MappingValidationResult.errors``)  -> the mapping
  MUST NOT be used.
* Validation warnings  -> the mapping is usable but should be reviewed
  (e.g. data leaves without selectors always report zero).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from finance_config.schema import (
    CalculatedNode,
    DataLeafNode,
    MappingDefinition,
    SectionNode,
    StatementType,
    iter_nodes,
)
from finance_engines.formula import (
    Reference,
    formula_references,
    parse_formula,
    validate_formula_expression,
)

_KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class MappingValidationResult:
    """
    Result of mapping validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def role_alias(parent_key: str, role) -> str:
    """Context key under which a role-tagged child is also bound."""
    return f"{parent_key}.{role.value}"


def validate_mapping(mapping: MappingDefinition) -> MappingValidationResult:
    """
    Validate a mapping set.

    Postconditions:
        - Returns a ``MappingValidationResult`` with errors and warnings.
    """
    result = MappingValidationResult()

    for statement, statement_mapping in mapping.statements.items():
        _validate_keys(statement, statement_mapping.sections, result)
        _validate_roles(statement, statement_mapping.sections, result)
        _validate_leaves(statement, statement_mapping.sections, result)
        _validate_imports(mapping, statement, result)
        _validate_references(mapping, statement, result)

    _validate_import_cycles(mapping, result)

    return result


def _validate_keys(
    statement: StatementType,
    sections: tuple[SectionNode, ...],
    result: MappingValidationResult,
) -> None:
    """Check key format and uniqueness within a statement."""
    seen: set[str] = set()
    for node in iter_nodes(sections):
        if not _KEY_PATTERN.match(node.key):
            result.add_error(
                f"{statement.value}: invalid section key '{node.key}'"
            )
        if node.key in seen:
            result.add_error(
                f"{statement.value}: duplicate section key '{node.key}'"
            )
        seen.add(node.key)


def _validate_roles(
    statement: StatementType,
    sections: tuple[SectionNode, ...],
    result: MappingValidationResult,
) -> None:
    """Check that roles are only used on children and not repeated."""
    for node in sections:
        if node.role is not None:
            result.add_error(
                f"{statement.value}: top-level section '{node.key}' cannot have a role"
            )
    for parent in iter_nodes(sections):
        seen = set()
        for child in parent.children:
            if child.role is None:
                continue
            if child.role in seen:
                result.add_error(
                    f"{statement.value}: section '{parent.key}' has more than one "
                    f"'{child.role.value}' child"
                )
            seen.add(child.role)


def _validate_leaves(
    statement: StatementType,
    sections: tuple[SectionNode, ...],
    result: MappingValidationResult,
) -> None:
    """Warn about data leaves that can never produce a non-zero amount."""
    for node in iter_nodes(sections):
        if isinstance(node, DataLeafNode) and node.selectors.is_empty:
            if node.children:
                result.add_warning(
                    f"{statement.value}: section '{node.key}' has children but no "
                    f"calculation or selectors; its own amount is always zero"
                )
            else:
                result.add_warning(
                    f"{statement.value}: section '{node.key}' has no category "
                    f"selectors; its amount is always zero"
                )


def _validate_imports(
    mapping: MappingDefinition,
    statement: StatementType,
    result: MappingValidationResult,
) -> None:
    """Check statement_source declarations."""
    for node in mapping.imports_for(statement):
        source = node.statement_source
        prefix = f"{statement.value}: section '{node.key}'"
        if source == statement:
            result.add_error(f"{prefix} imports from its own statement")
            continue
        if source not in mapping.statements:
            result.add_error(
                f"{prefix} imports from '{source.value}' which is not in the mapping set"
            )
            continue
        if validate_formula_expression(node.calculation):
            continue  # reported by _validate_references
        if not isinstance(parse_formula(node.calculation), Reference):
            result.add_error(
                f"{prefix} imports from '{source.value}' but its calculation "
                f"'{node.calculation}' is not a single key"
            )
            continue
        if node.calculation not in mapping.statement(source).all_keys():
            result.add_error(
                f"{prefix} imports '{node.calculation}' which does not exist in "
                f"'{source.value}'"
            )


def _import_seeds(mapping: MappingDefinition, statement: StatementType) -> set[str]:
    return {
        node.calculation
        for node in mapping.imports_for(statement)
        if node.statement_source != statement
    }


def _validate_references(
    mapping: MappingDefinition,
    statement: StatementType,
    result: MappingValidationResult,
) -> None:
    """Check formula syntax and declaration-order visibility."""
    sections = mapping.statement(statement).sections
    all_keys = mapping.statement(statement).all_keys()
    visible = set(_import_seeds(mapping, statement))
    for node in sections:
        _check_node(statement, node, frozenset(visible), all_keys, result)
        visible.add(node.key)


def _check_node(
    statement: StatementType,
    node: SectionNode,
    incoming: frozenset[str],
    all_keys: set[str],
    result: MappingValidationResult,
) -> None:
    local = set(incoming)
    for child in node.children:
        _check_node(statement, child, frozenset(local), all_keys, result)
        local.add(child.key)
        if child.role is not None:
            local.add(role_alias(node.key, child.role))

    if not isinstance(node, CalculatedNode):
        return

    prefix = f"{statement.value}: section '{node.key}'"
    syntax_errors = validate_formula_expression(node.calculation)
    for err in syntax_errors:
        result.add_error(
            f"{prefix} calculation '{err.expression}': {err.message} "
            f"(position {err.position})"
        )
    if syntax_errors:
        return

    for key in formula_references(node.calculation):
        if key in local:
            continue
        if key == node.key:
            result.add_error(f"{prefix} references itself")
        elif key in all_keys:
            result.add_error(
                f"{prefix} references '{key}' which is not declared before it "
                f"in scope"
            )
        else:
            result.add_error(f"{prefix} references undeclared key '{key}'")


def _validate_import_cycles(
    mapping: MappingDefinition, result: MappingValidationResult
) -> None:
    """Reject statements that (transitively) import from themselves."""
    graph: dict[StatementType, set[StatementType]] = {
        statement: {
            node.statement_source
            for node in mapping.imports_for(statement)
            if node.statement_source in mapping.statements
            and node.statement_source != statement
        }
        for statement in mapping.statements
    }

    visiting: set[StatementType] = set()
    done: set[StatementType] = set()
    reported: set[frozenset[StatementType]] = set()

    def visit(statement: StatementType, path: list[StatementType]) -> None:
        visiting.add(statement)
        for source in sorted(graph[statement], key=lambda s: s.value):
            if source in visiting:
                cycle = path[path.index(source):] + [source]
                members = frozenset(cycle)
                if members not in reported:
                    reported.add(members)
                    result.add_error(
                        "Cross-statement import cycle: "
                        + " -> ".join(s.value for s in cycle)
                    )
            elif source not in done:
                visit(source, path + [source])
        visiting.discard(statement)
        done.add(statement)

    for statement in sorted(graph, key=lambda s: s.value):
        if statement not in done:
            visit(statement, [statement])
