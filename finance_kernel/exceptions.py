"""
Typed Exception Hierarchy for statement generation.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Report callers (the HTTP layer, the CLI, batch exports) must react to
failures precisely. Generic exceptions like ValueError force them to parse
messages, which breaks when wording changes and cannot be mapped to an API
response code.

Every error here therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA stored as attributes (not only a message string)

Example:
    try:
        service.generate_statements(start, end, "all")
    except InvalidReportPeriodError as e:
        return {"error": e.code, "start": e.start_date, "end": e.end_date}
    except StatementGenerationError as e:
        log.error("report failed", extra={"statement": e.statement})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FinanceKernelError (base)
    |
    +-- MappingError
    |   +-- MappingLoadError
    |   +-- MappingNotFoundError
    |   +-- MappingValidationError
    |   +-- MappingIntegrityError
    |
    +-- FormulaError
    |   +-- FormulaSyntaxError
    |   +-- UnresolvedReferenceError
    |   +-- FormulaArithmeticError
    |
    +-- ReportError
        +-- InvalidReportPeriodError
        +-- UnknownReportCategoryError
        +-- StatementGenerationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                         | When Raised
-----------|------------------------------|-----------------------------------
Mapping    | MAPPING_LOAD_ERROR           | YAML file malformed or wrong shape
           | MAPPING_NOT_FOUND            | Mapping set directory missing
           | MAPPING_VALIDATION_FAILED    | Load-time validation found errors
           | MAPPING_INTEGRITY_MISMATCH   | Checksum differs from pinned value
-----------|------------------------------|-----------------------------------
Formula    | FORMULA_SYNTAX_ERROR         | Expression cannot be parsed
           | UNRESOLVED_REFERENCE         | Key missing from the data context
           | FORMULA_ARITHMETIC_ERROR     | Division by zero / non-finite
-----------|------------------------------|-----------------------------------
Report     | INVALID_REPORT_PERIOD        | end_date before start_date
           | UNKNOWN_REPORT_CATEGORY      | Category not one of the four
           | STATEMENT_GENERATION_FAILED  | Ledger aggregation failed

Formula errors never reach report callers: the evaluator catches them,
logs a warning and resolves the expression to zero. They are raised
internally and by the strict parsing helpers used at load time.
"""


class FinanceKernelError(Exception):
    """
    Base exception for all statement-engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "FINANCE_KERNEL_ERROR"


# Mapping definition exceptions


class MappingError(FinanceKernelError):
    """Base exception for mapping definition errors."""

    code: str = "MAPPING_ERROR"


class MappingLoadError(MappingError):
    """A mapping file could not be read or has the wrong structure."""

    code: str = "MAPPING_LOAD_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot load mapping from {source}: {reason}")


class MappingNotFoundError(MappingError):
    """The requested mapping set does not exist."""

    code: str = "MAPPING_NOT_FOUND"

    def __init__(self, set_name: str, search_path: str):
        self.set_name = set_name
        self.search_path = search_path
        super().__init__(
            f"Mapping set '{set_name}' not found under {search_path}"
        )


class MappingValidationError(MappingError):
    """
    Load-time validation of a mapping set failed.

    Carries the full list of error strings so callers can show every
    problem at once instead of fixing them one by one.
    """

    code: str = "MAPPING_VALIDATION_FAILED"

    def __init__(self, set_name: str, errors: list[str]):
        self.set_name = set_name
        self.errors = list(errors)
        super().__init__(
            f"Mapping set '{set_name}' failed validation with "
            f"{len(self.errors)} error(s): " + "; ".join(self.errors)
        )


class MappingIntegrityError(MappingError):
    """Mapping checksum does not match the pinned fingerprint."""

    code: str = "MAPPING_INTEGRITY_MISMATCH"

    def __init__(self, set_name: str, expected: str, actual: str):
        self.set_name = set_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Mapping set '{set_name}' checksum mismatch: "
            f"pinned {expected}, computed {actual}"
        )


# Formula exceptions


class FormulaError(FinanceKernelError):
    """Base exception for calculation expression errors."""

    code: str = "FORMULA_ERROR"


class FormulaSyntaxError(FormulaError):
    """The expression contains an illegal character or malformed grammar."""

    code: str = "FORMULA_SYNTAX_ERROR"

    def __init__(self, expression: str, position: int, reason: str):
        self.expression = expression
        self.position = position
        self.reason = reason
        super().__init__(
            f"Invalid formula '{expression}' at position {position}: {reason}"
        )


class UnresolvedReferenceError(FormulaError):
    """The expression references a key absent from the data context."""

    code: str = "UNRESOLVED_REFERENCE"

    def __init__(self, expression: str, key: str):
        self.expression = expression
        self.key = key
        super().__init__(f"Formula '{expression}' references unknown key '{key}'")


class FormulaArithmeticError(FormulaError):
    """Evaluation produced a division by zero or a non-finite value."""

    code: str = "FORMULA_ARITHMETIC_ERROR"

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Formula '{expression}' cannot be evaluated: {reason}")


# Report request exceptions


class ReportError(FinanceKernelError):
    """Base exception for report generation errors."""

    code: str = "REPORT_ERROR"


class InvalidReportPeriodError(ReportError):
    """The requested end date falls before the start date."""

    code: str = "INVALID_REPORT_PERIOD"

    def __init__(self, start_date, end_date):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"Report period end {end_date} is before start {start_date}"
        )


class UnknownReportCategoryError(ReportError):
    """The requested report category is not supported."""

    code: str = "UNKNOWN_REPORT_CATEGORY"

    def __init__(self, category: str, allowed: list[str]):
        self.category = category
        self.allowed = list(allowed)
        super().__init__(
            f"Unknown report category '{category}'; expected one of {self.allowed}"
        )


class StatementGenerationError(ReportError):
    """
    A statement could not be produced.

    Raised for upstream failures (ledger aggregation). The whole request
    fails; partially computed statements are discarded. The underlying
    exception is available as ``__cause__``.
    """

    code: str = "STATEMENT_GENERATION_FAILED"

    def __init__(self, statement: str, reason: str):
        self.statement = statement
        self.reason = reason
        super().__init__(f"Failed to generate {statement}: {reason}")
