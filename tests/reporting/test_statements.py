"""
Pure function unit tests for statements.py.

NO database. Ledger data comes from the in-memory FakeAggregator.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from finance_config.schema import (
    CalculatedNode,
    CategorySelectors,
    DataLeafNode,
    MappingDefinition,
    SectionRole,
    SectionSign,
    StatementMapping,
    StatementType,
)
from finance_modules.reporting.models import (
    FinancialStatements,
    ReportCategory,
    SectionResult,
)
from finance_modules.reporting.periods import resolve_report_period
from finance_modules.reporting.statements import (
    DataContext,
    assemble_section,
    assemble_statement,
    build_import_seed,
    fetch_leaf_amounts,
    find_section,
    process_section,
    process_statement,
    render_to_dict,
)
from tests.reporting.conftest import FakeAggregator

JAN = resolve_report_period(date(2025, 1, 1), date(2025, 1, 31))
JAN_MAR = resolve_report_period(date(2025, 1, 1), date(2025, 3, 31))


def D(value) -> Decimal:
    return Decimal(str(value))


def leaf(key, *accounts, sign=SectionSign.INCOME_POSITIVE, role=None, category_types=()):
    return DataLeafNode(
        key=key,
        label=key.replace("_", " ").title(),
        selectors=CategorySelectors(
            category_types=tuple(category_types), account_numbers=tuple(accounts)
        ),
        sign=sign,
        role=role,
    )


def calc(key, calculation, *children, statement_source=None):
    return CalculatedNode(
        key=key,
        label=key.replace("_", " ").title(),
        calculation=calculation,
        children=tuple(children),
        statement_source=statement_source,
    )


# =========================================================================
# DataContext
# =========================================================================


class TestDataContext:

    def test_bind_returns_new_context(self):
        base = DataContext({"a": [D(1)]})
        bound = base.bind("b", [D(2)])
        assert "b" in bound
        assert "b" not in base
        assert bound["a"] == (D(1),)

    def test_values_are_tuples(self):
        ctx = DataContext({"a": [D(1), D(2)]})
        assert ctx["a"] == (D(1), D(2))
        assert isinstance(ctx["a"], tuple)


# =========================================================================
# Data leaves
# =========================================================================


class TestFetchLeafAmounts:

    def test_income_positive(self):
        ledger = FakeAggregator([("REVENUE", "4101", "2025-01", "5000000", "0")])
        assert fetch_leaf_amounts(leaf("net_sales", "4101"), JAN, ledger) == (D(5000000),)

    def test_expense_positive(self):
        ledger = FakeAggregator(
            [
                ("COGS", "5101", "2025-01", "0", "1500000"),
                ("COGS", "5102", "2025-01", "0", "500000"),
            ]
        )
        node = leaf("cogs", "5101", "5102", sign=SectionSign.EXPENSE_POSITIVE)
        assert fetch_leaf_amounts(node, JAN, ledger) == (D(2000000),)

    def test_net_of_income_and_expense(self):
        ledger = FakeAggregator([("ASSET_CURRENT", "1101", "2025-01", "1000", "300")])
        assert fetch_leaf_amounts(leaf("cash", "1101"), JAN, ledger) == (D(700),)

    def test_category_type_selector(self):
        ledger = FakeAggregator(
            [
                ("REVENUE", "4101", "2025-01", "100", "0"),
                ("REVENUE", "4199", "2025-01", "50", "0"),
            ]
        )
        node = leaf("revenue", category_types=["REVENUE"])
        assert fetch_leaf_amounts(node, JAN, ledger) == (D(150),)

    def test_no_selectors_skips_ledger(self):
        ledger = FakeAggregator([("REVENUE", "4101", "2025-01", "100", "0")])
        assert fetch_leaf_amounts(leaf("prepaid"), JAN_MAR, ledger) == (D(0), D(0))
        assert ledger.calls == []

    def test_one_aggregator_call_per_leaf(self):
        ledger = FakeAggregator()
        fetch_leaf_amounts(leaf("cash", "1101"), JAN_MAR, ledger)
        assert ledger.calls == [(date(2025, 1, 1), date(2025, 3, 31), (), ("1101",))]

    def test_intermediate_months_ignored(self):
        ledger = FakeAggregator(
            [
                ("ASSET_CURRENT", "1101", "2025-01", "10", "0"),
                ("ASSET_CURRENT", "1101", "2025-02", "999", "0"),
                ("ASSET_CURRENT", "1101", "2025-03", "30", "0"),
            ]
        )
        assert fetch_leaf_amounts(leaf("cash", "1101"), JAN_MAR, ledger) == (D(10), D(30))

    def test_missing_month_is_zero(self):
        ledger = FakeAggregator([("ASSET_CURRENT", "1101", "2025-03", "30", "0")])
        assert fetch_leaf_amounts(leaf("cash", "1101"), JAN_MAR, ledger) == (D(0), D(30))


# =========================================================================
# Section processing
# =========================================================================


class TestProcessSection:

    def test_parent_calculation_over_children(self):
        ledger = FakeAggregator(
            [
                ("SALES_EXPENSE", "6202", "2025-01", "0", "300"),
                ("GA_EXPENSE", "6101", "2025-01", "0", "1000"),
            ]
        )
        node = calc(
            "operating_expenses",
            "selling_expenses + general_admin_expenses",
            leaf("selling_expenses", "6202", sign=SectionSign.EXPENSE_POSITIVE),
            leaf("general_admin_expenses", "6101", sign=SectionSign.EXPENSE_POSITIVE),
        )
        result = process_section(node, DataContext(), JAN, ledger)
        assert result.amounts == (D(1300),)
        assert [c.amounts for c in result.children] == [(D(300),), (D(1000),)]

    def test_subtracting_negative_child(self):
        ledger = FakeAggregator(
            [
                ("ASSET_FIXED", "1401", "2025-01", "400", "0"),
                ("DEPRECIATION", "1403", "2025-01", "0", "50"),
            ]
        )
        node = calc(
            "fixed_assets_net",
            "fixed_assets - depreciation",
            leaf("fixed_assets", "1401"),
            leaf("depreciation", "1403"),
        )
        result = process_section(node, DataContext(), JAN, ledger)
        assert result.children[1].amounts == (D(-50),)
        assert result.amounts == (D(450),)

    def test_role_alias_resolves_children(self):
        ledger = FakeAggregator(
            [
                ("NON_OP_INCOME", "4102", "2025-01", "50", "0"),
                ("NON_OP_EXPENSE", "7101", "2025-01", "0", "250"),
            ]
        )
        node = calc(
            "other_income_expenses",
            "other_income_expenses.income - other_income_expenses.expense",
            leaf("other_income", "4102", role=SectionRole.INCOME),
            leaf(
                "other_expenses",
                "7101",
                sign=SectionSign.EXPENSE_POSITIVE,
                role=SectionRole.EXPENSE,
            ),
        )
        result = process_section(node, DataContext(), JAN, ledger)
        assert result.amounts == (D(-200),)

    def test_child_does_not_see_later_sibling(self):
        ledger = FakeAggregator([("X", "1", "2025-01", "5", "0")])
        node = calc(
            "parent",
            "first + second",
            calc("first", "second"),
            leaf("second", "1"),
        )
        result = process_section(node, DataContext(), JAN, ledger)
        first = result.children[0]
        assert first.amounts == (D(0),)
        assert result.amounts == (D(5),)

    def test_alias_copies_incoming_amounts(self):
        """A calculation that is exactly a known key copies its amounts."""
        ctx = DataContext({"operational_activities": [D(1550)]})
        result = process_section(
            calc("cash_from_operational", "  operational_activities "), ctx, JAN, FakeAggregator()
        )
        assert result.amounts == (D(1550),)

    def test_alias_takes_precedence_over_own_children(self):
        ctx = DataContext({"net_profit_loss": [D(1000)]})
        node = calc("net_profit_loss", "net_profit_loss", leaf("net_profit_loss_detail", "9"))
        result = process_section(node, ctx, JAN, FakeAggregator())
        assert result.amounts == (D(1000),)

    def test_data_leaf_with_children_keeps_own_value(self):
        ledger = FakeAggregator(
            [
                ("A", "1", "2025-01", "100", "0"),
                ("B", "2", "2025-01", "7", "0"),
            ]
        )
        node = DataLeafNode(
            key="parent",
            label="Parent",
            selectors=CategorySelectors(account_numbers=("1",)),
            children=(leaf("child", "2"),),
        )
        result = process_section(node, DataContext(), JAN, ledger)
        assert result.amounts == (D(100),)
        assert result.children[0].amounts == (D(7),)

    def test_unknown_reference_resolves_to_zero(self):
        result = process_section(calc("x", "missing + 1"), DataContext(), JAN, FakeAggregator())
        assert result.amounts == (D(0),)


class TestProcessStatement:

    def test_top_level_order_and_visibility(self):
        ledger = FakeAggregator(
            [
                ("REVENUE", "4101", "2025-01", "5000000", "0"),
                ("COGS", "5101", "2025-01", "0", "2000000"),
            ]
        )
        sections = (
            leaf("net_sales", "4101"),
            leaf("cogs", "5101", sign=SectionSign.EXPENSE_POSITIVE),
            calc("gross_profit_loss", "net_sales - cogs"),
        )
        results = process_statement(sections, JAN, ledger)
        assert [r.key for r in results] == ["net_sales", "cogs", "gross_profit_loss"]
        assert [r.amounts for r in results] == [(D(5000000),), (D(2000000),), (D(3000000),)]

    def test_every_section_has_one_amount_per_month(self):
        sections = (
            leaf("a", "1"),
            calc("b", "a * 2", leaf("c"), calc("d", "c")),
            calc("e", "b"),
        )
        results = process_statement(sections, JAN_MAR, FakeAggregator())

        def walk(rs):
            for r in rs:
                yield r
                yield from walk(r.children)

        assert all(len(r.amounts) == 2 for r in walk(results))

    def test_seed_visible_to_first_section(self):
        results = process_statement(
            (calc("net_profit_loss", "net_profit_loss"), calc("double", "net_profit_loss * 2")),
            JAN,
            FakeAggregator(),
            seed={"net_profit_loss": [D(1000)]},
        )
        assert [r.amounts for r in results] == [(D(1000),), (D(2000),)]

    def test_deterministic(self):
        ledger = FakeAggregator([("REVENUE", "4101", "2025-01", "123.45", "0")])
        sections = (leaf("net_sales", "4101"), calc("half", "net_sales / 2"))
        first = process_statement(sections, JAN, ledger)
        second = process_statement(sections, JAN, ledger)
        assert first == second


# =========================================================================
# Cross-statement injection
# =========================================================================


def _cross_mapping() -> MappingDefinition:
    income = StatementMapping(
        StatementType.INCOME_STATEMENT,
        (
            leaf("net_sales", "4101"),
            calc("net_profit_loss", "net_sales"),
        ),
    )
    cash_flow = StatementMapping(
        StatementType.CASH_FLOW,
        (
            calc(
                "net_profit_loss",
                "net_profit_loss",
                statement_source=StatementType.INCOME_STATEMENT,
            ),
            calc(
                "operational_activities",
                "net_profit_loss + depreciation_expense",
                leaf("depreciation_expense", "1403"),
            ),
        ),
    )
    return MappingDefinition(
        name="cross",
        version=1,
        statements={
            StatementType.INCOME_STATEMENT: income,
            StatementType.CASH_FLOW: cash_flow,
        },
    )


class TestCrossStatementInjection:

    def test_net_profit_flows_into_operating_activities(self):
        ledger = FakeAggregator(
            [
                ("REVENUE", "4101", "2025-01", "1000000", "0"),
                ("ASSET_FIXED", "1403", "2025-01", "50000", "0"),
            ]
        )
        mapping = _cross_mapping()
        income = process_statement(
            mapping.statement(StatementType.INCOME_STATEMENT).sections, JAN, ledger
        )
        seed = build_import_seed(
            mapping, StatementType.CASH_FLOW, {StatementType.INCOME_STATEMENT: income}
        )
        assert seed == {"net_profit_loss": (D(1000000),)}

        cash_flow = process_statement(
            mapping.statement(StatementType.CASH_FLOW).sections, JAN, ledger, seed=seed
        )
        assert find_section(cash_flow, "operational_activities").amounts == (D(1050000),)

    def test_missing_source_section_logged(self, captured_logs):
        mapping = _cross_mapping()
        seed = build_import_seed(mapping, StatementType.CASH_FLOW, {})
        assert seed == {}
        assert any(
            r["message"] == "cross_statement_import_missing" for r in captured_logs()
        )

    def test_find_section_nested(self):
        tree = (
            SectionResult("a", "A", (D(1),), children=(SectionResult("b", "B", (D(2),)),)),
        )
        assert find_section(tree, "b").amounts == (D(2),)
        assert find_section(tree, "z") is None


# =========================================================================
# Assembly and rendering
# =========================================================================


class TestAssemble:

    def test_section_shape(self):
        result = SectionResult(
            key="operating_expenses",
            label="Operating Expenses",
            amounts=(D(1300),),
            children=(SectionResult("selling_expenses", "Selling Expenses", (D(300),)),),
            calculation="selling_expenses",
        )
        assert assemble_section(result) == {
            "label": "Operating Expenses",
            "amount": [D(1300)],
            "subsections": [{"label": "Selling Expenses", "amount": [D(300)]}],
        }

    def test_no_subsections_key_without_children(self):
        assert "subsections" not in assemble_section(SectionResult("a", "A", (D(1),)))

    def test_idempotent(self):
        results = (
            SectionResult("a", "A", (D(1), D(2)), children=(SectionResult("b", "B", (D(3), D(4))),)),
            SectionResult("c", "C", (D(5), D(6))),
        )
        once = assemble_statement(results)
        assert assemble_statement(once) == once


class TestRenderToDict:

    def test_statements_bundle(self):
        statements = FinancialStatements(
            period=JAN,
            report_category=ReportCategory.INCOME_STATEMENT,
            mapping_set="default",
            income_statement=(SectionResult("net_sales", "Net Sales", (D("5000000.000000000"),)),),
        )
        rendered = render_to_dict(statements)
        assert set(rendered) == {"period", "income_statement"}
        assert rendered["income_statement"] == [{"label": "Net Sales", "amount": [5000000]}]
        assert rendered["period"]["months"] == ["2025-01"]
        assert rendered["period"]["start_date"] == "2025-01-01"

    @pytest.mark.parametrize(
        "value,expected",
        [(D("3000000"), 3000000), (D("-200.00"), -200), (D("12.5"), 12.5)],
    )
    def test_decimal_rendering(self, value, expected):
        rendered = render_to_dict(value)
        assert rendered == expected
        assert type(rendered) is type(expected)
