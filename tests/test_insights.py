from decimal import Decimal

from app.models.finance import ExpenseRecord
from app.utils.analyzer import calculate_financial_analytics
from app.utils.formatting import format_currency, to_decimal
from app.utils.insights import InsightGenerator, financial_health


def _report(spent, budget=200, category="software"):
    return calculate_financial_analytics(
        [{"amount": spent, "category": category, "date": "2025-01-10"}],
        [],
        [{"amount": budget, "category": category}] if budget else [],
    )


def _titles(insights):
    return [insight.title for insight in insights]


def test_over_budget():
    insights = InsightGenerator().generate(_report(300))
    assert _titles(insights) == ["Over Budget", "Category Over Budget", "High Spending Category"]
    assert "by 50.0%" in insights[0].message
    assert insights[1].message == "Software is over budget by $100."
    assert insights[2].message == "Software accounts for 100.0% of your total spending."


def test_approaching_limit():
    insights = InsightGenerator().generate(_report(170))
    assert insights[0].title == "Approaching Budget Limit"
    assert insights[0].type == "warning"
    assert "85.0%" in insights[0].message


def test_well_within_budget_and_savings():
    insights = InsightGenerator().generate(_report(40))
    assert _titles(insights) == ["Well Within Budget", "High Spending Category", "Savings Opportunity"]
    assert insights[-1].message == "Software is under budget. You could save up to $160."


def test_no_budget_means_no_utilization_insight():
    insights = InsightGenerator().generate(_report(40, budget=0))
    assert _titles(insights) == ["High Spending Category"]


def test_no_spending_produces_no_share_insight():
    report = calculate_financial_analytics([], [], [])
    assert InsightGenerator().generate(report) == []


def test_active_expense_count():
    expenses = [{"amount": 1, "category": "software", "isActive": True} for _ in range(11)]
    report = calculate_financial_analytics([], expenses, [])
    records = ExpenseRecord.coerce_many(expenses)
    assert "Multiple Active Expenses" in _titles(InsightGenerator().generate(report, records))

    records[0] = ExpenseRecord(amount=1, is_active=False)
    assert "Multiple Active Expenses" not in _titles(InsightGenerator().generate(report, records))


def test_custom_thresholds():
    generator = InsightGenerator(caution_pct=60, high_spend_share_pct=100)
    insights = generator.generate(_report(130))
    assert _titles(insights) == ["Approaching Budget Limit"]


def test_insight_currency():
    insights = InsightGenerator().generate(_report(300), currency="EUR")
    assert insights[1].message == "Software is over budget by €100."


def test_insight_to_dict_drops_empty_action():
    insights = InsightGenerator().generate(_report(40))
    assert "action" not in insights[0].to_dict()
    assert insights[-1].to_dict()["action"] == "Optimize Budget"


def test_financial_health():
    health = financial_health(_report(150))
    assert health.total_spending == 150
    assert health.net_budget == 50
    assert health.savings_rate == 25
    assert health.over_budget_categories == 0
    assert health.is_healthy is True

    over = financial_health(_report(300))
    assert over.over_budget_categories == 1
    assert over.savings_rate == -50
    assert over.is_healthy is False

    empty = financial_health(_report(0, budget=0))
    assert empty.savings_rate == 0


def test_format_currency():
    assert format_currency(1234.5) == "$1,234.5"
    assert format_currency(100) == "$100"
    assert format_currency("1234.56", "GBP") == "£1,234.56"
    assert format_currency("abc") == "$0"


def test_to_decimal():
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(" 42 ") == Decimal("42")
    assert to_decimal(None) == 0
    assert to_decimal("Infinity") == 0
    assert to_decimal([1]) == 0


def test_to_decimal_rejects_out_of_range_magnitudes():
    assert to_decimal("1e1000000") == 0
    assert to_decimal("1e-1000000") == 0
    assert to_decimal(Decimal("9e999")) == 0
    assert to_decimal(10 ** 200) == 0
    assert to_decimal("0e-500") == 0
    assert to_decimal("1e50") == Decimal("1e50")
