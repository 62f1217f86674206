from __future__ import annotations

from calendar import monthrange
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from app.models.finance import BudgetRecord, CostCategory, CostRecord, ExpenseRecord
from app.utils.formatting import ZERO, percentage


@dataclass
class BudgetVsActual:
    """Budgeted and actual spend for a single category."""

    category: CostCategory
    budgeted: Decimal
    actual: Decimal
    variance: Decimal
    percentage: Decimal


@dataclass
class CategoryBreakdown:
    category: CostCategory
    costs: Decimal = ZERO
    expenses: Decimal = ZERO
    budgets: Decimal = ZERO
    percentage: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.costs + self.expenses


@dataclass
class CategorySpending:
    category: CostCategory
    total: Decimal
    count: int


@dataclass
class MonthlyTrend:
    month: str  # display label, e.g. "Jan 2025"
    key: str  # "2025-01"
    costs: Decimal = ZERO
    expenses: Decimal = ZERO
    budgets: Decimal = ZERO


@dataclass
class FinancialAnalyticsReport:
    """Derived analytics for one set of costs, expenses and budgets."""

    total_costs: Decimal = ZERO
    total_expenses: Decimal = ZERO
    total_budgets: Decimal = ZERO
    budget_utilization: Decimal = ZERO
    budget_vs_actual: List[BudgetVsActual] = field(default_factory=list)
    category_breakdown: List[CategoryBreakdown] = field(default_factory=list)
    top_categories: List[CategorySpending] = field(default_factory=list)
    monthly_trend: List[MonthlyTrend] = field(default_factory=list)

    @property
    def total_spending(self) -> Decimal:
        return self.total_costs + self.total_expenses

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # Enums as their plain string values for JSON responses
        for key in ("budget_vs_actual", "category_breakdown", "top_categories"):
            for row in data[key]:
                row["category"] = row["category"].value
        return data


TREND_MONTHS = 6

# Earliest anchor that still fits a full window after date.min
EARLIEST_ANCHOR = date.min + relativedelta(months=TREND_MONTHS - 1)


def _month_start(day: date) -> date:
    return day.replace(day=1)


def _covers_month(budget: BudgetRecord, month: date) -> bool:
    """A dated budget counts toward every month its start..end range overlaps."""
    if budget.start_date is None:
        return False
    month_end = month.replace(day=monthrange(month.year, month.month)[1])
    return budget.start_date <= month_end and (budget.end_date is None or budget.end_date >= month)


class FinanceAnalyzer:
    """
    Stateless aggregation engine behind the dashboards, insights and exports.
    Every method takes already-normalized records and returns fresh values;
    nothing is cached or mutated between calls.
    """

    @staticmethod
    def total(records: Iterable[Any]) -> Decimal:
        return sum((record.amount for record in records), ZERO)

    def totals(
        self,
        costs: Sequence[CostRecord],
        expenses: Sequence[ExpenseRecord],
        budgets: Sequence[BudgetRecord],
    ) -> Tuple[Decimal, Decimal, Decimal]:
        return self.total(costs), self.total(expenses), self.total(budgets)

    def budget_utilization(
        self,
        costs: Sequence[CostRecord],
        expenses: Sequence[ExpenseRecord],
        budgets: Sequence[BudgetRecord],
    ) -> Decimal:
        total_costs, total_expenses, total_budgets = self.totals(costs, expenses, budgets)
        if total_budgets <= 0:
            return ZERO
        return percentage(total_costs + total_expenses, total_budgets)

    @staticmethod
    def _sum_by_category(records: Iterable[Any]) -> Dict[CostCategory, Decimal]:
        totals: Dict[CostCategory, Decimal] = defaultdict(lambda: ZERO)
        for record in records:
            totals[record.category] += record.amount
        return totals

    def budget_vs_actual(
        self,
        costs: Sequence[CostRecord],
        expenses: Sequence[ExpenseRecord],
        budgets: Sequence[BudgetRecord],
    ) -> List[BudgetVsActual]:
        budgeted = self._sum_by_category(budgets)
        spent_costs = self._sum_by_category(costs)
        spent_expenses = self._sum_by_category(expenses)

        rows = []
        for category, amount in budgeted.items():
            if amount <= 0:
                continue
            actual = spent_costs[category] + spent_expenses[category]
            rows.append(
                BudgetVsActual(
                    category=category,
                    budgeted=amount,
                    actual=actual,
                    variance=actual - amount,
                    percentage=percentage(actual, amount),
                )
            )
        rows.sort(key=lambda row: (-row.percentage, row.category.value))
        return rows

    def category_breakdown(
        self,
        costs: Sequence[CostRecord],
        expenses: Sequence[ExpenseRecord],
        budgets: Sequence[BudgetRecord] = (),
    ) -> List[CategoryBreakdown]:
        spent_costs = self._sum_by_category(costs)
        spent_expenses = self._sum_by_category(expenses)
        budgeted = self._sum_by_category(budgets)
        total_spending = self.total(costs) + self.total(expenses)

        breakdown = []
        for category in CostCategory:
            row = CategoryBreakdown(
                category=category,
                costs=spent_costs[category],
                expenses=spent_expenses[category],
                budgets=budgeted[category],
            )
            row.percentage = percentage(row.total, total_spending)
            breakdown.append(row)
        return breakdown

    def top_categories(
        self,
        costs: Sequence[CostRecord],
        expenses: Sequence[ExpenseRecord],
    ) -> List[CategorySpending]:
        totals: Dict[CostCategory, Decimal] = defaultdict(lambda: ZERO)
        counts: Dict[CostCategory, int] = defaultdict(int)
        for record in [*costs, *expenses]:
            totals[record.category] += record.amount
            counts[record.category] += 1

        ranked = [
            CategorySpending(category=category, total=totals[category], count=count)
            for category, count in counts.items()
        ]
        ranked.sort(key=lambda item: (-item.total, item.category.value))
        return ranked

    def monthly_trend(
        self,
        costs: Sequence[CostRecord],
        expenses: Sequence[ExpenseRecord],
        budgets: Sequence[BudgetRecord] = (),
        today: Optional[date] = None,
    ) -> List[MonthlyTrend]:
        """
        Spend per calendar month for the window ending at the month of the
        latest dated record (or the current month when nothing is dated).
        Records without a usable date are left out of the trend only.
        Budgets are counted in every month their date range overlaps.
        """
        dates = [record.date for record in [*costs, *expenses] if record.date is not None]
        anchor = max(_month_start(max(dates) if dates else (today or date.today())), EARLIEST_ANCHOR)

        months = [anchor - relativedelta(months=offset) for offset in range(TREND_MONTHS - 1, -1, -1)]
        buckets = {
            month: MonthlyTrend(month=month.strftime("%b %Y"), key=f"{month.year:04d}-{month.month:02d}")
            for month in months
        }

        for record in costs:
            if record.date is not None and _month_start(record.date) in buckets:
                buckets[_month_start(record.date)].costs += record.amount
        for record in expenses:
            if record.date is not None and _month_start(record.date) in buckets:
                buckets[_month_start(record.date)].expenses += record.amount
        for month, bucket in buckets.items():
            bucket.budgets = sum((b.amount for b in budgets if _covers_month(b, month)), ZERO)

        return [buckets[month] for month in months]

    def summarize(
        self,
        costs: Sequence[CostRecord],
        expenses: Sequence[ExpenseRecord],
        budgets: Sequence[BudgetRecord],
        today: Optional[date] = None,
    ) -> FinancialAnalyticsReport:
        total_costs, total_expenses, total_budgets = self.totals(costs, expenses, budgets)

        return FinancialAnalyticsReport(
            total_costs=total_costs,
            total_expenses=total_expenses,
            total_budgets=total_budgets,
            budget_utilization=self.budget_utilization(costs, expenses, budgets),
            budget_vs_actual=self.budget_vs_actual(costs, expenses, budgets),
            category_breakdown=self.category_breakdown(costs, expenses, budgets),
            top_categories=self.top_categories(costs, expenses),
            monthly_trend=self.monthly_trend(costs, expenses, budgets, today=today),
        )


def calculate_financial_analytics(
    costs: Optional[Iterable[Any]],
    expenses: Optional[Iterable[Any]],
    budgets: Optional[Iterable[Any]],
    today: Optional[date] = None,
) -> FinancialAnalyticsReport:
    """
    Build the analytics report from cost, expense and budget records.

    Raw mappings are normalized through the record models first, so amounts
    arriving as strings or garbage count as 0 and bad dates are dropped from
    the monthly trend. The inputs are never modified.
    """
    analyzer = FinanceAnalyzer()
    return analyzer.summarize(
        CostRecord.coerce_many(costs),
        ExpenseRecord.coerce_many(expenses),
        BudgetRecord.coerce_many(budgets),
        today=today,
    )
