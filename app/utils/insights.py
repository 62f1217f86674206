from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from app.utils.analyzer import FinancialAnalyticsReport
from app.utils.formatting import (
    HUNDRED,
    ZERO,
    category_label,
    format_currency,
    format_percent,
    percentage,
)


@dataclass
class Insight:
    """A human-readable advisory message derived from a report."""

    type: str  # "warning" | "success" | "info"
    title: str
    message: str
    action: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class FinancialHealth:
    total_spending: Decimal
    net_budget: Decimal
    savings_rate: Decimal
    over_budget_categories: int
    utilization: Decimal
    is_healthy: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def financial_health(report: FinancialAnalyticsReport) -> FinancialHealth:
    total_spending = report.total_spending
    net_budget = report.total_budgets - total_spending
    savings_rate = percentage(net_budget, report.total_budgets) if report.total_budgets > 0 else ZERO
    over_budget = sum(1 for row in report.budget_vs_actual if row.actual > row.budgeted)

    return FinancialHealth(
        total_spending=total_spending,
        net_budget=net_budget,
        savings_rate=savings_rate,
        over_budget_categories=over_budget,
        utilization=report.budget_utilization,
        is_healthy=savings_rate >= 0 and over_budget == 0,
    )


class InsightGenerator:
    """
    Rule-based advisor over a FinancialAnalyticsReport.
    Thresholds are percentages and come from configuration.
    """

    def __init__(
        self,
        over_budget_pct: float = 100.0,
        caution_pct: float = 80.0,
        healthy_pct: float = 50.0,
        high_spend_share_pct: float = 30.0,
        max_active_expenses: int = 10,
    ) -> None:
        self._over_budget = Decimal(str(over_budget_pct))
        self._caution = Decimal(str(caution_pct))
        self._healthy = Decimal(str(healthy_pct))
        self._high_spend_share = Decimal(str(high_spend_share_pct))
        self._max_active_expenses = max_active_expenses

    def utilization_insight(self, report: FinancialAnalyticsReport) -> Optional[Insight]:
        # Without any budget the utilization is a placeholder 0, nothing to say
        if report.total_budgets <= 0:
            return None

        utilization = report.budget_utilization
        if utilization > self._over_budget:
            return Insight(
                type="warning",
                title="Over Budget",
                message=(
                    f"You've exceeded your total budget by {format_percent(utilization - HUNDRED)}. "
                    "Consider reviewing your spending."
                ),
                action="Review Budgets",
            )
        if utilization > self._caution:
            return Insight(
                type="warning",
                title="Approaching Budget Limit",
                message=f"You've used {format_percent(utilization)} of your budget. Monitor spending closely.",
                action="Monitor Spending",
            )
        if utilization < self._healthy:
            return Insight(
                type="success",
                title="Well Within Budget",
                message=(
                    f"You're using only {format_percent(utilization)} of your budget. "
                    "Great financial discipline!"
                ),
            )
        return None

    def over_budget_category_insight(
        self, report: FinancialAnalyticsReport, currency: str = "USD"
    ) -> Optional[Insight]:
        over_budget = [row for row in report.budget_vs_actual if row.actual > row.budgeted]
        if not over_budget:
            return None

        worst = min(over_budget, key=lambda row: (-row.variance, row.category.value))
        return Insight(
            type="warning",
            title="Category Over Budget",
            message=(
                f"{category_label(worst.category)} is over budget by "
                f"{format_currency(abs(worst.variance), currency)}."
            ),
            action="Review Category",
        )

    def high_spending_insight(self, report: FinancialAnalyticsReport) -> Optional[Insight]:
        if not report.top_categories or report.total_spending <= 0:
            return None

        top = report.top_categories[0]
        share = percentage(top.total, report.total_spending)
        if share <= self._high_spend_share:
            return None
        return Insight(
            type="info",
            title="High Spending Category",
            message=f"{category_label(top.category)} accounts for {format_percent(share)} of your total spending.",
            action="Analyze Category",
        )

    def active_expenses_insight(self, expenses: Iterable[Any]) -> Optional[Insight]:
        active = sum(1 for expense in expenses if getattr(expense, "is_active", True))
        if active <= self._max_active_expenses:
            return None
        return Insight(
            type="info",
            title="Multiple Active Expenses",
            message=(
                f"You have {active} active recurring expenses. "
                "Consider reviewing subscriptions for potential savings."
            ),
            action="Review Expenses",
        )

    def savings_insight(self, report: FinancialAnalyticsReport, currency: str = "USD") -> Optional[Insight]:
        under_spent = [
            row for row in report.category_breakdown
            if row.budgets > 0 and row.total < row.budgets * Decimal("0.5")
        ]
        if not under_spent:
            return None

        # category_breakdown is in enum order, so max() keeps ties deterministic
        best = max(under_spent, key=lambda row: row.budgets - row.total)
        return Insight(
            type="success",
            title="Savings Opportunity",
            message=(
                f"{category_label(best.category)} is under budget. "
                f"You could save up to {format_currency(best.budgets - best.total, currency)}."
            ),
            action="Optimize Budget",
        )

    def generate(
        self,
        report: FinancialAnalyticsReport,
        expenses: Iterable[Any] = (),
        currency: str = "USD",
    ) -> List[Insight]:
        candidates = [
            self.utilization_insight(report),
            self.over_budget_category_insight(report, currency),
            self.high_spending_insight(report),
            self.active_expenses_insight(expenses),
            self.savings_insight(report, currency),
        ]
        return [insight for insight in candidates if insight is not None]
