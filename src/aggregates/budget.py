"""
Budget Aggregates

surplus = income - (sum of fixed costs + variable budget)

The surplus is derived on every call and never stored. It can be
negative; only the flow chart clamps it at zero.
"""

from pydantic import BaseModel

from src.models.app_data import BudgetProfile


class FlowSlice(BaseModel):
    label: str
    amount: int


class BudgetSummary(BaseModel):
    """Derived monthly cash flow."""
    income: int
    fixed_costs: int
    variable_budget: int
    expenses: int
    surplus: int

    @property
    def is_deficit(self) -> bool:
        return self.surplus < 0


def total_fixed_costs(budget: BudgetProfile) -> int:
    return sum(item.amount for item in budget.fixed_costs)


def total_expenses(budget: BudgetProfile) -> int:
    return total_fixed_costs(budget) + budget.variable_budget


def budget_surplus(budget: BudgetProfile) -> int:
    return budget.monthly_income - total_expenses(budget)


def flow_breakdown(budget: BudgetProfile) -> list[FlowSlice]:
    """Bars for the flow chart: income, planned expenses, surplus (not below 0)."""
    return [
        FlowSlice(label="Income", amount=budget.monthly_income),
        FlowSlice(label="Expenses", amount=total_expenses(budget)),
        FlowSlice(label="Surplus", amount=max(0, budget_surplus(budget))),
    ]


def summarize_budget(budget: BudgetProfile) -> BudgetSummary:
    fixed = total_fixed_costs(budget)
    expenses = fixed + budget.variable_budget
    return BudgetSummary(
        income=budget.monthly_income,
        fixed_costs=fixed,
        variable_budget=budget.variable_budget,
        expenses=expenses,
        surplus=budget.monthly_income - expenses,
    )
