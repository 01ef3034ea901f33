"""
汇总计算
投票统计、预算分摊汇总、费用汇总；全部是无副作用的纯函数，
相同输入总是得到相同输出
"""

from typing import Dict, List, Optional, Sequence

from shared.models.group import (
    BudgetSplit,
    BudgetSplitLine,
    BudgetSummary,
    DestinationVote,
    VoteTally,
)
from shared.models.travel import Expense, ExpenseSummary
from shared.errors import ValidationError


def has_budget(total_budget: Optional[float]) -> bool:
    """0 或空预算都视为未设置"""
    return total_budget is not None and total_budget > 0


def tally_votes(votes: Sequence[DestinationVote], current_user_id: Optional[str] = None) -> List[VoteTally]:
    """按目的地名称（区分大小写）分组计票

    百分比保留一位小数；票数相同时保持首次出现的顺序。
    """
    grouped: Dict[str, List[DestinationVote]] = {}
    for vote in votes:
        grouped.setdefault(vote.destination_name, []).append(vote)

    total = len(votes)
    tallies = []
    for name, rows in grouped.items():
        first = rows[0]
        count = len(rows)
        tallies.append(VoteTally(
            destination_name=name,
            destination_state=first.destination_state,
            category=first.category,
            cost=first.cost,
            duration=first.duration,
            count=count,
            percentage=round(count / total * 100, 1) if total else 0.0,
            user_voted=current_user_id is not None and any(r.user_id == current_user_id for r in rows),
            voters=[r.profile for r in rows if r.profile is not None],
        ))

    # sorted 是稳定排序，reverse 不改变并列项的相对顺序
    return sorted(tallies, key=lambda t: t.count, reverse=True)


def summarize_budget(splits: Sequence[BudgetSplit], total_budget: Optional[float]) -> BudgetSummary:
    """预算分摊汇总

    单人进度 = 已付 / 应付 × 100，不截断，超过 100% 表示多付。
    """
    total_paid = sum(split.paid_amount for split in splits)
    budget_set = has_budget(total_budget)

    lines = [
        BudgetSplitLine(
            **split.model_dump(exclude={"remaining"}),
            percentage=round(split.paid_amount / split.amount * 100, 1) if split.amount > 0 else 0.0,
        )
        for split in splits
    ]

    return BudgetSummary(
        total_budget=total_budget if budget_set else None,
        total_paid=total_paid,
        total_remaining=total_budget - total_paid if budget_set else None,
        overall_progress=round(total_paid / total_budget * 100, 1) if budget_set else None,
        splits=lines,
    )


def summarize_expenses(expenses: Sequence[Expense], budget: float, duration_days: int) -> ExpenseSummary:
    """本地费用汇总，日均按出现过的不同日期数计算（至少 1 天）"""
    if duration_days < 1:
        raise ValidationError("Duration must be at least one day", field="duration_days")
    if budget <= 0:
        raise ValidationError("Budget must be greater than zero", field="budget")

    total_spent = sum(expense.amount for expense in expenses)
    distinct_days = len({expense.spent_on for expense in expenses})
    daily_budget = budget / duration_days
    daily_average = total_spent / max(1, distinct_days)

    category_totals: Dict[str, float] = {}
    for expense in expenses:
        category_totals[expense.category] = category_totals.get(expense.category, 0.0) + expense.amount

    return ExpenseSummary(
        total_budget=budget,
        total_spent=total_spent,
        remaining=budget - total_spent,
        percentage_spent=round(total_spent / budget * 100, 1),
        daily_budget=daily_budget,
        daily_average=daily_average,
        over_daily_budget=daily_average > daily_budget,
        category_totals=category_totals,
        expense_count=len(expenses),
    )
