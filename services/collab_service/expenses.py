"""
本地费用记录
行程费用只保存在当前会话，不写入行存储
"""

import uuid
from datetime import date
from typing import Callable, List

from shared.errors import NotFound, ValidationError
from shared.models.travel import Expense, ExpenseCreate, ExpenseSummary
from shared.utils.logger import get_logger

from .aggregates import summarize_expenses

logger = get_logger(__name__)


class ExpenseTracker:
    """单次行程的费用记录器"""

    def __init__(self, budget: float, duration_days: int,
                 today: Callable[[], date] = date.today,
                 id_factory: Callable[[], str] = lambda: str(uuid.uuid4())):
        if budget <= 0:
            raise ValidationError("Budget must be greater than zero", field="budget")
        if duration_days < 1:
            raise ValidationError("Duration must be at least one day", field="duration_days")
        self.budget = budget
        self.duration_days = duration_days
        self._today = today
        self._id_factory = id_factory
        self._expenses: List[Expense] = []

    @property
    def expenses(self) -> List[Expense]:
        return list(self._expenses)

    def add(self, data: ExpenseCreate) -> Expense:
        if data.amount is None or data.amount <= 0:
            raise ValidationError("Please enter a valid amount", field="amount")

        expense = Expense(
            id=self._id_factory(),
            category=data.category,
            amount=data.amount,
            description=data.description or data.category,
            spent_on=data.spent_on or self._today(),
        )
        self._expenses.append(expense)
        logger.debug(f"记录费用 {expense.category} {expense.amount}")
        return expense

    def remove(self, expense_id: str):
        for index, expense in enumerate(self._expenses):
            if expense.id == expense_id:
                del self._expenses[index]
                return
        raise NotFound("expense", expense_id)

    def summary(self) -> ExpenseSummary:
        return summarize_expenses(self._expenses, self.budget, self.duration_days)
