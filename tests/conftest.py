from datetime import date

import pytest

from cashflow_forecasting.config import TestingConfig
from cashflow_forecasting.data import GoalRecord, PeriodType, Transaction, TransactionType
from cashflow_forecasting.forecasting import Prediction
from cashflow_forecasting.simulation import CashFlowModel, MonteCarloSimulator

NOW = date(2025, 6, 30)


class InMemoryTransactionStore:
    def __init__(self, transactions=None):
        self.transactions = list(transactions or [])
        self.queries = []

    def add(self, txn_date, amount, txn_type="expense", category=None):
        self.transactions.append(
            Transaction(date=txn_date, amount=amount, type=TransactionType(txn_type), category=category)
        )

    def query(self, user_scope, start, end, category=None):
        self.queries.append((user_scope, start, end, category))
        return sorted(
            (
                t for t in self.transactions
                if start <= t.date < end and (category is None or t.category == category)
            ),
            key=lambda t: t.date
        )


class InMemoryGoalStore:
    def __init__(self, goals=None):
        self.goals = list(goals or [])

    def find_active_goals(self, user_scope):
        return list(self.goals)


def make_predictions(amounts, start=date(2025, 7, 30), spread=0.1):
    return [
        Prediction(
            date=start + PeriodType.MONTHLY.increment(i),
            predicted_amount=amount,
            confidence_lower=round(amount * (1 - spread), 2),
            confidence_upper=round(amount * (1 + spread), 2)
        )
        for i, amount in enumerate(amounts)
    ]


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def testing_config():
    return TestingConfig


@pytest.fixture
def simulator():
    return MonteCarloSimulator(TestingConfig, workers=2, batch_size=50)


@pytest.fixture
def burning_model():
    """Spends more than it earns; most paths run out within a few months."""
    return CashFlowModel(
        current_balance=3000,
        daily_income_mean=100,
        daily_income_std=20,
        daily_expense_mean=150,
        daily_expense_std=30
    )


@pytest.fixture
def healthy_model():
    return CashFlowModel(
        current_balance=1_000_000,
        daily_income_mean=300,
        daily_income_std=20,
        daily_expense_mean=100,
        daily_expense_std=10
    )


@pytest.fixture
def transaction_store():
    return InMemoryTransactionStore()


@pytest.fixture
def goal_store():
    return InMemoryGoalStore([
        GoalRecord(id="emergency", target_amount=5000, current_amount=4000,
                   target_date=date(2026, 6, 30), title="Emergency fund"),
        GoalRecord(id="car", target_amount=20000, current_amount=1000,
                   target_date=date(2025, 12, 31), title="Car"),
        GoalRecord(id="laptop", target_amount=1500, current_amount=1500,
                   target_date=date(2025, 9, 1), title="Laptop"),
    ])
