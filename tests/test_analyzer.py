from datetime import date

from spendwise.utils.analyzer import FinanceAnalyzer

sample_expenses = [
    {"category": "Food & Dining", "amount": 250.0, "date": "2025-11-01"},
    {"category": "Bills & Utilities", "amount": 1000.0, "date": "2025-11-02"},
    {"category": "Food & Dining", "amount": 150.0, "date": "2025-11-03"},
    {"category": "Shopping", "amount": 1200.0, "date": "2025-11-04"},
    {"category": "Food & Dining", "amount": 80.0, "date": "2025-10-20"},
]

sample_budgets = [
    {"budget_id": "b1", "category": "Food & Dining", "amount": 420.0, "month": "2025-11"},
    {"budget_id": "b2", "category": "Shopping", "amount": 1000.0, "month": "2025-11"},
    {"budget_id": "b3", "category": "Food & Dining", "amount": 300.0, "month": "2025-10"},
    {"budget_id": "b4", "category": "Travel", "amount": 0, "month": "2025-11"},
]

sample_goals = [
    {"goal_id": "g1", "name": "Laptop", "category": "Electronics", "target_amount": 1000,
     "current_amount": 800, "deadline": "2025-12-31"},
    {"goal_id": "g2", "name": "Holiday", "category": "Travel", "target_amount": 2000,
     "current_amount": 2500, "deadline": "2025-12-01"},
    {"goal_id": "g3", "name": "Emergency fund", "category": "Savings", "target_amount": 5000,
     "current_amount": 500, "deadline": "2026-06-30"},
]


def test_calculate_totals():
    analyzer = FinanceAnalyzer()
    assert analyzer.monthly_total(sample_expenses) == 2680.0
    assert analyzer.category_totals(sample_expenses)["Food & Dining"] == 480.0


def test_budget_status():
    analyzer = FinanceAnalyzer()
    statuses = {s.budget_id: s for s in analyzer.budget_status(sample_budgets, sample_expenses)}

    food = statuses["b1"]
    assert food.spent == 400.0
    assert food.remaining == 20.0
    assert food.percentage == 95.24
    assert food.state == "warning"

    assert statuses["b2"].state == "exceeded"
    assert statuses["b2"].remaining == -200.0

    # October budget only counts October spending
    assert statuses["b3"].spent == 80.0
    assert statuses["b3"].state == "ok"

    assert statuses["b4"].percentage == 0.0


def test_budget_status_is_newest_month_first():
    analyzer = FinanceAnalyzer()
    months = [s.month for s in analyzer.budget_status(sample_budgets, sample_expenses)]
    assert months == sorted(months, reverse=True)


def test_goal_progress():
    analyzer = FinanceAnalyzer()
    progress = analyzer.goal_progress(sample_goals, today=date(2025, 11, 1))

    assert [p.goal_id for p in progress] == ["g2", "g1", "g3"]
    assert progress[0].percentage == 100.0
    assert progress[0].badge == "Achieved!"
    assert progress[1].badge == "Almost There!"
    assert progress[1].days_left == 60
    assert progress[2].badge == "Getting Started"
