"""
Expense business rules: payload validation, sorted listing and the monthly summary
"""
import logging
import math
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from errors import ValidationError
from expense_repository import ExpenseRepository
import reports
from reports import parse_timestamp

logger = logging.getLogger(__name__)

CATEGORIES = [
    "food",
    "transport",
    "entertainment",
    "health",
    "utilities",
    "other",
]

REQUIRED_FIELDS = ("description", "amount", "category", "date")
RECENT_LIMIT = 5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def first_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_amount(value) -> float:
    if isinstance(value, bool):
        raise ValidationError("Amount must be a number")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Amount must be a number")
    if math.isnan(amount) or math.isinf(amount):
        raise ValidationError("Amount must be a number")
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    return amount


def validate_expense(payload) -> Dict:
    """
    Check an incoming create/update body and return the cleaned fields

    Raises:
        ValidationError: naming the first rule the payload breaks
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    missing = [name for name in REQUIRED_FIELDS if _is_blank(payload.get(name))]
    if missing:
        raise ValidationError(f"All fields are required (missing: {', '.join(missing)})")

    description = payload["description"]
    if not isinstance(description, str):
        raise ValidationError("Description must be text")

    amount = parse_amount(payload["amount"])

    category = payload["category"]
    if not isinstance(category, str) or category.strip().lower() not in CATEGORIES:
        raise ValidationError(f"Category must be one of: {', '.join(CATEGORIES)}")

    date = payload["date"]
    try:
        parse_timestamp(date)
    except ValueError:
        raise ValidationError("Date must be an ISO-8601 date or timestamp")

    return {
        "description": description.strip(),
        "amount": amount,
        "category": category.strip().lower(),
        "date": date.strip(),
    }


def sort_by_date(expenses: List[Dict]) -> List[Dict]:
    """Most recent first; equal dates fall back to id so the order is stable"""
    return sorted(
        expenses,
        key=lambda e: (parse_timestamp(e["date"]), e["id"]),
        reverse=True,
    )


def matches(expense: Dict, query: str) -> bool:
    query = query.lower()
    return query in expense["description"].lower() or query in expense["category"].lower()


class ExpenseService:

    def __init__(self, repository: ExpenseRepository, clock: Optional[Callable[[], datetime]] = None):
        self.repository = repository
        self.clock = clock or utcnow

    def create_expense(self, user_id: str, payload) -> Dict:
        fields = validate_expense(payload)
        return self.repository.create(user_id, fields)

    def get_expense(self, user_id: str, expense_id: str) -> Dict:
        return self.repository.get(user_id, expense_id)

    def update_expense(self, user_id: str, expense_id: str, payload) -> Dict:
        # A missing record is reported before a bad payload
        self.repository.get(user_id, expense_id)
        fields = validate_expense(payload)
        return self.repository.update(user_id, expense_id, fields)

    def delete_expense(self, user_id: str, expense_id: str) -> None:
        self.repository.delete(user_id, expense_id)

    def list_expenses(self, user_id: str, query: Optional[str] = None) -> List[Dict]:
        expenses = sort_by_date(self.repository.list_by_user(user_id))
        if query and query.strip():
            expenses = [e for e in expenses if matches(e, query.strip())]
        return expenses

    def monthly_summary(self, user_id: str) -> Dict:
        """
        Dashboard numbers for the current calendar month

        Returns:
            Dict with totalMonth (sum of this month's amounts up to now),
            recentExpenses (latest five overall) and byCategory (this month)
        """
        now = self.clock().astimezone(timezone.utc)
        month_start = first_of_month(now)
        expenses = sort_by_date(self.repository.list_by_user(user_id))

        this_month = [
            e for e in expenses
            if month_start <= parse_timestamp(e["date"]) <= now
        ]
        total_month = sum((float(e["amount"]) for e in this_month), 0.0)
        logger.debug("Summary for user %s: %d expenses this month, total %s", user_id, len(this_month), total_month)

        return {
            "totalMonth": total_month,
            "recentExpenses": expenses[:RECENT_LIMIT],
            "byCategory": reports.category_totals(this_month),
        }

    def monthly_report(self, user_id: str, month: Optional[str] = None) -> Dict:
        month = month or self.clock().astimezone(timezone.utc).strftime("%Y-%m")
        return reports.monthly_report(self.repository.list_by_user(user_id), month)

    def export_csv(self, user_id: str, month: Optional[str] = None) -> str:
        return reports.export_csv(self.repository.list_by_user(user_id), month)
