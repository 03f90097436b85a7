"""
Spending reports built with pandas: per-category breakdowns and CSV export
"""
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pandas as pd

from errors import ValidationError

CSV_COLUMNS = ["id", "date", "description", "category", "amount"]
MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")


def parse_timestamp(value) -> datetime:
    """
    Parse an ISO-8601 date or datetime into an aware UTC datetime.
    Naive values are taken as UTC; a bare date means midnight.
    """
    if not isinstance(value, str):
        raise ValueError(f"Expected an ISO-8601 string, got {type(value).__name__}")
    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def expenses_frame(expenses: List[Dict]) -> pd.DataFrame:
    """DataFrame of expenses with a parsed UTC timestamp column 'ts'"""
    df = pd.DataFrame(expenses, columns=CSV_COLUMNS)
    df["amount"] = df["amount"].astype(float)
    # Same parser as validation, so every stored date converts
    df["ts"] = pd.to_datetime(df["date"].map(parse_timestamp), utc=True)
    return df


def parse_month(month: str) -> pd.Period:
    if not isinstance(month, str) or not MONTH_PATTERN.match(month):
        raise ValidationError("Month must use the YYYY-MM format")
    try:
        return pd.Period(month, freq="M")
    except ValueError:
        raise ValidationError("Month must use the YYYY-MM format")


def filter_month(df: pd.DataFrame, period: pd.Period) -> pd.DataFrame:
    start = period.start_time.tz_localize("UTC")
    end = period.end_time.tz_localize("UTC")
    return df[(df["ts"] >= start) & (df["ts"] <= end)]


def _category_summary(df: pd.DataFrame) -> List[Dict]:
    if df.empty:
        return []
    cat_group = df.groupby("category")["amount"].agg(["sum", "count"]).reset_index()
    cat_group.columns = ["category", "total", "count"]
    records = cat_group.sort_values(["total", "category"], ascending=[False, True]).to_dict("records")
    return [
        {"category": str(r["category"]), "total": float(r["total"]), "count": int(r["count"])}
        for r in records
    ]


def category_totals(expenses: List[Dict]) -> List[Dict]:
    """Total and count per category, largest total first"""
    if not expenses:
        return []
    return _category_summary(expenses_frame(expenses))


def monthly_report(expenses: List[Dict], month: str) -> Dict:
    """
    Breakdown of one calendar month

    Args:
        expenses: The user's expense records
        month: Month in YYYY-MM format

    Returns:
        Dict with month, total, count and byCategory
    """
    period = parse_month(month)
    month_df = filter_month(expenses_frame(expenses), period)

    return {
        "month": str(period),
        "total": float(month_df["amount"].sum()) if not month_df.empty else 0.0,
        "count": int(len(month_df)),
        "byCategory": _category_summary(month_df),
    }


def export_csv(expenses: List[Dict], month: Optional[str] = None) -> str:
    """CSV of the expenses, newest first, optionally limited to one YYYY-MM month"""
    df = expenses_frame(expenses)
    if month:
        df = filter_month(df, parse_month(month))
    df = df.sort_values(["ts", "id"], ascending=False)
    return df[CSV_COLUMNS].to_csv(index=False)
