"""Read-only expense queries, always scoped to a single user.

These are the data-access operations behind the assistant's tools. Every
function returns JSON-safe structures (floats for amounts, ISO strings for
dates) so results can be handed to the completion endpoint unchanged.
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from spendsense.data.expenses.models import Category, Expense


UNCATEGORIZED = "Uncategorized"


def _iso(value: Optional[Any]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def expense_to_dict(expense: Expense) -> Dict[str, Any]:
    """Serialize an expense row."""
    return {
        "id": expense.id,
        "user_id": expense.user_id,
        "category_id": expense.category_id,
        "amount": float(expense.amount),
        "description": expense.description,
        "date": _iso(expense.date),
        "created_at": _iso(expense.created_at),
    }


def category_to_dict(category: Category) -> Dict[str, Any]:
    """Serialize a category row."""
    return {
        "id": category.id,
        "user_id": category.user_id,
        "name": category.name,
        "created_at": _iso(category.created_at),
    }


async def list_expenses(db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
    """All expenses for a user, newest first."""
    result = await db.execute(
        select(Expense)
        .where(Expense.user_id == user_id)
        .order_by(Expense.date.desc())
    )
    return [expense_to_dict(e) for e in result.scalars().all()]


async def list_expenses_in_range(
    db: AsyncSession,
    user_id: str,
    start_date: date,
    end_date: date,
) -> List[Dict[str, Any]]:
    """Expenses dated between start_date and end_date (inclusive), newest first."""
    result = await db.execute(
        select(Expense)
        .where(
            Expense.user_id == user_id,
            Expense.date >= start_date,
            Expense.date <= end_date,
        )
        .order_by(Expense.date.desc())
    )
    return [expense_to_dict(e) for e in result.scalars().all()]


async def list_expenses_with_categories(db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
    """Expenses joined with their category id and name."""
    result = await db.execute(
        select(Expense)
        .options(selectinload(Expense.category))
        .where(Expense.user_id == user_id)
        .order_by(Expense.date.desc())
    )

    rows = []
    for expense in result.scalars().all():
        row = expense_to_dict(expense)
        row["category"] = (
            {"id": expense.category.id, "name": expense.category.name}
            if expense.category is not None
            else None
        )
        rows.append(row)
    return rows


async def summarize_by_category(db: AsyncSession, user_id: str) -> Dict[str, float]:
    """Total spend per category name. Expenses without a category are grouped as Uncategorized."""
    result = await db.execute(
        select(Category.name, func.sum(Expense.amount))
        .select_from(Expense)
        .outerjoin(Category, Expense.category_id == Category.id)
        .where(Expense.user_id == user_id)
        .group_by(Category.name)
    )

    summary: Dict[str, float] = {}
    for name, amount in result.all():
        key = name or UNCATEGORIZED
        summary[key] = summary.get(key, 0.0) + float(amount or 0)
    return summary


async def total_expenses(db: AsyncSession, user_id: str) -> float:
    """Sum of all expense amounts for a user."""
    result = await db.execute(
        select(func.coalesce(func.sum(Expense.amount), 0)).where(Expense.user_id == user_id)
    )
    total = result.scalar() or Decimal("0")
    return float(total)


async def list_categories(db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
    """All categories for a user, alphabetical."""
    result = await db.execute(
        select(Category)
        .where(Category.user_id == user_id)
        .order_by(Category.name.asc())
    )
    return [category_to_dict(c) for c in result.scalars().all()]
