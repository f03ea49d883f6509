#!/usr/bin/env python3
"""
Database Initialisation Script.

Creates all tables and can seed a user with demo categories and expenses so
the assistant has something to answer questions about.

Usage:
    # Create tables only
    python -m scripts.init_db

    # Create tables and seed demo data for a user
    python -m scripts.init_db --seed-user USER_ID
"""
import asyncio
import argparse
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select, func

from spendsense.database import AsyncSessionLocal, create_tables
from spendsense.data.models import Category, Expense
from spendsense.data.users.service import ensure_user_exists


DEMO_EXPENSES = {
    "Groceries": [("Weekly shop", "84.20"), ("Farmers market", "23.50")],
    "Transport": [("Monthly transit pass", "75.00"), ("Taxi", "18.40")],
    "Entertainment": [("Cinema tickets", "27.00")],
    "Utilities": [("Electricity bill", "61.35")],
}


async def seed_user(user_id: str) -> int:
    """Seed demo data for a user. Returns the number of expenses created."""
    async with AsyncSessionLocal() as db:
        await ensure_user_exists(db, user_id)

        result = await db.execute(
            select(func.count()).select_from(Expense).where(Expense.user_id == user_id)
        )
        if (result.scalar() or 0) > 0:
            print(f"User {user_id} already has expenses, skipping seed")
            return 0

        created = 0
        today = date.today()
        for category_name, items in DEMO_EXPENSES.items():
            category = Category(user_id=user_id, name=category_name)
            db.add(category)
            await db.flush()

            for offset, (description, amount) in enumerate(items):
                db.add(Expense(
                    user_id=user_id,
                    category_id=category.id,
                    amount=Decimal(amount),
                    description=description,
                    date=today - timedelta(days=3 * created + offset),
                ))
                created += 1

        # One expense without a category
        db.add(Expense(
            user_id=user_id,
            amount=Decimal("12.99"),
            description="Miscellaneous",
            date=today,
        ))
        created += 1

        await db.commit()
        return created


async def main(seed_user_id: str = None):
    await create_tables()
    print("Tables created")

    if seed_user_id:
        count = await seed_user(seed_user_id)
        print(f"Seeded {count} expenses for user {seed_user_id}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create tables and optionally seed demo data")
    parser.add_argument("--seed-user", dest="seed_user", help="Seed demo expenses for this user id")
    args = parser.parse_args()

    asyncio.run(main(args.seed_user))
