"""All data models, importable from one place."""
from spendsense.data.users.models import User
from spendsense.data.expenses.models import Category, Expense
from spendsense.data.ai_queries.models import AIQuery

__all__ = ["User", "Category", "Expense", "AIQuery"]
