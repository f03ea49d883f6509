"""Expense and Category models."""
from sqlalchemy import Column, String, DateTime, Date, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from spendsense.database import Base
from spendsense.data.base import generate_id


class Category(Base):
    """A user-defined expense category (e.g. "Groceries", "Rent")."""

    __tablename__ = "categories"

    id = Column(String, primary_key=True, default=lambda: generate_id("cat"))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    user = relationship("User", back_populates="categories")
    expenses = relationship("Expense", back_populates="category")


class Expense(Base):
    """A single expense entry."""

    __tablename__ = "expenses"

    id = Column(String, primary_key=True, default=lambda: generate_id("exp"))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(String, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)

    amount = Column(Numeric(precision=12, scale=2), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(Date, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    user = relationship("User", back_populates="expenses")
    category = relationship("Category", back_populates="expenses")
