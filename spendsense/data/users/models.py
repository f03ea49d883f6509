"""User model."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from spendsense.database import Base
from spendsense.data.base import generate_id


class User(Base):
    """User model - the owner of expenses, categories and saved AI queries."""

    __tablename__ = "users"

    # Ids are usually issued by the external auth provider
    id = Column(String, primary_key=True, default=lambda: generate_id("user"))
    name = Column(String, nullable=True)
    email = Column(String, nullable=True, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    categories = relationship("Category", back_populates="user", cascade="all, delete-orphan")
    expenses = relationship("Expense", back_populates="user", cascade="all, delete-orphan")
    ai_queries = relationship("AIQuery", back_populates="user", cascade="all, delete-orphan")
