"""Saved assistant questions and answers."""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from spendsense.database import Base
from spendsense.data.base import generate_id


class AIQuery(Base):
    """One question asked to the assistant and the answer it gave."""

    __tablename__ = "ai_queries"

    id = Column(String, primary_key=True, default=lambda: generate_id("aiq"))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    query_text = Column(Text, nullable=True)
    ai_response = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="ai_queries")
