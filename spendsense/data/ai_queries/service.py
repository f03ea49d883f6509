"""Persistence for assistant question/answer history."""
from typing import List, Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from spendsense.data.ai_queries.models import AIQuery


async def create_ai_query(
    db: AsyncSession,
    user_id: str,
    query_text: Optional[str],
    ai_response: Optional[str],
) -> AIQuery:
    """Save a question and the assistant's answer."""
    ai_query = AIQuery(
        user_id=user_id,
        query_text=query_text,
        ai_response=ai_response,
    )
    db.add(ai_query)
    await db.commit()
    await db.refresh(ai_query)
    return ai_query


async def list_ai_queries(
    db: AsyncSession,
    user_id: str,
    limit: Optional[int] = None,
) -> List[AIQuery]:
    """Saved queries for a user, newest first, optionally capped at `limit`."""
    query = (
        select(AIQuery)
        .where(AIQuery.user_id == user_id)
        .order_by(AIQuery.created_at.desc())
    )
    if limit is not None:
        query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def search_ai_queries(db: AsyncSession, user_id: str, text: str) -> List[AIQuery]:
    """Case-insensitive search over both the question and the answer."""
    pattern = f"%{text}%"
    result = await db.execute(
        select(AIQuery)
        .where(
            AIQuery.user_id == user_id,
            or_(
                AIQuery.query_text.ilike(pattern),
                AIQuery.ai_response.ilike(pattern),
            ),
        )
        .order_by(AIQuery.created_at.desc())
    )
    return list(result.scalars().all())


async def get_ai_query(db: AsyncSession, query_id: str) -> Optional[AIQuery]:
    result = await db.execute(select(AIQuery).where(AIQuery.id == query_id))
    return result.scalar_one_or_none()


async def delete_ai_query(db: AsyncSession, query_id: str) -> bool:
    """Delete a saved query. Returns False if it did not exist."""
    ai_query = await get_ai_query(db, query_id)
    if not ai_query:
        return False

    await db.delete(ai_query)
    await db.commit()
    return True
