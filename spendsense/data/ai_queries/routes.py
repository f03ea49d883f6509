"""AI query history API routes."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from spendsense.database import get_db
from spendsense.data.ai_queries import service
from spendsense.data.ai_queries.schemas import AIQueryResponse

router = APIRouter()


@router.get("/ai-queries", response_model=List[AIQueryResponse])
async def get_ai_queries(
    user_id: str = Query(..., min_length=1),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    search: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    """List saved assistant queries for a user.

    A non-empty `search` takes precedence over `limit`.
    """
    if search:
        return await service.search_ai_queries(db, user_id, search)
    return await service.list_ai_queries(db, user_id, limit=limit)


@router.get("/ai-queries/{query_id}", response_model=AIQueryResponse)
async def get_ai_query(query_id: str, db: AsyncSession = Depends(get_db)):
    """Get a single saved query."""
    ai_query = await service.get_ai_query(db, query_id)
    if not ai_query:
        raise HTTPException(status_code=404, detail="AI query not found")
    return ai_query


@router.delete("/ai-queries/{query_id}")
async def delete_ai_query(query_id: str, db: AsyncSession = Depends(get_db)):
    """Delete a saved query."""
    deleted = await service.delete_ai_query(db, query_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="AI query not found")
    return {"success": True, "id": query_id}
