"""Chat service - wraps an orchestrator run with the best-effort side steps.

Before the run the caller's user row is created if missing; after the run the
question and answer are saved. Neither step can fail the request.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from spendsense.assistant.orchestrator import AssistantOrchestrator
from spendsense.assistant.schemas import ChatRequest, ChatResponse
from spendsense.data.ai_queries.models import AIQuery
from spendsense.data.ai_queries.service import create_ai_query
from spendsense.data.users.service import ensure_user_exists

logger = logging.getLogger(__name__)


ENSURE_USER_TIMEOUT_SECONDS = 5.0


async def _ensure_user(db: AsyncSession, user_id: str) -> None:
    try:
        await asyncio.wait_for(ensure_user_exists(db, user_id), timeout=ENSURE_USER_TIMEOUT_SECONDS)
    except Exception as e:
        logger.warning(f"Failed to ensure user {user_id} exists: {e}")
        await _rollback(db)


async def _save_query(db: AsyncSession, user_id: str, query: str, response: str) -> Optional[AIQuery]:
    try:
        return await create_ai_query(db, user_id=user_id, query_text=query, ai_response=response)
    except Exception as e:
        logger.warning(f"Failed to save AI query for user {user_id}: {e}")
        await _rollback(db)
        return None


async def _rollback(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except Exception as e:
        logger.warning(f"Rollback after failed side step also failed: {e}")


async def chat(
    db: AsyncSession,
    request: ChatRequest,
    orchestrator: AssistantOrchestrator,
) -> ChatResponse:
    """
    Answer a chat request.

    The ensure-user step runs alongside the orchestrator so it never delays
    the answer; errors from the orchestrator propagate to the caller.
    """
    ensure_task = asyncio.create_task(_ensure_user(db, request.user_id))
    try:
        result = await orchestrator.run(
            user_id=request.user_id,
            user_message=request.message,
            conversation_history=request.conversation_history,
        )
    finally:
        await ensure_task

    ai_query = await _save_query(db, request.user_id, request.message, result.answer)

    return ChatResponse(
        id=ai_query.id if ai_query else str(uuid4()),
        query=request.message,
        response=result.answer,
        tools_used=result.tools_used,
        iterations=result.iterations,
        timestamp=ai_query.created_at if ai_query and ai_query.created_at else datetime.now(timezone.utc),
    )
