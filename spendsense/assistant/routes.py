"""Assistant API Routes.

Endpoints:
- POST /assistant/chat - Ask the assistant a question about your expenses
- GET /assistant/chat - Check whether the assistant is configured
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from spendsense.config import settings
from spendsense.database import get_db
from spendsense.assistant import schemas, service
from spendsense.assistant.completion import is_completion_configured
from spendsense.assistant.dependencies import get_orchestrator
from spendsense.assistant.errors import (
    CompletionEndpointError,
    CompletionErrorCategory,
    RunTimeoutError,
)
from spendsense.assistant.orchestrator import AssistantOrchestrator
from spendsense.middleware.rate_limit import limit_chat

logger = logging.getLogger(__name__)

router = APIRouter()


_STATUS_BY_CATEGORY = {
    CompletionErrorCategory.AUTHENTICATION: (
        status.HTTP_401_UNAUTHORIZED,
        "Invalid or missing completion API key",
    ),
    CompletionErrorCategory.RATE_LIMIT: (
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Rate limit exceeded. Please try again later.",
    ),
    CompletionErrorCategory.TIMEOUT: (
        status.HTTP_504_GATEWAY_TIMEOUT,
        "The assistant took too long to respond. Please try again.",
    ),
}


@router.post("/chat", response_model=schemas.ChatResponse)
@limit_chat
async def chat_with_assistant(
    request: Request,
    chat_request: schemas.ChatRequest,
    db: AsyncSession = Depends(get_db),
    orchestrator: AssistantOrchestrator = Depends(get_orchestrator),
):
    """
    Main assistant chat endpoint.

    The assistant may look up your expenses, categories and totals before
    answering. The response includes:
    - response: the assistant's answer
    - tools_used: the distinct data tools consulted
    - id / timestamp: the saved query record (generated if saving failed)
    """
    try:
        return await service.chat(db, chat_request, orchestrator)
    except CompletionEndpointError as e:
        status_code, detail = _STATUS_BY_CATEGORY.get(
            e.category,
            (status.HTTP_502_BAD_GATEWAY, f"Completion endpoint error: {e.message}"),
        )
        raise HTTPException(status_code=status_code, detail=detail)
    except RunTimeoutError as e:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(e))
    except Exception as e:
        logger.exception("Unexpected error in assistant chat")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error processing chat request: {str(e)}"
        )


@router.get("/chat", response_model=schemas.AssistantStatus)
async def assistant_status():
    """Health check for the assistant."""
    configured = is_completion_configured(settings)
    return schemas.AssistantStatus(
        status="ok",
        completion_configured=configured,
        message="Chat API is ready" if configured else "Completion API key not configured",
    )
