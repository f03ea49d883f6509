"""FastAPI dependencies for the assistant."""
from functools import lru_cache

from fastapi import HTTPException, status

from spendsense.config import settings
from spendsense.database import AsyncSessionLocal
from spendsense.assistant.completion import GroqCompletionClient
from spendsense.assistant.errors import MissingCredentialError
from spendsense.assistant.orchestrator import AssistantOrchestrator
from spendsense.assistant.tools import TOOL_REGISTRY, ToolDispatcher


def build_orchestrator() -> AssistantOrchestrator:
    """Wire an orchestrator from settings. Raises MissingCredentialError without a key."""
    completion = GroqCompletionClient.from_settings(settings)
    dispatcher = ToolDispatcher(
        registry=TOOL_REGISTRY,
        session_factory=AsyncSessionLocal,
        tool_timeout_seconds=settings.ASSISTANT_TOOL_TIMEOUT_SECONDS,
    )
    return AssistantOrchestrator(
        completion=completion,
        registry=TOOL_REGISTRY,
        dispatcher=dispatcher,
        max_iterations=settings.ASSISTANT_MAX_TOOL_ITERATIONS,
        run_timeout_seconds=settings.ASSISTANT_RUN_TIMEOUT_SECONDS,
    )


@lru_cache(maxsize=1)
def _shared_orchestrator() -> AssistantOrchestrator:
    return build_orchestrator()


def get_orchestrator() -> AssistantOrchestrator:
    """
    Dependency returning the process-wide orchestrator.

    Raises 500 if the completion endpoint is not configured.
    """
    try:
        return _shared_orchestrator()
    except MissingCredentialError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )
