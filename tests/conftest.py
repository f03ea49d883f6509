"""Shared test fixtures and configuration for SpendSense backend tests."""
import json
from contextlib import asynccontextmanager
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest

from spendsense.assistant.schemas import CompletionTurn, ToolCallRequest


class ScriptedCompletion:
    """Fake completion endpoint that replays a fixed list of turns.

    An exception in the script is raised instead of returned. Every request
    is recorded with a snapshot of the transcript at call time.
    """

    def __init__(self, turns):
        self.turns = list(turns)
        self.requests: List[Dict[str, Any]] = []

    async def complete(self, messages, tools):
        self.requests.append({
            "messages": [dict(m) for m in messages],
            "tools": tools,
        })
        if not self.turns:
            raise AssertionError("Completion endpoint called more often than scripted")
        turn = self.turns.pop(0)
        if isinstance(turn, Exception):
            raise turn
        return turn


@pytest.fixture
def scripted_completion():
    """Factory for ScriptedCompletion instances."""
    return ScriptedCompletion


@pytest.fixture
def text_turn():
    def _make(content: str) -> CompletionTurn:
        return CompletionTurn(
            content=content,
            raw_message={"role": "assistant", "content": content},
        )
    return _make


@pytest.fixture
def tool_turn():
    """Build a turn requesting tools: tool_turn(("get_total_expenses", {}), ...)."""
    counter = {"n": 0}

    def _make(*calls, content=None) -> CompletionTurn:
        requests = []
        for name, args in calls:
            counter["n"] += 1
            requests.append(ToolCallRequest(
                id=f"call_{counter['n']}",
                tool_name=name,
                arguments_json=args if isinstance(args, str) else json.dumps(args),
            ))
        return CompletionTurn(content=content, tool_calls=requests)
    return _make


@pytest.fixture
def session_factory():
    """Session factory handing out a fresh MagicMock session per call."""
    sessions = []

    @asynccontextmanager
    async def _factory():
        session = MagicMock(name=f"session_{len(sessions)}")
        sessions.append(session)
        yield session

    _factory.sessions = sessions
    return _factory
