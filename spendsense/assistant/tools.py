"""Assistant Tools - function calling definitions, registry and dispatcher.

This module defines the read-only expense tools the model can call, the
registry that maps tool names to executors, and the dispatcher that runs a
single tool call on behalf of the authenticated user.
"""
import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from spendsense.assistant.errors import ToolExecutionError, UnknownToolError
from spendsense.assistant.schemas import ToolCallRequest, ToolResult
from spendsense.data.expenses import queries

logger = logging.getLogger(__name__)


# Argument every executor is scoped by. Always overwritten with the caller's id.
IDENTITY_FIELD = "user_id"

DEFAULT_CURRENCY = "USD"

ToolExecutor = Callable[[AsyncSession, Dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class ToolDefinition:
    """A named tool: what it does, what it accepts, and how to run it."""
    name: str
    description: str
    parameters: Dict[str, Any]
    executor: ToolExecutor = field(repr=False, compare=False)

    def to_function_schema(self) -> Dict[str, Any]:
        """OpenAI-style function tool schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": json.loads(json.dumps(self.parameters)),
            },
        }


class ToolRegistry:
    """Immutable catalogue of tools keyed by name."""

    def __init__(self, tools: Iterable[ToolDefinition]):
        by_name: Dict[str, ToolDefinition] = {}
        for tool in tools:
            if tool.name in by_name:
                raise ValueError(f"Tool '{tool.name}' is already registered")
            by_name[tool.name] = tool
        self._tools = MappingProxyType(by_name)

    def get(self, name: str) -> ToolDefinition:
        """Look up a tool. Raises UnknownToolError if it is not registered."""
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def names(self) -> List[str]:
        return list(self._tools)

    def schemas(self) -> List[Dict[str, Any]]:
        """Full catalogue in the shape the completion endpoint expects."""
        return [tool.to_function_schema() for tool in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


# ============================================================================
# EXECUTORS
# ============================================================================

def _parse_date(args: Dict[str, Any], key: str) -> Optional[date]:
    value = args.get(key)
    if value in (None, ""):
        return None
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValueError(f"{key} must be a date in YYYY-MM-DD format, got {value!r}") from None


async def _get_user_expenses(db: AsyncSession, args: Dict[str, Any]) -> List[Dict[str, Any]]:
    """All expenses, or only those in [start_date, end_date] when both are given."""
    start_date = _parse_date(args, "start_date")
    end_date = _parse_date(args, "end_date")

    if start_date and end_date:
        return await queries.list_expenses_in_range(db, args[IDENTITY_FIELD], start_date, end_date)
    return await queries.list_expenses(db, args[IDENTITY_FIELD])


async def _get_expenses_with_categories(db: AsyncSession, args: Dict[str, Any]) -> List[Dict[str, Any]]:
    return await queries.list_expenses_with_categories(db, args[IDENTITY_FIELD])


async def _get_expense_summary(db: AsyncSession, args: Dict[str, Any]) -> Dict[str, float]:
    summary = await queries.summarize_by_category(db, args[IDENTITY_FIELD])
    return {name: round(amount, 2) for name, amount in summary.items()}


async def _get_total_expenses(db: AsyncSession, args: Dict[str, Any]) -> Dict[str, Any]:
    total = await queries.total_expenses(db, args[IDENTITY_FIELD])
    return {"total": round(total, 2), "currency": DEFAULT_CURRENCY}


async def _get_user_categories(db: AsyncSession, args: Dict[str, Any]) -> List[Dict[str, Any]]:
    return await queries.list_categories(db, args[IDENTITY_FIELD])


# ============================================================================
# TOOL CATALOGUE
# ============================================================================

def _no_parameters() -> Dict[str, Any]:
    return {"type": "object", "properties": {}, "required": []}


EXPENSE_TOOLS = [
    ToolDefinition(
        name="get_user_expenses",
        description="Retrieve the user's expenses, optionally limited to a date range. Use this for questions about specific purchases or spending in a period.",
        parameters={
            "type": "object",
            "properties": {
                "start_date": {
                    "type": "string",
                    "description": "Optional start date in YYYY-MM-DD format (inclusive). Only applied together with end_date."
                },
                "end_date": {
                    "type": "string",
                    "description": "Optional end date in YYYY-MM-DD format (inclusive). Only applied together with start_date."
                },
            },
            "required": []
        },
        executor=_get_user_expenses,
    ),
    ToolDefinition(
        name="get_expenses_with_categories",
        description="Get all of the user's expenses together with the name of each expense's category.",
        parameters=_no_parameters(),
        executor=_get_expenses_with_categories,
    ),
    ToolDefinition(
        name="get_expense_summary",
        description="Get the user's total spending grouped by category name. Expenses without a category are reported as 'Uncategorized'.",
        parameters=_no_parameters(),
        executor=_get_expense_summary,
    ),
    ToolDefinition(
        name="get_total_expenses",
        description="Calculate the total amount of all of the user's expenses.",
        parameters=_no_parameters(),
        executor=_get_total_expenses,
    ),
    ToolDefinition(
        name="get_user_categories",
        description="Get all expense categories the user has defined.",
        parameters=_no_parameters(),
        executor=_get_user_categories,
    ),
]

TOOL_REGISTRY = ToolRegistry(EXPENSE_TOOLS)


# ============================================================================
# TOOL DISPATCHER
# ============================================================================

def parse_tool_arguments(call: ToolCallRequest) -> Dict[str, Any]:
    """Decode the model's JSON arguments. An empty string means no arguments."""
    raw = (call.arguments_json or "").strip()
    if not raw:
        return {}

    try:
        args = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ToolExecutionError(call.tool_name, f"arguments are not valid JSON ({e.msg})") from e

    if args is None:
        return {}
    if not isinstance(args, dict):
        raise ToolExecutionError(call.tool_name, "arguments must be a JSON object")
    return args


def serialize_tool_payload(tool_name: str, payload: Any) -> str:
    """Render an executor's result as JSON text for the transcript."""
    try:
        return json.dumps(payload, indent=2, default=str)
    except (TypeError, ValueError) as e:
        # Non-string keys raise TypeError, circular references ValueError
        raise ToolExecutionError(tool_name, f"result is not JSON serializable ({e})") from e


class ToolDispatcher:
    """
    Executes one tool call safely.

    Model-supplied arguments are untrusted: the identity field is replaced with
    the caller's id before the executor sees them. Every call gets its own
    database session so calls from the same turn can run concurrently. Failures
    never escape; they come back as a ToolResult carrying an error description.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        session_factory: Callable[[], Any],
        tool_timeout_seconds: Optional[float] = None,
    ):
        self.registry = registry
        self.session_factory = session_factory
        self.tool_timeout_seconds = tool_timeout_seconds

    async def dispatch(self, call: ToolCallRequest, user_id: str) -> ToolResult:
        try:
            payload = await self._execute(call, user_id)
            content = serialize_tool_payload(call.tool_name, payload)
        except (UnknownToolError, ToolExecutionError) as e:
            logger.warning(f"Tool call {call.id} ({call.tool_name}) failed: {e}")
            return ToolResult.failure(call.id, call.tool_name, str(e))

        logger.info(f"Tool call {call.id} ({call.tool_name}) succeeded for user {user_id}")
        return ToolResult(
            tool_call_id=call.id,
            tool_name=call.tool_name,
            ok=True,
            payload=payload,
            content=content,
        )

    async def _execute(self, call: ToolCallRequest, user_id: str) -> Any:
        tool = self.registry.get(call.tool_name)

        args = parse_tool_arguments(call)
        args[IDENTITY_FIELD] = user_id

        try:
            if self.tool_timeout_seconds:
                return await asyncio.wait_for(
                    self._run_executor(tool, args),
                    timeout=self.tool_timeout_seconds,
                )
            return await self._run_executor(tool, args)
        except asyncio.TimeoutError:
            raise ToolExecutionError(
                tool.name, f"timed out after {self.tool_timeout_seconds:g}s"
            ) from None
        except ToolExecutionError:
            raise
        except Exception as e:
            raise ToolExecutionError(tool.name, str(e) or e.__class__.__name__) from e

    async def _run_executor(self, tool: ToolDefinition, args: Dict[str, Any]) -> Any:
        async with self.session_factory() as db:
            return await tool.executor(db, args)
