"""Assistant Orchestrator - drives one question to a final answer.

The orchestrator:
1. Builds the transcript (system prompt, prior history, the new question)
2. Sends it to the completion endpoint together with the tool catalogue
3. If the model asks for tools, echoes its request into the transcript,
   runs every requested call concurrently and appends one tool message per call
4. Repeats from step 2 until the model answers in text or the iteration
   bound is reached
5. Returns the answer and the distinct tools used
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from spendsense.assistant.completion import CompletionEndpoint
from spendsense.assistant.errors import AssistantError, RunTimeoutError
from spendsense.assistant.prompt_builder import SYSTEM_PROMPT, build_messages
from spendsense.assistant.schemas import (
    CompletionTurn,
    HistoryMessage,
    RunResult,
    RunState,
)
from spendsense.assistant.tools import ToolDispatcher, ToolRegistry

logger = logging.getLogger(__name__)


MAX_TOOL_ITERATIONS = 5  # Maximum number of model <-> tool round-trips

FALLBACK_ANSWER = "I apologize, but I encountered an issue processing your request."


@dataclass
class OrchestrationRun:
    """Mutable state of a single run. Never shared between runs."""
    user_id: str
    messages: List[Dict[str, Any]] = field(default_factory=list)
    state: RunState = RunState.INIT
    iterations: int = 0
    hit_iteration_limit: bool = False
    # dict keeps first-use order and acts as an ordered set
    _tools_used: Dict[str, None] = field(default_factory=dict)

    def record_tool(self, name: str) -> None:
        self._tools_used.setdefault(name, None)

    @property
    def tools_used(self) -> List[str]:
        return list(self._tools_used)


class AssistantOrchestrator:
    """
    Tool-calling conversation loop.

    Dependencies are passed in explicitly and are safe to share between
    concurrent runs: the registry is immutable and the completion client and
    dispatcher hold no per-run state.
    """

    def __init__(
        self,
        completion: CompletionEndpoint,
        registry: ToolRegistry,
        dispatcher: ToolDispatcher,
        max_iterations: int = MAX_TOOL_ITERATIONS,
        run_timeout_seconds: Optional[float] = None,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        if max_iterations < 0:
            raise ValueError("max_iterations must be >= 0")
        self.completion = completion
        self.registry = registry
        self.dispatcher = dispatcher
        self.max_iterations = max_iterations
        self.run_timeout_seconds = run_timeout_seconds
        self.system_prompt = system_prompt

    async def run(
        self,
        user_id: str,
        user_message: str,
        conversation_history: Optional[Sequence[HistoryMessage]] = None,
    ) -> RunResult:
        """
        Answer one question for `user_id`.

        Raises CompletionEndpointError if the completion endpoint fails and
        RunTimeoutError if the run outlives its deadline. Tool failures never
        raise; the model sees them as tool messages.
        """
        run = OrchestrationRun(user_id=user_id)
        run.messages = build_messages(user_message, conversation_history, self.system_prompt)

        logger.info(f"Assistant run started for user {user_id}")

        try:
            if self.run_timeout_seconds:
                result = await asyncio.wait_for(self._drive(run), timeout=self.run_timeout_seconds)
            else:
                result = await self._drive(run)
        except asyncio.TimeoutError:
            run.state = RunState.FAILED
            logger.error(f"Assistant run for user {user_id} timed out after {run.iterations} iterations")
            raise RunTimeoutError(self.run_timeout_seconds) from None
        except AssistantError as e:
            run.state = RunState.FAILED
            logger.error(f"Assistant run for user {user_id} failed: {e}")
            raise

        logger.info(
            f"Assistant run for user {user_id} finished after {result.iterations} iterations, "
            f"tools used: {result.tools_used}"
        )
        return result

    async def _drive(self, run: OrchestrationRun) -> RunResult:
        tools = self.registry.schemas()

        turn = await self._await_model(run, tools)

        while turn.tool_calls:
            if run.iterations >= self.max_iterations:
                run.hit_iteration_limit = True
                logger.warning(
                    f"Iteration limit ({self.max_iterations}) reached for user {run.user_id} "
                    f"with {len(turn.tool_calls)} tool call(s) still pending"
                )
                break

            run.iterations += 1
            await self._dispatch_tools(run, turn)
            turn = await self._await_model(run, tools)

        run.state = RunState.DONE
        answer = (turn.content or "").strip() or FALLBACK_ANSWER

        return RunResult(
            answer=answer,
            tools_used=run.tools_used,
            iterations=run.iterations,
            state=run.state,
            hit_iteration_limit=run.hit_iteration_limit,
        )

    async def _await_model(self, run: OrchestrationRun, tools: List[Dict[str, Any]]) -> CompletionTurn:
        run.state = RunState.AWAITING_MODEL
        return await self.completion.complete(run.messages, tools)

    async def _dispatch_tools(self, run: OrchestrationRun, turn: CompletionTurn) -> None:
        run.state = RunState.DISPATCHING_TOOLS

        # The endpoint expects to see its own tool request before the results
        run.messages.append(turn.assistant_message())

        results = await asyncio.gather(*(
            self.dispatcher.dispatch(call, run.user_id)
            for call in turn.tool_calls
        ))

        for call, result in zip(turn.tool_calls, results):
            run.record_tool(call.tool_name)
            run.messages.append(result.to_message())
