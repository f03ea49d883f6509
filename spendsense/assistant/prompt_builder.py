"""Prompt Builder - system prompt and initial transcript assembly."""
from typing import Any, Dict, List, Optional, Sequence

from spendsense.assistant.schemas import ChatMessage, HistoryMessage


SYSTEM_PROMPT = """You are an expense tracking assistant. You help users understand their spending patterns, analyze their expenses, and answer questions about their own financial data.

## TOOLS
You can retrieve the user's data with these tools:
- get_user_expenses: the user's expenses, optionally limited to a start_date/end_date range (YYYY-MM-DD)
- get_expenses_with_categories: expenses together with their category names
- get_expense_summary: total spending grouped by category
- get_total_expenses: the total amount of all expenses
- get_user_categories: the user's expense categories

## HOW TO ANSWER
1. Call the tools you need before answering; never guess amounts.
2. Give clear, concise answers with specific numbers when available.
3. Point out useful observations about spending patterns.
4. Format currency values appropriately (e.g. $1,234.50).
5. If a tool returns an error, explain briefly what you could not look up.
6. Be helpful and conversational.

## SCOPE
You can only access data belonging to the user making the request. Never ask for or refer to other users' data."""


def build_messages(
    user_message: str,
    conversation_history: Optional[Sequence[HistoryMessage]] = None,
    system_prompt: str = SYSTEM_PROMPT,
) -> List[Dict[str, Any]]:
    """
    Build the initial transcript: system prompt, prior history, then the new question.

    History is replayed verbatim and in order.
    """
    messages = [ChatMessage(role="system", content=system_prompt).to_payload()]

    for msg in conversation_history or []:
        messages.append(ChatMessage(role=msg.role, content=msg.content).to_payload())

    messages.append(ChatMessage(role="user", content=user_message.strip()).to_payload())
    return messages
