"""Expense assistant.

Answers natural-language questions about a user's expenses. The model may
call read-only data tools any number of times (bounded) before answering:
- tools: tool catalogue, registry and dispatcher
- orchestrator: the model <-> tool conversation loop
- completion: the OpenAI-compatible completion endpoint client
"""
