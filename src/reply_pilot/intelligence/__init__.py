"""LLM-powered reply composition."""

from .composer import CompletionParameters, ReplyComposer
from .llm import CompletionError, OpenAIChatClient
from .prompts import build_reply_prompt

__all__ = [
    "CompletionError",
    "CompletionParameters",
    "OpenAIChatClient",
    "ReplyComposer",
    "build_reply_prompt",
]
