"""
Event model for a running task, and conversion from LangGraph message chunks.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from langchain_core.messages import AIMessage, BaseMessage, ToolMessage


class EventKind(str, Enum):
    TEXT = "text"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    ERROR = "error"
    STATUS = "status"


@dataclass(frozen=True)
class Event:
    kind: EventKind
    content: str = ""
    name: Optional[str] = None


@dataclass(frozen=True)
class Task:
    instruction: str
    model_id: str


def message_text(content: Any) -> str:
    """
    Extract text from message content, which is either a string or a list of
    provider content blocks.
    """
    if isinstance(content, str):
        return content
    parts = []
    if isinstance(content, list):
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text") or "")
    return "".join(parts)


def to_event(message: BaseMessage, metadata: Optional[Dict[str, Any]] = None) -> Event:
    """
    Map one `stream_mode="messages"` item onto exactly one Event.
    """
    node = (metadata or {}).get("langgraph_node")
    if isinstance(message, ToolMessage):
        kind = EventKind.ERROR if getattr(message, "status", "success") == "error" else EventKind.TOOL_RESULT
        return Event(kind=kind, content=message_text(message.content), name=message.name)
    if isinstance(message, AIMessage):
        text = message_text(message.content)
        if text:
            return Event(kind=EventKind.TEXT, content=text, name=node)
        calls = getattr(message, "tool_call_chunks", None) or message.tool_calls
        if calls:
            args = calls[0].get("args")
            return Event(kind=EventKind.TOOL_USE, content=args if isinstance(args, str) else "", name=calls[0].get("name"))
    return Event(kind=EventKind.STATUS, name=node)
