"""
Instruction templates for the HTTP analysis and follow-up endpoints.
"""
from __future__ import annotations

import re
from typing import Optional

_URL_RE = re.compile(r"^(https?://|www\.)\S+$", re.IGNORECASE)


def looks_like_url(text: str) -> bool:
    return bool(_URL_RE.match(text.strip()))


def analysis_instruction(prompt: str, tool_name: str = "firecrawl") -> str:
    """
    Report-style instruction: innovation summary, limitations, future directions.
    """
    target = prompt.strip()
    lines = [
        "Act as a Senior Researcher.",
        f'Task: Read/Search regarding "{target}".',
        f"If it is a URL, use {tool_name} to read it.",
    ]
    if looks_like_url(target):
        lines.append(f"The target is a URL: fetch its contents with the {tool_name} tools before writing.")
    lines.append(
        "Output a structured report with: 1. Innovation Summary, 2. Key Limitations, 3. Future Directions."
    )
    return "\n".join(lines)


def follow_up_instruction(question: str, context: Optional[str] = None) -> str:
    """
    Follow-up question about the last analysis. When the caller supplies the
    prior report it is embedded; otherwise the session's memory is relied on.
    """
    question = question.strip()
    if context and context.strip():
        return (
            "Here is the research report you produced earlier:\n"
            f"{context.strip()}\n\n"
            f'Regarding that report, answer this user question: "{question}". '
            "Keep the answer concise and technical."
        )
    return (
        f'Regarding the research topic/paper you just analyzed, answer this user question: "{question}". '
        "Keep the answer concise and technical."
    )
