"""Shared test fixtures for pytest."""
import asyncio
from typing import List, Optional

import pytest

from research_console.config import Credentials, Settings
from research_console.tools.events import Event, EventKind


class ScriptedSession:
    """Stands in for ResearchSession: replays a fixed event script per task."""

    def __init__(self, events: List[Event], error: Optional[BaseException] = None, delay: float = 0.0) -> None:
        self.events = events
        self.error = error
        self.delay = delay
        self.tasks = []
        self.closed = False

    async def submit(self, task):
        self.tasks.append(task)
        for event in self.events:
            if self.delay:
                await asyncio.sleep(self.delay)
            yield event
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed = True


def text(content: str) -> Event:
    return Event(kind=EventKind.TEXT, content=content)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(model_api_key="sk-ant-test", tool_api_key="fc-test")


@pytest.fixture
def make_session():
    """Factory for scripted sessions."""
    return ScriptedSession


@pytest.fixture
def text_event():
    return text
