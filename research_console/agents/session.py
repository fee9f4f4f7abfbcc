"""
Session bootstrapper: orchestration context, the long-lived agent session,
and registration of its external tool server.
"""
from __future__ import annotations

import asyncio
import logging
import os
import uuid
from contextlib import AsyncExitStack, aclosing
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from langchain.agents import create_agent
from langchain_core.messages import AIMessage, HumanMessage, ToolMessage
from langchain_core.tools import BaseTool
from langchain_mcp_adapters.client import MultiServerMCPClient
from langchain_mcp_adapters.tools import load_mcp_tools
from langgraph.checkpoint.memory import MemorySaver

from ..config import Credentials, Settings
from ..errors import BootstrapError, TaskExecutionError
from ..tools.events import Event, Task, to_event
from ..tools.llm import PROVIDER_ERRORS, ModelProvider, provider_from
from ..tools.mcp import ToolServer, retrieval_server

logger = logging.getLogger(__name__)

INTERRUPTED_TOOL_RESULT = "Tool call interrupted before it returned a result."


@dataclass(frozen=True)
class OrchestrationContext:
    working_directory: Path


def create_context(working_directory: Union[str, Path, None] = None) -> OrchestrationContext:
    """
    Root the orchestration context at a readable, writable directory.
    """
    root = Path(working_directory or os.getcwd()).resolve()
    if not root.is_dir():
        raise BootstrapError(f"working directory does not exist: {root}")
    if not os.access(root, os.R_OK | os.W_OK):
        raise BootstrapError(f"working directory is not readable and writable: {root}")
    return OrchestrationContext(working_directory=root)


class ResearchSession:
    """
    One reasoning-provider binding, its registered tool servers, and the
    conversational memory accumulated across tasks.

    Memory lives in a LangGraph checkpointer under a single thread id, so
    every agent built for this session (one per model id) shares it. Tasks
    run one at a time.
    """

    def __init__(
        self,
        context: OrchestrationContext,
        provider: ModelProvider,
        thread_id: Optional[str] = None,
    ) -> None:
        self.context = context
        self.provider = provider
        self.thread_id = thread_id or uuid.uuid4().hex
        self.checkpointer = MemorySaver()
        self.servers: Dict[str, ToolServer] = {}
        self.tools: List[BaseTool] = []
        self._agents: Dict[str, Any] = {}
        self._exit_stack = AsyncExitStack()
        self._lock = asyncio.Lock()

    async def register_server(self, server: ToolServer) -> List[BaseTool]:
        """
        Launch the server subprocess, complete the MCP handshake, and load its
        tools. The subprocess stays up until `aclose`.
        """
        if server.id in self.servers:
            raise BootstrapError(f"tool server already registered: {server.id}")
        client = MultiServerMCPClient({server.id: server.connection()})
        try:
            mcp_session = await self._exit_stack.enter_async_context(client.session(server.id))
            tools = await load_mcp_tools(mcp_session)
        except Exception as exc:
            raise BootstrapError(f"failed to register tool server {server.id!r}: {exc}") from exc
        self.servers[server.id] = server
        self.tools.extend(tools)
        self._agents.clear()
        logger.info("Registered tool server %s with %d tools", server.id, len(tools))
        return tools

    def _agent_for(self, model_id: str) -> Any:
        agent = self._agents.get(model_id)
        if agent is None:
            agent = create_agent(
                self.provider.chat_model(model_id),
                tools=self.tools,
                checkpointer=self.checkpointer,
            )
            self._agents[model_id] = agent
        return agent

    async def submit(self, task: Task) -> AsyncIterator[Event]:
        """
        Run one task and yield its events in the order the agent produces them.
        """
        if not task.model_id or not task.model_id.strip():
            raise TaskExecutionError("model id must be a non-empty string")
        async with self._lock:
            try:
                agent = self._agent_for(task.model_id)
            except (ValueError, TypeError) as exc:
                raise TaskExecutionError(f"cannot bind model {task.model_id!r}: {exc}") from exc
            config = {"configurable": {"thread_id": self.thread_id}}
            completed = False
            try:
                async with aclosing(
                    agent.astream(
                        {"messages": [HumanMessage(content=task.instruction)]},
                        config,
                        stream_mode="messages",
                    )
                ) as stream:
                    async for message, metadata in stream:
                        yield to_event(message, metadata)
                completed = True
            except PROVIDER_ERRORS as exc:
                raise TaskExecutionError(str(exc) or type(exc).__name__) from exc
            finally:
                if not completed:
                    await self._answer_open_tool_calls(agent, config)

    async def _answer_open_tool_calls(self, agent: Any, config: Dict[str, Any]) -> None:
        """
        After an interrupted task, give every tool call left without a result
        an error result, so the thread stays valid for the provider.
        """
        try:
            state = await agent.aget_state(config)
            messages = (state.values or {}).get("messages", [])
            answered = {m.tool_call_id for m in messages if isinstance(m, ToolMessage)}
            last_ai = next((m for m in reversed(messages) if isinstance(m, AIMessage)), None)
            if last_ai is None:
                return
            open_calls = [call for call in last_ai.tool_calls if call["id"] not in answered]
            if not open_calls:
                return
            await agent.aupdate_state(
                config,
                {
                    "messages": [
                        ToolMessage(
                            content=INTERRUPTED_TOOL_RESULT,
                            tool_call_id=call["id"],
                            name=call["name"],
                            status="error",
                        )
                        for call in open_calls
                    ]
                },
                as_node="tools",
            )
            logger.warning("Closed %d interrupted tool call(s) on thread %s", len(open_calls), self.thread_id)
        except Exception:
            # The task's own failure is already propagating.
            logger.exception("Could not repair thread %s after an interrupted task", self.thread_id)

    async def aclose(self) -> None:
        await self._exit_stack.aclose()
        logger.info("Session %s closed", self.thread_id)


async def bootstrap_session(cfg: Settings, creds: Credentials) -> ResearchSession:
    """
    Build the context and session, then register the retrieval tool server.
    Any failure is fatal to the caller.
    """
    context = create_context(cfg.working_directory)
    session = ResearchSession(context, provider_from(cfg, creds))
    try:
        await session.register_server(retrieval_server(cfg, creds))
    except BootstrapError:
        await session.aclose()
        raise
    logger.info("Session ready (provider=%s, model=%s)", cfg.llm_provider, cfg.model_id)
    return session
