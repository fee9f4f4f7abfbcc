"""
Descriptor for the external tool server handed to the session at bootstrap.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple

from ..config import Credentials, Settings


@dataclass(frozen=True)
class ToolServer:
    """
    A subprocess-backed MCP server: stable id, launch command, arguments,
    and environment variables overlaid on the inherited environment.
    """

    id: str
    command: str
    args: Tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)

    def connection(self) -> Dict[str, Any]:
        """Stdio connection entry for `MultiServerMCPClient`."""
        return {
            "transport": "stdio",
            "command": self.command,
            "args": list(self.args),
            "env": dict(self.env),
        }

    def __repr__(self) -> str:
        return f"ToolServer(id={self.id!r}, command={self.command!r}, args={self.args!r}, env=<{len(self.env)} vars>)"


def retrieval_server(cfg: Settings, creds: Credentials) -> ToolServer:
    return ToolServer(
        id=cfg.tool_server_id,
        command=cfg.tool_command,
        args=tuple(cfg.tool_args),
        env={cfg.tool_key_env: creds.tool_api_key},
    )
