"""
Interactive entry point for the Research Console.
Validates credentials, bootstraps the session, then runs the command loop.
"""
from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Callable, Optional

from dotenv import load_dotenv

from .agents.runner import run_task
from .agents.session import bootstrap_session
from .config import Credentials, Settings, configure_logging, load_settings, require_credentials
from .errors import BootstrapError, TaskExecutionError

logger = logging.getLogger(__name__)

PROMPT = "\nresearcher@console:~$ "
RULE = "-" * 50


def banner(cfg: Settings) -> str:
    return "\n".join(
        [
            RULE,
            "RESEARCH CONSOLE",
            "System Status: ONLINE",
            f"Model Connected: {cfg.model_id}",
            RULE,
            "Type your research command below (or 'exit' to quit).",
        ]
    )


def is_exit(line: Optional[str]) -> bool:
    return not line or line.strip().lower() == "exit"


async def repl(
    session: Any,
    cfg: Settings,
    read_line: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> int:
    """
    Prompt, run, print, repeat. Task failures are reported and the loop
    continues; empty input, `exit`, or end of input stops it.
    """
    write(banner(cfg))
    while True:
        try:
            line = await asyncio.to_thread(read_line, PROMPT)
        except EOFError:
            line = None
        if is_exit(line):
            write("System shutting down...")
            return 0

        write("[Processing Request...]")
        try:
            result = await run_task(session, line, cfg.model_id, timeout=cfg.task_timeout_seconds,
                                    fallback=cfg.fallback_result)
        except TaskExecutionError as exc:
            logger.debug("Task failed", exc_info=True)
            write(f"\n[System Error] {exc}")
        else:
            write("\n" + result)
        write("\n[Ready]")


async def _serve(cfg: Settings, creds: Credentials) -> int:
    try:
        session = await bootstrap_session(cfg, creds)
    except BootstrapError as exc:
        logger.error("Startup failed: %s", exc)
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    try:
        return await repl(session, cfg)
    finally:
        await session.aclose()


def cli() -> int:
    load_dotenv()
    cfg = load_settings()
    configure_logging(cfg)
    creds = require_credentials(cfg)
    return asyncio.run(_serve(cfg, creds))


if __name__ == "__main__":
    sys.exit(cli())
