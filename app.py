"""
FastAPI server for the Research Console.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel

from research_console.agents.prompts import analysis_instruction, follow_up_instruction
from research_console.agents.runner import run_task
from research_console.agents.session import bootstrap_session
from research_console.config import (
    Credentials,
    Settings,
    configure_logging,
    load_settings,
    require_credentials,
)
from research_console.errors import TaskExecutionError

logger = logging.getLogger(__name__)

WEB_DIR = Path(__file__).resolve().parent / "research_console" / "web"

SessionFactory = Callable[[Settings, Credentials], Awaitable[Any]]


class AnalyzeRequest(BaseModel):
    prompt: str


class ChatRequest(BaseModel):
    question: str
    # Prior report, when the client has one; otherwise session memory is used.
    context: Optional[str] = None


router = APIRouter()


def get_session(request: Request) -> Any:
    return request.app.state.session


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def _run(session: Any, cfg: Settings, instruction: str) -> str:
    return await run_task(
        session,
        instruction,
        cfg.model_id,
        timeout=cfg.task_timeout_seconds,
        fallback=cfg.fallback_result,
    )


@router.get("/", include_in_schema=False)
def index() -> FileResponse:
    return FileResponse(WEB_DIR / "index.html", media_type="text/html")


@router.get("/healthz")
def healthz() -> dict:
    """Basic health check."""
    return {"status": "ok"}


@router.post("/api/analyze")
async def analyze(
    body: AnalyzeRequest,
    session: Any = Depends(get_session),
    cfg: Settings = Depends(get_settings),
):
    """
    Run a structured analysis of a topic or paper URL.
    """
    logger.info("New analysis task: %s", body.prompt)
    try:
        result = await _run(session, cfg, analysis_instruction(body.prompt, cfg.tool_server_id))
    except TaskExecutionError as exc:
        logger.exception("Analysis failed")
        return JSONResponse({"error": str(exc)}, status_code=500)
    logger.info("Analysis completed")
    return {"result": result}


@router.post("/api/chat")
async def chat(
    body: ChatRequest,
    session: Any = Depends(get_session),
    cfg: Settings = Depends(get_settings),
):
    """
    Answer a follow-up question about the last analysis.
    """
    logger.info("Follow-up question: %s", body.question)
    try:
        result = await _run(session, cfg, follow_up_instruction(body.question, body.context))
    except TaskExecutionError as exc:
        logger.exception("Follow-up failed")
        return JSONResponse({"error": str(exc)}, status_code=500)
    logger.info("Answer sent")
    return {"result": result}


def create_app(
    cfg: Optional[Settings] = None,
    creds: Optional[Credentials] = None,
    session_factory: SessionFactory = bootstrap_session,
) -> FastAPI:
    """
    Build the app. The session is bootstrapped in the lifespan so the tool
    subprocess belongs to the server's event loop; a failure aborts startup.
    """
    cfg = cfg or load_settings()
    if creds is None:
        creds = require_credentials(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        session = await session_factory(cfg, creds)
        app.state.session = session
        try:
            yield
        finally:
            aclose = getattr(session, "aclose", None)
            if aclose is not None:
                await aclose()

    app = FastAPI(title="Research Console", lifespan=lifespan)
    app.state.settings = cfg
    # Allow all origins for dev simplicity; tighten in production.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


def main() -> None:
    load_dotenv()
    cfg = load_settings()
    configure_logging(cfg)
    creds = require_credentials(cfg)
    uvicorn.run(create_app(cfg, creds), host=cfg.host, port=cfg.port)


if __name__ == "__main__":
    main()
