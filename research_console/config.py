"""
Configuration, credentials, and logging setup for the Research Console.
"""
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import List, Literal, Mapping, Optional

from .errors import ConfigError

PROVIDER_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}

FALLBACK_RESULT = "Task completed (check logs for details)."


@dataclass
class Settings:
    """
    Central configuration model for the console and server.

    NOTE: API keys are never stored here; they are read separately by
    `load_credentials` so settings can be logged safely.
    """

    model_id: str = "claude-sonnet-4-20250514"
    llm_provider: Literal["anthropic", "openai"] = "anthropic"
    tool_server_id: str = "firecrawl"
    tool_command: str = "npx"
    tool_args: List[str] = field(default_factory=lambda: ["-y", "firecrawl-mcp"])
    tool_key_env: str = "FIRECRAWL_API_KEY"
    working_directory: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 8000
    task_timeout_seconds: Optional[float] = None
    log_level: str = "INFO"
    log_path: Optional[str] = None
    fallback_result: str = FALLBACK_RESULT

    @property
    def model_key_env(self) -> str:
        return PROVIDER_KEY_ENV[self.llm_provider]


@dataclass(frozen=True)
class Credentials:
    model_api_key: str
    tool_api_key: str


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Instantiate settings and merge environment overrides.
    """
    env = os.environ if environ is None else environ
    cfg = Settings()
    if env.get("RESEARCH_MODEL_ID"):
        cfg.model_id = env["RESEARCH_MODEL_ID"]
    if env.get("RESEARCH_LLM_PROVIDER"):
        provider = env["RESEARCH_LLM_PROVIDER"].strip().lower()
        if provider not in PROVIDER_KEY_ENV:
            raise ConfigError(f"unsupported LLM provider: {provider!r}")
        cfg.llm_provider = provider  # type: ignore[assignment]
    if env.get("RESEARCH_TASK_TIMEOUT"):
        try:
            cfg.task_timeout_seconds = float(env["RESEARCH_TASK_TIMEOUT"])
        except ValueError as exc:
            raise ConfigError(f"invalid RESEARCH_TASK_TIMEOUT: {env['RESEARCH_TASK_TIMEOUT']!r}") from exc
    if env.get("LOG_LEVEL"):
        cfg.log_level = env["LOG_LEVEL"].upper()
    if env.get("RESEARCH_LOG_PATH"):
        cfg.log_path = env["RESEARCH_LOG_PATH"]
    return cfg


def load_credentials(cfg: Settings, environ: Optional[Mapping[str, str]] = None) -> Credentials:
    """
    Read the model-provider and retrieval-tool keys.

    Raises ConfigError naming every variable that is absent or empty.
    """
    env = os.environ if environ is None else environ
    model_key = (env.get(cfg.model_key_env) or "").strip()
    tool_key = (env.get(cfg.tool_key_env) or "").strip()
    missing = [name for name, value in ((cfg.model_key_env, model_key), (cfg.tool_key_env, tool_key)) if not value]
    if missing:
        raise ConfigError(f"Missing API keys: {', '.join(missing)}")
    return Credentials(model_api_key=model_key, tool_api_key=tool_key)


def require_credentials(cfg: Settings, environ: Optional[Mapping[str, str]] = None) -> Credentials:
    """
    Startup gate: exit the process with code 1 when a credential is missing.
    """
    try:
        return load_credentials(cfg, environ)
    except ConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)


def configure_logging(cfg: Settings) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if cfg.log_path:
        log_dir = os.path.dirname(cfg.log_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(cfg.log_path, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )
