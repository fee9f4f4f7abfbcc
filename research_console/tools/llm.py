"""
Reasoning-provider binding: builds LangChain chat models for a model id.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import anthropic
import openai
from langchain_anthropic import ChatAnthropic
from langchain_core.exceptions import LangChainException
from langchain_core.language_models import BaseChatModel
from langchain_core.tools import ToolException
from langchain_openai import ChatOpenAI

from ..config import Credentials, Settings

# Failures that belong to a single task rather than to the stream itself.
PROVIDER_ERRORS = (
    anthropic.APIError,
    openai.APIError,
    ToolException,
    LangChainException,
)


@dataclass(frozen=True)
class ModelProvider:
    """
    Provider kind plus its credential. The model id is chosen per task.
    """

    kind: Literal["anthropic", "openai"]
    api_key: str

    def chat_model(self, model_id: str, temperature: float = 0.2) -> BaseChatModel:
        if self.kind == "anthropic":
            return ChatAnthropic(model=model_id, api_key=self.api_key, temperature=temperature)
        if self.kind == "openai":
            return ChatOpenAI(model=model_id, api_key=self.api_key, temperature=temperature)
        raise ValueError(f"unsupported provider: {self.kind}")

    def __repr__(self) -> str:
        return f"ModelProvider(kind={self.kind!r}, api_key='***')"


def provider_from(cfg: Settings, creds: Credentials) -> ModelProvider:
    return ModelProvider(kind=cfg.llm_provider, api_key=creds.model_api_key)
