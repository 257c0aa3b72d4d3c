from enum import StrEnum

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from cryptolens.config import settings
from cryptolens.exceptions import AppError


class LLMProvider(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class LLMFactory:
    @staticmethod
    def is_configured(provider: str | None = None) -> bool:
        match provider or settings.llm_provider:
            case LLMProvider.OPENAI:
                return bool(settings.openai_api_key)
            case LLMProvider.ANTHROPIC:
                return bool(settings.anthropic_api_key)
            case _:
                return False

    @staticmethod
    def create(
        provider: str | None = None,
        model: str | None = None,
        **kwargs: object,
    ) -> BaseChatModel:
        provider = provider or settings.llm_provider
        model = model or settings.llm_model

        match provider:
            case LLMProvider.OPENAI:
                if not settings.openai_api_key:
                    raise AppError("OpenAI API key is not configured", code="LLM_CONFIG_ERROR")
                return ChatOpenAI(model=model, api_key=settings.openai_api_key, **kwargs)  # type: ignore[arg-type]

            case LLMProvider.ANTHROPIC:
                if not settings.anthropic_api_key:
                    raise AppError("Anthropic API key is not configured", code="LLM_CONFIG_ERROR")
                return ChatAnthropic(model=model, api_key=settings.anthropic_api_key, **kwargs)  # type: ignore[arg-type]

            case _:
                raise AppError(f"Unknown LLM provider: '{provider}'", code="LLM_CONFIG_ERROR")
