from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from cryptolens.analysis.service import AnalysisService
from cryptolens.auth import verify_token
from cryptolens.comparables.service import ComparableService
from cryptolens.config import settings
from cryptolens.market.providers.coingecko import CoinGeckoProvider
from cryptolens.market.service import MarketService
from cryptolens.sentiment.service import SentimentService
from cryptolens.sessions.session import ToolSession
from cryptolens.sessions.transport import SseToolTransport

APIKey = Annotated[dict, Depends(verify_token)]


def _transport() -> SseToolTransport:
    return SseToolTransport(
        timeout=settings.mcp_timeout_seconds,
        sse_read_timeout=settings.mcp_sse_read_timeout_seconds,
    )


# One session per provider for the life of the process.
@lru_cache
def get_market_session() -> ToolSession:
    return ToolSession("coingecko", settings.coingecko_mcp_url, _transport())


@lru_cache
def get_sentiment_session() -> ToolSession:
    return ToolSession("sentiment", settings.sentiment_mcp_url, _transport())


def all_sessions() -> list[ToolSession]:
    return [get_market_session(), get_sentiment_session()]


def get_market_service() -> MarketService:
    return MarketService(CoinGeckoProvider(get_market_session()), vs_currency=settings.default_vs_currency)


def get_sentiment_service() -> SentimentService:
    return SentimentService(get_sentiment_session())


def get_comparable_service() -> ComparableService:
    return ComparableService(
        get_market_service(),
        max_categories=settings.max_categories,
        page_size=settings.category_page_size,
    )


def get_analysis_service() -> AnalysisService:
    from cryptolens.llm.factory import LLMFactory

    llm = LLMFactory.create() if LLMFactory.is_configured() else None
    return AnalysisService(
        get_market_service(),
        get_sentiment_service(),
        get_comparable_service(),
        llm=llm,
        watchlist=settings.watchlist,
    )


SessionsDep = Annotated[list[ToolSession], Depends(all_sessions)]
MarketServiceDep = Annotated[MarketService, Depends(get_market_service)]
SentimentServiceDep = Annotated[SentimentService, Depends(get_sentiment_service)]
ComparableServiceDep = Annotated[ComparableService, Depends(get_comparable_service)]
AnalysisServiceDep = Annotated[AnalysisService, Depends(get_analysis_service)]
