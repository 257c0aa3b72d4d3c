import asyncio
import json
import re
from datetime import UTC, datetime

import structlog
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage

from cryptolens.analysis.schemas import Commentary, MarketOverview, TokenAnalysis
from cryptolens.comparables.schemas import ComparisonProjection
from cryptolens.comparables.service import ComparableService
from cryptolens.exceptions import AppError, ValidationError
from cryptolens.market.schemas import MarketSnapshot
from cryptolens.market.service import MarketService
from cryptolens.sentiment.schemas import SentimentRecord
from cryptolens.sentiment.service import SentimentService

logger = structlog.get_logger()

_COMMENTARY_PROMPT = (
    "You are a crypto market analyst. Given the data below for {token}, assess whether "
    "social sentiment confirms or diverges from price action.\n\n"
    "Price: ${price} ({change:+.2f}% 24h), market cap rank: {rank}\n"
    "Sentiment score: {score} (0 bearish - 1 bullish), posts 24h: {posts}, "
    "total engagement: {engagement}\n"
    "Sentiment summary: {summary}\n\n"
    "Return JSON with keys: signal (bullish/bearish/neutral), confidence (0-1), "
    "summary (two sentences)"
)


def _parse_llm_json(text: str) -> dict:
    """Parse JSON from LLM response, stripping markdown code block markers if present."""
    cleaned = text.strip()
    match = re.search(r"```(?:json)?\s*(.*?)```", cleaned, re.DOTALL)
    if match:
        cleaned = match.group(1).strip()
    return json.loads(cleaned)


def market_overview(snapshots: list[MarketSnapshot]) -> MarketOverview:
    return MarketOverview(
        total_market_cap=sum(coin.market_cap for coin in snapshots),
        total_volume_24h=sum(coin.volume_24h for coin in snapshots),
        coins=len(snapshots),
    )


class AnalysisService:
    def __init__(
        self,
        market_service: MarketService,
        sentiment_service: SentimentService,
        comparable_service: ComparableService,
        llm: BaseChatModel | None = None,
        watchlist: list[str] | None = None,
    ) -> None:
        self._market = market_service
        self._sentiment = sentiment_service
        self._comparables = comparable_service
        self._llm = llm
        self._watchlist = watchlist or []

    async def analyze(
        self,
        token: str,
        include_comparables: bool = True,
        include_commentary: bool = False,
    ) -> TokenAnalysis:
        token = token.strip().lower()
        if not token:
            raise ValidationError("Token must not be empty")
        logger.info(
            "analysis_start",
            token=token,
            include_comparables=include_comparables,
            include_commentary=include_commentary,
        )

        ids = list(dict.fromkeys([token, *self._watchlist]))
        market_result, sentiment_result = await asyncio.gather(
            self._market.get_market_snapshots(ids),
            self._sentiment.get_sentiment(token),
            return_exceptions=True,
        )
        if isinstance(market_result, BaseException):
            raise market_result

        sentiment: SentimentRecord | None = None
        sentiment_error: str | None = None
        if isinstance(sentiment_result, AppError):
            logger.warning("analysis_sentiment_unavailable", token=token, error=sentiment_result.message)
            sentiment_error = sentiment_result.message
        elif isinstance(sentiment_result, BaseException):
            raise sentiment_result
        else:
            sentiment = sentiment_result

        snapshot = next((coin for coin in market_result if coin.id == token), None)
        comparables: list[ComparisonProjection] = []
        comparables_error: str | None = None
        if include_comparables:
            comparables, comparables_error = await self._comparables_for(token, snapshot)

        commentary: Commentary | None = None
        commentary_error: str | None = None
        if include_commentary:
            commentary, commentary_error = await self._commentary_for(token, snapshot, sentiment)

        return TokenAnalysis(
            token=token,
            market=market_result,
            market_overview=market_overview(market_result),
            sentiment=sentiment,
            sentiment_error=sentiment_error,
            comparables=comparables,
            comparables_error=comparables_error,
            commentary=commentary,
            commentary_error=commentary_error,
            timestamp=datetime.now(UTC).isoformat(),
        )

    async def _comparables_for(
        self, token: str, snapshot: MarketSnapshot | None
    ) -> tuple[list[ComparisonProjection], str | None]:
        if snapshot is None or snapshot.market_cap <= 0:
            return [], f"No market data for {token}"
        try:
            projections = await self._comparables.get_comparables(
                token, snapshot.market_cap, snapshot.current_price or None
            )
        except AppError as exc:
            logger.warning("analysis_comparables_unavailable", token=token, error=exc.message)
            return [], exc.message
        return projections, None

    async def _commentary_for(
        self, token: str, snapshot: MarketSnapshot | None, sentiment: SentimentRecord | None
    ) -> tuple[Commentary | None, str | None]:
        if self._llm is None:
            return None, "No language model is configured"
        try:
            return await self._generate_commentary(token, snapshot, sentiment), None
        except AppError as exc:
            logger.warning("analysis_commentary_unavailable", token=token, error=exc.message)
            return None, exc.message

    async def _generate_commentary(
        self, token: str, snapshot: MarketSnapshot | None, sentiment: SentimentRecord | None
    ) -> Commentary:
        """Ask the LLM for a short signal combining price action and sentiment."""
        prompt = _COMMENTARY_PROMPT.format(
            token=token,
            price=f"{snapshot.current_price:.4f}" if snapshot else "n/a",
            change=snapshot.price_change_percent_24h if snapshot else 0.0,
            rank=snapshot.market_cap_rank if snapshot and snapshot.market_cap_rank else "n/a",
            score=f"{sentiment.sentiment_score:.2f}" if sentiment else "n/a",
            posts=sentiment.posts_count if sentiment else "n/a",
            engagement=f"{sentiment.total_engagement:,.0f}" if sentiment else "n/a",
            summary=(sentiment.summary_text[:1500] or "none") if sentiment else "unavailable",
        )
        try:
            response = await self._llm.ainvoke([HumanMessage(content=prompt)])  # type: ignore[union-attr]
            raw = response.content
            data = _parse_llm_json(raw if isinstance(raw, str) else str(raw))
        except json.JSONDecodeError as exc:
            logger.error("analysis_commentary_parse_error", token=token, error=str(exc))
            raise AppError(f"Failed to parse commentary for {token}") from exc
        except Exception as exc:
            logger.error("analysis_commentary_llm_error", token=token, error=str(exc))
            raise AppError(f"Failed to generate commentary for {token}: {exc}") from exc
        if not isinstance(data, dict):
            raise AppError(f"Failed to parse commentary for {token}")

        try:
            confidence = float(data.get("confidence", 0.5))
        except (TypeError, ValueError):
            confidence = 0.5
        return Commentary(
            signal=str(data.get("signal", "neutral")).lower(),
            confidence=max(0.0, min(1.0, confidence)),
            summary=str(data.get("summary", "No commentary available.")),
        )
