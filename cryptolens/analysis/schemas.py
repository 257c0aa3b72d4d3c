from pydantic import BaseModel, Field

from cryptolens.comparables.schemas import ComparisonProjection
from cryptolens.market.schemas import MarketSnapshot
from cryptolens.sentiment.schemas import SentimentRecord


class Commentary(BaseModel):
    signal: str  # "bullish", "bearish", "neutral"
    confidence: float = Field(ge=0.0, le=1.0)
    summary: str


class MarketOverview(BaseModel):
    total_market_cap: float = 0.0
    total_volume_24h: float = 0.0
    coins: int = 0


class TokenAnalysis(BaseModel):
    token: str
    market: list[MarketSnapshot]
    market_overview: MarketOverview
    sentiment: SentimentRecord | None = None
    sentiment_error: str | None = None
    comparables: list[ComparisonProjection] = []
    comparables_error: str | None = None
    commentary: Commentary | None = None
    commentary_error: str | None = None
    timestamp: str
