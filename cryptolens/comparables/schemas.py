from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, Field

from cryptolens.market.schemas import MarketSnapshot


class Tier(StrEnum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AMBITIOUS = "ambitious"
    FILL = "fill"
    AVAILABLE = "available"  # pool smaller than three, everything taken


class ComparisonProjection(BaseModel):
    comparable: MarketSnapshot
    tier: Tier
    multiplier: float
    projected_price: float
    cap_ratio: float


class ComparablesRequest(BaseModel):
    coin_id: str = Field(min_length=1)
    market_cap: float = Field(gt=0)
    current_price: float | None = Field(default=None, gt=0)


@dataclass(frozen=True)
class CategoryFetch:
    """Outcome of fetching one category: snapshots on success, error otherwise."""

    category: str
    slug: str
    snapshots: tuple[MarketSnapshot, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
