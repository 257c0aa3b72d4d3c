from pydantic import BaseModel


class MarketSnapshot(BaseModel):
    id: str
    symbol: str
    name: str
    current_price: float = 0.0
    market_cap: float = 0.0
    market_cap_rank: int | None = None
    volume_24h: float = 0.0
    price_change_24h: float = 0.0
    price_change_percent_24h: float = 0.0
    high_24h: float | None = None
    low_24h: float | None = None
    market_cap_change_24h: float | None = None
    market_cap_change_percent_24h: float | None = None
    fully_diluted_valuation: float | None = None
    circulating_supply: float | None = None
    total_supply: float | None = None
    max_supply: float | None = None
    ath_price: float | None = None
    ath_change_percent: float | None = None
    ath_date: str | None = None
    atl_price: float | None = None
    atl_change_percent: float | None = None
    atl_date: str | None = None
    last_updated: str | None = None


class CoinListing(BaseModel):
    id: str
    symbol: str
    name: str


class CoinSearchResult(BaseModel):
    id: str
    symbol: str
    name: str
    current_price: float | None = None
    market_cap: float | None = None
    market_cap_rank: int | None = None
