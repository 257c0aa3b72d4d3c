import structlog

from cryptolens.exceptions import ValidationError
from cryptolens.market.providers.base import MarketDataProvider
from cryptolens.market.schemas import CoinListing, CoinSearchResult, MarketSnapshot

logger = structlog.get_logger()

_MAX_IDS = 250
_NAME_MATCH_CANDIDATES = 20
_MAX_SEARCH_RESULTS = 10


def _rank_listing(coin: CoinListing, query: str) -> tuple[int, int, int]:
    """Sort key: exact name, then exact symbol, then plain single-word coins."""
    simple = "-" not in coin.id and " " not in coin.name
    return (
        coin.name.lower() != query,
        coin.symbol.lower() != query,
        not simple,
    )


def match_listings(coins: list[CoinListing], query: str) -> list[CoinListing]:
    query = query.lower()
    matches = [
        coin
        for coin in coins
        if query in coin.name.lower() or query in coin.symbol.lower() or query in coin.id.lower()
    ]
    return sorted(matches, key=lambda coin: _rank_listing(coin, query))


class MarketService:
    def __init__(self, provider: MarketDataProvider, vs_currency: str = "usd") -> None:
        self._provider = provider
        self._vs_currency = vs_currency

    async def get_market_snapshots(
        self, ids: list[str], vs_currency: str | None = None
    ) -> list[MarketSnapshot]:
        ids = list(dict.fromkeys(coin_id.strip().lower() for coin_id in ids if coin_id.strip()))
        if not ids:
            return []
        if len(ids) > _MAX_IDS:
            raise ValidationError(f"Maximum {_MAX_IDS} coin ids allowed per request")
        vs_currency = (vs_currency or self._vs_currency).lower()
        logger.info("market_get_snapshots", ids=ids, vs_currency=vs_currency)
        return await self._provider.get_snapshots(ids, vs_currency)

    async def get_coins_by_category(self, category_id: str, per_page: int = 10) -> list[MarketSnapshot]:
        category_id = category_id.strip()
        if not category_id:
            raise ValidationError("Category must not be empty")
        logger.info("market_get_category", category=category_id, per_page=per_page)
        return await self._provider.get_category_snapshots(category_id, self._vs_currency, per_page)

    async def get_categories(self, coin_id: str) -> list[str]:
        coin_id = coin_id.strip().lower()
        logger.info("market_get_categories", coin_id=coin_id)
        return await self._provider.get_categories(coin_id)

    async def search_coins(self, query: str) -> list[CoinSearchResult]:
        query = query.strip()
        if not query:
            raise ValidationError("Search query must not be empty")
        logger.info("market_search", query=query)

        by_symbol = await self._provider.get_symbol_snapshots(query, self._vs_currency)
        if by_symbol:
            return [
                CoinSearchResult(
                    id=coin.id,
                    symbol=coin.symbol,
                    name=coin.name,
                    current_price=coin.current_price,
                    market_cap=coin.market_cap,
                    market_cap_rank=coin.market_cap_rank,
                )
                for coin in by_symbol
            ]

        candidates = match_listings(await self._provider.list_coins(), query)[:_NAME_MATCH_CANDIDATES]
        if not candidates:
            return []
        markets = {
            coin.id: coin
            for coin in await self._provider.get_snapshots([c.id for c in candidates], self._vs_currency)
        }
        results = []
        for coin in candidates[:_MAX_SEARCH_RESULTS]:
            market = markets.get(coin.id)
            results.append(
                CoinSearchResult(
                    id=coin.id,
                    symbol=coin.symbol.upper(),
                    name=coin.name,
                    current_price=market.current_price if market else None,
                    market_cap=market.market_cap if market else None,
                    market_cap_rank=market.market_cap_rank if market else None,
                )
            )
        return results
