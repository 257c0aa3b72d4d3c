from abc import ABC, abstractmethod

from cryptolens.market.schemas import CoinListing, MarketSnapshot


class MarketDataProvider(ABC):
    @abstractmethod
    async def get_snapshots(self, ids: list[str], vs_currency: str) -> list[MarketSnapshot]: ...

    @abstractmethod
    async def get_category_snapshots(
        self, category_id: str, vs_currency: str, per_page: int
    ) -> list[MarketSnapshot]: ...

    @abstractmethod
    async def get_symbol_snapshots(self, symbol: str, vs_currency: str) -> list[MarketSnapshot]: ...

    @abstractmethod
    async def get_categories(self, coin_id: str) -> list[str]: ...

    @abstractmethod
    async def list_coins(self) -> list[CoinListing]: ...
