from fastapi import APIRouter, Query

from cryptolens.dependencies import APIKey, MarketServiceDep
from cryptolens.market.schemas import CoinSearchResult, MarketSnapshot

router = APIRouter()


@router.get("/coins", response_model=list[MarketSnapshot])
async def get_coins(
    service: MarketServiceDep,
    _api_key: APIKey,
    ids: str = Query(min_length=1),
    vs_currency: str | None = None,
) -> list[MarketSnapshot]:
    return await service.get_market_snapshots(ids.split(","), vs_currency)


@router.get("/search", response_model=list[CoinSearchResult])
async def search_coins(
    service: MarketServiceDep, _api_key: APIKey, q: str = Query(min_length=1)
) -> list[CoinSearchResult]:
    return await service.search_coins(q)


@router.get("/categories/{coin_id}", response_model=list[str])
async def get_categories(coin_id: str, service: MarketServiceDep, _api_key: APIKey) -> list[str]:
    return await service.get_categories(coin_id)


@router.get("/category/{category_id}", response_model=list[MarketSnapshot])
async def get_coins_by_category(
    category_id: str, service: MarketServiceDep, _api_key: APIKey
) -> list[MarketSnapshot]:
    return await service.get_coins_by_category(category_id)
