import asyncio

import structlog

from cryptolens.comparables.schemas import CategoryFetch, ComparisonProjection
from cryptolens.comparables.selection import category_slug, collect_pool, project, select_tiers
from cryptolens.exceptions import (
    NotFoundError,
    ProviderReportedError,
    UnparseableResponseError,
    ValidationError,
)
from cryptolens.market.service import MarketService

logger = structlog.get_logger()


class ComparableService:
    def __init__(self, market_service: MarketService, max_categories: int = 3, page_size: int = 10) -> None:
        self._market = market_service
        self._max_categories = max_categories
        self._page_size = page_size

    async def _fetch_category(self, category: str) -> CategoryFetch:
        slug = category_slug(category)
        try:
            snapshots = await self._market.get_coins_by_category(slug, per_page=self._page_size)
        except Exception as exc:
            return CategoryFetch(category=category, slug=slug, error=str(exc) or type(exc).__name__)
        return CategoryFetch(category=category, slug=slug, snapshots=tuple(snapshots))

    async def _resolve_price(self, token_id: str) -> float:
        snapshots = await self._market.get_market_snapshots([token_id])
        for snapshot in snapshots:
            if snapshot.id == token_id and snapshot.current_price > 0:
                return snapshot.current_price
        raise NotFoundError("Token price", token_id)

    async def get_comparables(
        self, token_id: str, market_cap: float, current_price: float | None = None
    ) -> list[ComparisonProjection]:
        token_id = token_id.strip().lower()
        if market_cap <= 0:
            raise ValidationError("market_cap must be positive")

        try:
            categories = await self._market.get_categories(token_id)
        except (ProviderReportedError, UnparseableResponseError) as exc:
            # unknown ids come back as a tool error or plain text
            logger.info("comparables_no_categories", token_id=token_id, error=exc.message)
            return []
        if not categories:
            logger.info("comparables_no_categories", token_id=token_id)
            return []
        categories = categories[: self._max_categories]
        logger.info("comparables_categories", token_id=token_id, categories=categories)

        fetches = await asyncio.gather(*(self._fetch_category(category) for category in categories))
        pool = collect_pool(fetches, token_id, market_cap)
        if not pool:
            logger.info("comparables_empty_pool", token_id=token_id)
            return []

        if current_price is None:
            current_price = await self._resolve_price(token_id)

        projections = [project(tier, coin, market_cap, current_price) for tier, coin in select_tiers(pool)]
        projections.sort(key=lambda p: p.comparable.market_cap)
        logger.info(
            "comparables_selected",
            token_id=token_id,
            pool_size=len(pool),
            selected=[f"{p.comparable.id} {p.multiplier:.1f}x ({p.tier})" for p in projections],
        )
        return projections
