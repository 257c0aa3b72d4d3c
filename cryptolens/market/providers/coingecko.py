import json
import math
from typing import Any

import structlog

from cryptolens.exceptions import ProviderReportedError, UnparseableResponseError
from cryptolens.market.providers.base import MarketDataProvider
from cryptolens.market.schemas import CoinListing, MarketSnapshot
from cryptolens.sessions.schemas import ToolResult
from cryptolens.sessions.session import ToolSession

logger = structlog.get_logger()

MARKETS_TOOL = "get_coins_markets"
COIN_DETAILS_TOOL = "get_id_coins"
COINS_LIST_TOOL = "get_coins_list"


def _number(value: Any) -> float | None:
    """Coerce the provider's mix of ints, floats, numeric strings and nulls; NaN and inf become None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, int | float):
            number = float(value)
        elif isinstance(value, str):
            number = float(value.replace(",", "").strip())
        else:
            return None
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _rank(value: Any) -> int | None:
    number = _number(value)
    return int(number) if number is not None and number > 0 else None


def _text(value: Any) -> str | None:
    return str(value) if value not in (None, "") else None


def snapshot_from_market(raw: dict) -> MarketSnapshot:
    return MarketSnapshot(
        id=str(raw.get("id") or ""),
        symbol=str(raw.get("symbol") or "").upper(),
        name=str(raw.get("name") or ""),
        current_price=_number(raw.get("current_price")) or 0.0,
        market_cap=_number(raw.get("market_cap")) or 0.0,
        market_cap_rank=_rank(raw.get("market_cap_rank")),
        volume_24h=_number(raw.get("total_volume")) or 0.0,
        price_change_24h=_number(raw.get("price_change_24h")) or 0.0,
        price_change_percent_24h=_number(
            raw.get("price_change_percentage_24h", raw.get("price_change_percentage_24h_in_currency"))
        )
        or 0.0,
        high_24h=_number(raw.get("high_24h")),
        low_24h=_number(raw.get("low_24h")),
        market_cap_change_24h=_number(raw.get("market_cap_change_24h")),
        market_cap_change_percent_24h=_number(raw.get("market_cap_change_percentage_24h")),
        fully_diluted_valuation=_number(raw.get("fully_diluted_valuation")),
        circulating_supply=_number(raw.get("circulating_supply")),
        total_supply=_number(raw.get("total_supply")),
        max_supply=_number(raw.get("max_supply")),
        ath_price=_number(raw.get("ath")),
        ath_change_percent=_number(raw.get("ath_change_percentage")),
        ath_date=_text(raw.get("ath_date")),
        atl_price=_number(raw.get("atl")),
        atl_change_percent=_number(raw.get("atl_change_percentage")),
        atl_date=_text(raw.get("atl_date")),
        last_updated=_text(raw.get("last_updated")),
    )


class CoinGeckoProvider(MarketDataProvider):
    def __init__(self, session: ToolSession) -> None:
        self._session = session

    async def _call(self, tool: str, arguments: dict[str, Any]) -> Any:
        """Invoke a tool and decode its first text frame; ``None`` means no content."""
        result: ToolResult = await self._session.invoke(tool, arguments)
        if result.is_error:
            raise ProviderReportedError(self._session.name, result.first_text or f"'{tool}' failed")
        if not result.first_text:
            logger.warning("coingecko_empty_response", tool=tool)
            return None
        try:
            return json.loads(result.first_text)
        except ValueError as exc:
            raise UnparseableResponseError(self._session.name, f"'{tool}' did not return JSON") from exc

    async def _markets(self, arguments: dict[str, Any]) -> list[MarketSnapshot]:
        payload = await self._call(MARKETS_TOOL, arguments)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise UnparseableResponseError(self._session.name, f"'{MARKETS_TOOL}' did not return a list")
        return [snapshot_from_market(item) for item in payload if isinstance(item, dict) and item.get("id")]

    async def get_snapshots(self, ids: list[str], vs_currency: str) -> list[MarketSnapshot]:
        return await self._markets(
            {
                "ids": ",".join(ids),
                "vs_currency": vs_currency,
                "order": "market_cap_desc",
                "per_page": len(ids),
                "page": 1,
                "sparkline": False,
                "price_change_percentage": "24h",
            }
        )

    async def get_category_snapshots(
        self, category_id: str, vs_currency: str, per_page: int
    ) -> list[MarketSnapshot]:
        return await self._markets(
            {
                "vs_currency": vs_currency,
                "category": category_id,
                "order": "market_cap_desc",
                "per_page": per_page,
                "page": 1,
                "sparkline": False,
                "price_change_percentage": "24h",
            }
        )

    async def get_symbol_snapshots(self, symbol: str, vs_currency: str) -> list[MarketSnapshot]:
        return await self._markets(
            {
                "vs_currency": vs_currency,
                "symbols": symbol.lower(),
                "include_tokens": "all",
                "order": "market_cap_desc",
                "per_page": 10,
                "page": 1,
                "sparkline": False,
            }
        )

    async def get_categories(self, coin_id: str) -> list[str]:
        payload = await self._call(
            COIN_DETAILS_TOOL,
            {
                "id": coin_id,
                "community_data": False,
                "developer_data": False,
                "localization": False,
                "market_data": False,
                "sparkline": False,
                "tickers": False,
            },
        )
        if not isinstance(payload, dict):
            return []
        categories = payload.get("categories") or []
        return [str(category) for category in categories if category]

    async def list_coins(self) -> list[CoinListing]:
        payload = await self._call(COINS_LIST_TOOL, {"include_platform": False, "status": "active"})
        if not isinstance(payload, list):
            return []
        return [
            CoinListing(id=str(coin["id"]), symbol=str(coin.get("symbol") or ""), name=str(coin.get("name") or ""))
            for coin in payload
            if isinstance(coin, dict) and coin.get("id")
        ]
