"""Pure pieces of comparable selection: slugs, pooling, tier sampling, projection."""

import math
import re
from collections.abc import Iterable

import structlog

from cryptolens.comparables.schemas import CategoryFetch, ComparisonProjection, Tier
from cryptolens.market.schemas import MarketSnapshot

logger = structlog.get_logger()

# Display names as reported by coin details, mapped to market-data category ids.
# Unmapped names go through category_slug's heuristic, which can miss newer
# categories whose ids do not follow the display name.
CATEGORY_SLUGS: dict[str, str] = {
    "Decentralized Finance (DeFi)": "decentralized-finance-defi",
    "Yield Farming": "yield-farming",
    "BNB Chain Ecosystem": "binance-smart-chain",
    "Lending/Borrowing Protocols": "lending-borrowing",
    "Avalanche Ecosystem": "avalanche-ecosystem",
    "Polygon Ecosystem": "polygon-ecosystem",
    "Near Protocol Ecosystem": "near-protocol-ecosystem",
    "Fantom Ecosystem": "fantom-ecosystem",
    "Harmony Ecosystem": "harmony-ecosystem",
    "Arbitrum Ecosystem": "arbitrum-ecosystem",
    "Ethereum Ecosystem": "ethereum-ecosystem",
    "Optimism Ecosystem": "optimism-ecosystem",
    "Base Ecosystem": "base-ecosystem",
    "Layer 1": "layer-1",
    "Smart Contract Platform": "smart-contract-platform",
    "DEX": "decentralized-exchange",
    "Centralized Exchange (CEX)": "centralized-exchange-token-cex",
    "Artificial Intelligence": "artificial-intelligence",
    "Meme Token": "meme-token",
    "Dog Themed Coins": "dog-themed-coins",
    "DePIN": "depin",
    "Infrastructure": "infrastructure",
    "Liquid Staking": "liquid-staking",
    "Proof of Stake (PoS)": "proof-of-stake-pos",
    "Proof of Work (PoW)": "proof-of-work-pow",
}

TIER_PERCENTILES: tuple[tuple[Tier, float], ...] = (
    (Tier.CONSERVATIVE, 0.2),
    (Tier.MODERATE, 0.5),
    (Tier.AMBITIOUS, 0.8),
)


def category_slug(display_name: str) -> str:
    if display_name in CATEGORY_SLUGS:
        return CATEGORY_SLUGS[display_name]
    slug = display_name.lower()
    slug = re.sub(r"\s*\([^)]*\)", "", slug)
    slug = slug.replace("/", "-")
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def collect_pool(fetches: Iterable[CategoryFetch], token_id: str, market_cap: float) -> list[MarketSnapshot]:
    """Merge successful category fetches into a deduplicated upward pool.

    Only coins larger than the source token are kept. The result is sorted
    ascending by market cap (ties by id) so arrival order never matters.
    """
    pool: dict[str, MarketSnapshot] = {}
    for fetch in fetches:
        if not fetch.ok:
            logger.warning("comparables_category_failed", category=fetch.category, slug=fetch.slug, error=fetch.error)
            continue
        upward = [coin for coin in fetch.snapshots if coin.id != token_id and coin.market_cap > market_cap]
        logger.info(
            "comparables_category_fetched",
            category=fetch.category,
            slug=fetch.slug,
            coins=len(fetch.snapshots),
            upward=len(upward),
        )
        for coin in upward:
            pool.setdefault(coin.id, coin)
    return sorted(pool.values(), key=lambda coin: (coin.market_cap, coin.id))


def select_tiers(pool: list[MarketSnapshot]) -> list[tuple[Tier, MarketSnapshot]]:
    """Pick up to three comparables at the 20th/50th/80th percentile positions.

    ``pool`` must already be sorted ascending by market cap. Colliding picks
    on small pools are filled from the start of the pool.
    """
    if len(pool) < len(TIER_PERCENTILES):
        return [(Tier.AVAILABLE, coin) for coin in pool]

    selected: list[tuple[Tier, MarketSnapshot]] = []
    taken: set[str] = set()
    for tier, percentile in TIER_PERCENTILES:
        coin = pool[min(math.floor(len(pool) * percentile), len(pool) - 1)]
        if coin.id not in taken:
            selected.append((tier, coin))
            taken.add(coin.id)

    for coin in pool:
        if len(selected) >= len(TIER_PERCENTILES):
            break
        if coin.id not in taken:
            selected.append((Tier.FILL, coin))
            taken.add(coin.id)
    return selected


def project(tier: Tier, comparable: MarketSnapshot, market_cap: float, current_price: float) -> ComparisonProjection:
    multiplier = comparable.market_cap / market_cap
    return ComparisonProjection(
        comparable=comparable,
        tier=tier,
        multiplier=multiplier,
        projected_price=current_price * multiplier,
        cap_ratio=market_cap / comparable.market_cap,
    )
