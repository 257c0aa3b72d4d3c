import pytest

from cryptolens.comparables.schemas import CategoryFetch, Tier
from cryptolens.comparables.selection import category_slug, collect_pool, project, select_tiers
from cryptolens.comparables.service import ComparableService
from cryptolens.exceptions import NotFoundError, ProviderConnectionError, ValidationError
from cryptolens.market.providers.coingecko import CoinGeckoProvider
from cryptolens.market.schemas import MarketSnapshot
from cryptolens.market.service import MarketService
from cryptolens.sessions.session import ToolSession
from tests.fakes import FakeTransport, market_coin, text_result


def _snapshot(coin_id: str, market_cap: float, price: float = 1.0) -> MarketSnapshot:
    return MarketSnapshot(id=coin_id, symbol=coin_id.upper(), name=coin_id, current_price=price, market_cap=market_cap)


@pytest.mark.parametrize(
    ("display_name", "slug"),
    [
        ("Decentralized Finance (DeFi)", "decentralized-finance-defi"),
        ("BNB Chain Ecosystem", "binance-smart-chain"),
        ("DEX", "decentralized-exchange"),
        ("Real World Assets (RWA)", "real-world-assets"),
        ("Lending/Borrowing  Stuff", "lending-borrowing-stuff"),
        (" Gaming (GameFi) ", "gaming"),
    ],
)
def test_category_slug(display_name, slug):
    assert category_slug(display_name) == slug


def test_collect_pool_filters_dedupes_and_sorts():
    fetches = [
        CategoryFetch("A", "a", snapshots=(_snapshot("big", 900), _snapshot("self", 5000), _snapshot("small", 50))),
        CategoryFetch("B", "b", error="timeout"),
        CategoryFetch("C", "c", snapshots=(_snapshot("mid", 300), _snapshot("big", 900), _snapshot("equal", 100))),
    ]

    pool = collect_pool(fetches, token_id="self", market_cap=100)

    assert [coin.id for coin in pool] == ["mid", "big"]


def test_collect_pool_is_independent_of_arrival_order():
    a = CategoryFetch("A", "a", snapshots=(_snapshot("x", 500), _snapshot("y", 200)))
    b = CategoryFetch("B", "b", snapshots=(_snapshot("z", 200), _snapshot("w", 800)))

    assert collect_pool([a, b], "t", 100) == collect_pool([b, a], "t", 100)


def test_select_tiers_on_pool_of_ten_picks_percentile_positions():
    pool = [_snapshot(f"c{i}", 1000 * (i + 1)) for i in range(10)]

    picks = select_tiers(pool)

    assert [coin.id for _, coin in picks] == ["c2", "c5", "c8"]
    assert [tier for tier, _ in picks] == [Tier.CONSERVATIVE, Tier.MODERATE, Tier.AMBITIOUS]


@pytest.mark.parametrize("size", [3, 4, 5, 6, 7, 11, 25])
def test_select_tiers_returns_three_distinct(size):
    pool = [_snapshot(f"c{i}", 1000 * (i + 1)) for i in range(size)]

    picks = select_tiers(pool)

    assert len({coin.id for _, coin in picks}) == 3


def test_select_tiers_small_pools_take_everything():
    assert [coin.id for _, coin in select_tiers([_snapshot("only", 10)])] == ["only"]
    assert [tier for tier, _ in select_tiers([_snapshot("a", 1), _snapshot("b", 2)])] == [Tier.AVAILABLE] * 2
    assert select_tiers([]) == []


def test_select_tiers_fills_collisions_from_pool_start():
    shared = _snapshot("dup", 500)
    pool = [_snapshot("first", 100), _snapshot("second", 200), shared, shared]

    picks = select_tiers(pool)

    assert [(tier, coin.id) for tier, coin in picks] == [
        (Tier.CONSERVATIVE, "first"),
        (Tier.MODERATE, "dup"),
        (Tier.FILL, "second"),
    ]


def test_projection_scenario():
    projection = project(Tier.MODERATE, _snapshot("peer", 5_000_000), market_cap=1_000_000, current_price=2.0)

    assert projection.multiplier == pytest.approx(5.0)
    assert projection.projected_price == pytest.approx(10.0)
    assert projection.cap_ratio == pytest.approx(0.2)


def _category_responder(categories: list[str], by_category: dict[str, list[dict] | Exception], own_price=None):
    def respond(name, arguments):
        if name == "get_id_coins":
            return text_result({"id": arguments["id"], "categories": categories})
        if "category" in arguments:
            outcome = by_category[arguments["category"]]
            if isinstance(outcome, Exception):
                raise outcome
            return text_result(outcome)
        return text_result([market_coin(arguments["ids"], 1_000_000, own_price)] if own_price else [])

    return respond


def _comparable_service(transport: FakeTransport) -> ComparableService:
    session = ToolSession("coingecko", "https://provider.test/sse", transport)
    return ComparableService(MarketService(CoinGeckoProvider(session)), max_categories=3, page_size=10)


async def test_get_comparables_end_to_end():
    transport = FakeTransport(
        responder=_category_responder(
            ["Layer 1", "Smart Contract Platform", "Proof of Stake (PoS)", "Ignored Fourth"],
            {
                "layer-1": [market_coin(f"l{i}", 2_000_000 * (i + 1)) for i in range(5)],
                "smart-contract-platform": [market_coin(f"s{i}", 3_000_000 * (i + 1)) for i in range(5)],
                "proof-of-stake-pos": [market_coin("taraxa", 1_000_000), market_coin("tiny", 10)],
            },
        )
    )

    projections = await _comparable_service(transport).get_comparables("taraxa", 1_000_000, current_price=2.0)

    queried = [args["category"] for _, _, args in transport.calls if "category" in args]
    assert sorted(queried) == ["layer-1", "proof-of-stake-pos", "smart-contract-platform"]
    assert len(projections) == 3
    caps = [p.comparable.market_cap for p in projections]
    assert caps == sorted(caps)
    assert all(p.comparable.id not in {"taraxa", "tiny"} for p in projections)
    for p in projections:
        assert p.projected_price == pytest.approx(2.0 * p.comparable.market_cap / 1_000_000)


async def test_partial_category_failure_is_tolerated():
    transport = FakeTransport(
        responder=_category_responder(
            ["Layer 1", "Meme Token"],
            {
                "layer-1": RuntimeError("boom"),
                "meme-token": [market_coin("doge", 2e10)],
            },
        )
    )

    projections = await _comparable_service(transport).get_comparables("pepe", 1e9, current_price=0.01)

    assert [p.comparable.id for p in projections] == ["doge"]
    assert projections[0].tier == Tier.AVAILABLE
    assert projections[0].multiplier == pytest.approx(20.0)


async def test_every_category_failing_returns_empty():
    transport = FakeTransport(
        responder=_category_responder(["Layer 1"], {"layer-1": RuntimeError("boom")}),
    )

    assert await _comparable_service(transport).get_comparables("x", 1e6, current_price=1.0) == []


async def test_no_categories_returns_empty():
    transport = FakeTransport(responder=_category_responder([], {}))

    assert await _comparable_service(transport).get_comparables("x", 1e6) == []
    assert [name for _, name, _ in transport.calls] == ["get_id_coins"]


@pytest.mark.parametrize(
    "details",
    [text_result("Error: coin not found", is_error=True), text_result("coin not found")],
)
async def test_unknown_coin_has_no_comparables(details):
    transport = FakeTransport(responder=lambda name, arguments: details)

    assert await _comparable_service(transport).get_comparables("nosuchcoin", 1e6, current_price=1.0) == []
    assert [name for _, name, _ in transport.calls] == ["get_id_coins"]


async def test_category_lookup_transport_failure_propagates():
    transport = FakeTransport(open_failures=1)

    with pytest.raises(ProviderConnectionError):
        await _comparable_service(transport).get_comparables("x", 1e6)


async def test_price_is_looked_up_when_not_supplied():
    transport = FakeTransport(
        responder=_category_responder(["Layer 1"], {"layer-1": [market_coin("big", 5e6)]}, own_price=2.0),
    )

    projections = await _comparable_service(transport).get_comparables("small", 1e6)

    assert projections[0].projected_price == pytest.approx(10.0)


async def test_missing_price_raises_not_found():
    transport = FakeTransport(
        responder=_category_responder(["Layer 1"], {"layer-1": [market_coin("big", 5e6)]}),
    )

    with pytest.raises(NotFoundError):
        await _comparable_service(transport).get_comparables("small", 1e6)


async def test_non_positive_market_cap_is_rejected():
    with pytest.raises(ValidationError):
        await _comparable_service(FakeTransport()).get_comparables("x", 0)
