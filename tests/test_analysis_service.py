import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from cryptolens.analysis.service import AnalysisService
from cryptolens.comparables.service import ComparableService
from cryptolens.exceptions import ProviderConnectionError
from cryptolens.market.providers.coingecko import CoinGeckoProvider
from cryptolens.market.service import MarketService
from cryptolens.sentiment.service import SentimentService
from cryptolens.sessions.session import ToolSession
from tests.fakes import FakeTransport, market_coin, text_result


def _market_responder(name, arguments):
    if name == "get_id_coins":
        return text_result({"categories": ["Layer 1"]})
    if "category" in arguments:
        return text_result([market_coin("ethereum", 4e11, 3000), market_coin("solana", 7e10, 150)])
    return text_result([market_coin(coin_id, 1e10, 2.0) for coin_id in arguments["ids"].split(",")])


def _service(sentiment_transport: FakeTransport, llm=None) -> AnalysisService:
    market = MarketService(
        CoinGeckoProvider(ToolSession("coingecko", "https://cg.test/sse", FakeTransport(responder=_market_responder)))
    )
    sentiment = SentimentService(ToolSession("sentiment", "https://ze.test/sse", sentiment_transport))
    return AnalysisService(market, sentiment, ComparableService(market), llm=llm, watchlist=["bitcoin", "taraxa"])


async def test_analysis_joins_market_sentiment_and_comparables():
    sentiment = FakeTransport(script=[text_result({"success": True, "sentimentScore": 70, "postsCount": 40})])

    analysis = await _service(sentiment).analyze("Taraxa")

    assert analysis.token == "taraxa"
    assert [coin.id for coin in analysis.market] == ["taraxa", "bitcoin"]
    assert analysis.sentiment is not None
    assert analysis.sentiment.sentiment_score == pytest.approx(0.7)
    assert [p.comparable.id for p in analysis.comparables] == ["solana", "ethereum"]
    assert analysis.commentary is None
    assert analysis.market_overview.coins == 2
    assert analysis.market_overview.total_market_cap == pytest.approx(2e10)
    assert analysis.market_overview.total_volume_24h == pytest.approx(2000)


async def test_sentiment_failure_degrades_to_marker():
    sentiment = FakeTransport(open_failures=3)

    analysis = await _service(sentiment).analyze("bitcoin", include_comparables=False)

    assert analysis.sentiment is None
    assert "connect failed" in (analysis.sentiment_error or "")
    assert analysis.market


async def test_market_failure_propagates():
    market = MarketService(
        CoinGeckoProvider(ToolSession("coingecko", "https://cg.test/sse", FakeTransport(open_failures=1)))
    )
    sentiment = SentimentService(
        ToolSession("sentiment", "https://ze.test/sse", FakeTransport(script=[text_result({"success": True})]))
    )
    service = AnalysisService(market, sentiment, ComparableService(market))

    with pytest.raises(ProviderConnectionError):
        await service.analyze("bitcoin", include_comparables=False)


async def test_commentary_from_llm():
    llm = FakeListChatModel(
        responses=['```json\n{"signal": "Bullish", "confidence": 0.8, "summary": "Sentiment leads price."}\n```']
    )
    sentiment = FakeTransport(script=[text_result({"success": True, "sentimentScore": 90})])

    analysis = await _service(sentiment, llm=llm).analyze("bitcoin", include_comparables=False, include_commentary=True)

    assert analysis.commentary is not None
    assert analysis.commentary.signal == "bullish"
    assert analysis.commentary.confidence == pytest.approx(0.8)


class BrokenChatModel:
    async def ainvoke(self, messages):
        raise RuntimeError("llm down")


async def test_commentary_failure_keeps_market_and_sentiment():
    sentiment = FakeTransport(script=[text_result({"success": True, "sentimentScore": 55})])

    analysis = await _service(sentiment, llm=BrokenChatModel()).analyze(
        "bitcoin", include_comparables=False, include_commentary=True
    )

    assert analysis.commentary is None
    assert "llm down" in (analysis.commentary_error or "")
    assert analysis.sentiment is not None
    assert analysis.market


async def test_unparseable_commentary_degrades_to_marker():
    llm = FakeListChatModel(responses=["I think it will go up."])
    sentiment = FakeTransport(script=[text_result({"success": True})])

    analysis = await _service(sentiment, llm=llm).analyze("bitcoin", include_comparables=False, include_commentary=True)

    assert analysis.commentary is None
    assert analysis.commentary_error == "Failed to parse commentary for bitcoin"


async def test_commentary_without_llm_degrades_to_marker():
    sentiment = FakeTransport(script=[text_result({"success": True})])

    analysis = await _service(sentiment).analyze("bitcoin", include_comparables=False, include_commentary=True)

    assert analysis.commentary is None
    assert analysis.commentary_error == "No language model is configured"
    assert analysis.market
