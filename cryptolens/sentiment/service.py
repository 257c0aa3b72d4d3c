from collections.abc import Callable

import structlog

from cryptolens.exceptions import ProviderConnectionError, ValidationError
from cryptolens.sentiment.normalizer import SENTIMENT_TOOL, normalize_sentiment
from cryptolens.sentiment.schemas import SentimentRecord
from cryptolens.sessions.session import ToolSession

logger = structlog.get_logger()

# The provider matches topics case-sensitively, in a way it does not document.
# Tried in order until one call gets through at the transport level.
TOPIC_VARIATIONS: tuple[Callable[[str], str], ...] = (
    lambda topic: topic,
    str.upper,
    str.lower,
)


class SentimentService:
    def __init__(self, session: ToolSession) -> None:
        self._session = session

    async def get_sentiment(self, topic: str) -> SentimentRecord:
        topic = topic.strip()
        if not topic:
            raise ValidationError("Topic must not be empty")
        logger.info("sentiment_fetch", topic=topic)

        last_error: ProviderConnectionError | None = None
        for variation in (transform(topic) for transform in TOPIC_VARIATIONS):
            try:
                result = await self._session.invoke(SENTIMENT_TOOL, {"topic": variation})
            except ProviderConnectionError as exc:
                logger.warning("sentiment_variation_failed", topic=topic, variation=variation, error=exc.message)
                last_error = exc
                continue
            logger.info("sentiment_variation_accepted", topic=topic, variation=variation)
            return normalize_sentiment(result, topic)

        raise last_error or ProviderConnectionError(self._session.name, "no topic variations to try")
