from fastapi import APIRouter

from cryptolens.dependencies import APIKey, SentimentServiceDep
from cryptolens.sentiment.schemas import SentimentRecord

router = APIRouter()


@router.get("/{topic}", response_model=SentimentRecord)
async def get_sentiment(topic: str, service: SentimentServiceDep, _api_key: APIKey) -> SentimentRecord:
    return await service.get_sentiment(topic)
