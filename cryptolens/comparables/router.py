from fastapi import APIRouter

from cryptolens.comparables.schemas import ComparablesRequest, ComparisonProjection
from cryptolens.dependencies import APIKey, ComparableServiceDep

router = APIRouter()


@router.post("", response_model=list[ComparisonProjection])
async def get_comparables(
    request: ComparablesRequest, service: ComparableServiceDep, _api_key: APIKey
) -> list[ComparisonProjection]:
    return await service.get_comparables(request.coin_id, request.market_cap, request.current_price)
