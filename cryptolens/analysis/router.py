from fastapi import APIRouter

from cryptolens.analysis.schemas import TokenAnalysis
from cryptolens.dependencies import AnalysisServiceDep, APIKey

router = APIRouter()


@router.get("", response_model=TokenAnalysis)
async def analyze_token(
    service: AnalysisServiceDep,
    _api_key: APIKey,
    token: str = "bitcoin",
    comparables: bool = True,
    commentary: bool = False,
) -> TokenAnalysis:
    return await service.analyze(token, include_comparables=comparables, include_commentary=commentary)
