from typing import List

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_ranking_service
from storefront.models.purchase import RankingEntry
from storefront.services.ranking_service import RankingService

router = APIRouter(prefix="/rankings", tags=["销量排行"])


@router.get("", response_model=List[RankingEntry])
async def get_rankings(
    limit: int = Query(5, ge=1, le=100),
    ranking_service: RankingService = Depends(get_ranking_service)
):
    """销量排行，公开接口"""
    return await ranking_service.get_rankings(limit=limit)
