"""
销量排行服务
"""

from typing import List

from storefront.models.purchase import RankingEntry
from storefront.repositories.purchase_repository import PurchaseRepository


class RankingService:
    """销量排行服务，排名在每次结账时重新计算"""

    def __init__(self, purchase_repo: PurchaseRepository):
        self.purchase_repo = purchase_repo

    async def get_rankings(self, limit: int = 5) -> List[RankingEntry]:
        rows = await self.purchase_repo.get_rankings(limit=limit)
        return [
            RankingEntry(
                game_id=game.id,
                name=game.name,
                price=game.price,
                sales_count=ranking.sales_count,
                rank_position=ranking.rank_position
            )
            for ranking, game in rows
        ]
