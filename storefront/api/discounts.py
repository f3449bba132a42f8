from typing import List

from fastapi import APIRouter, Depends

from storefront.api.deps import get_current_user_id, get_discount_service, require_admin
from storefront.models.discount import (
    DiscountApplication, DiscountApplyResponse, DiscountCode,
    DiscountCreate, DiscountUpdate, DiscountUpdateResult
)
from storefront.services.discount_service import DiscountService

router = APIRouter(prefix="/discounts", tags=["折扣码"])
admin_router = APIRouter(prefix="/admin/discounts", tags=["折扣码管理"])


@router.post("/apply", response_model=DiscountApplyResponse)
async def apply_discount(
    application: DiscountApplication,
    _: int = Depends(get_current_user_id),
    discount_service: DiscountService = Depends(get_discount_service)
):
    """预览折扣码效果，不产生任何写入"""
    return await discount_service.preview(application)


@admin_router.get("", response_model=List[DiscountCode])
async def list_discounts(
    _: int = Depends(require_admin),
    discount_service: DiscountService = Depends(get_discount_service)
):
    """获取全部折扣码及使用次数"""
    return await discount_service.list_discounts()


@admin_router.get("/{discount_id}", response_model=DiscountCode)
async def get_discount(
    discount_id: int,
    _: int = Depends(require_admin),
    discount_service: DiscountService = Depends(get_discount_service)
):
    return await discount_service.get_discount(discount_id)


@admin_router.post("", response_model=DiscountCode, status_code=201)
async def create_discount(
    discount_data: DiscountCreate,
    _: int = Depends(require_admin),
    discount_service: DiscountService = Depends(get_discount_service)
):
    return await discount_service.create_discount(discount_data)


@admin_router.put("/{discount_id}", response_model=DiscountUpdateResult)
async def update_discount(
    discount_id: int,
    update_data: DiscountUpdate,
    _: int = Depends(require_admin),
    discount_service: DiscountService = Depends(get_discount_service)
):
    """更新折扣码，重新启用时清空使用记录"""
    return await discount_service.update_discount(discount_id, update_data)


@admin_router.delete("/{discount_id}")
async def delete_discount(
    discount_id: int,
    _: int = Depends(require_admin),
    discount_service: DiscountService = Depends(get_discount_service)
):
    """删除折扣码及其使用记录"""
    await discount_service.delete_discount(discount_id)
    return {"message": "Discount code deleted successfully", "id": discount_id}
