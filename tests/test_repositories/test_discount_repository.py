"""
DiscountRepository数据库操作测试
"""

import pytest
from decimal import Decimal
from datetime import date

from storefront.models.discount import DiscountCreate, DiscountType, DiscountUpdate
from storefront.models.database import PurchaseDB
from storefront.repositories.discount_repository import DiscountRepository


@pytest.mark.asyncio
class TestDiscountRepository:
    """DiscountRepository测试类"""

    @pytest.fixture
    def discount_repo(self, db_session):
        return DiscountRepository(db_session)

    async def test_create_and_get(self, discount_repo, db_session):
        created = await discount_repo.create(DiscountCreate(
            code="SPRING",
            type=DiscountType.FIXED,
            value=Decimal("5.00"),
            min_total=Decimal("20.00"),
            start_date=date(2024, 3, 1),
            end_date=date(2024, 5, 31),
            usage_limit=10,
            single_use_per_user=True
        ))
        await db_session.commit()

        fetched = await discount_repo.get_by_code("SPRING")
        assert fetched.id == created.id

        model = discount_repo.to_model(fetched, usage_count=0)
        assert model.type == DiscountType.FIXED
        assert model.value == Decimal("5.00")
        assert model.start_date == date(2024, 3, 1)
        assert model.end_date == date(2024, 5, 31)
        assert model.single_use_per_user is True

    async def test_get_active_by_code_ignores_inactive(self, discount_repo, make_discount):
        await make_discount("LIVE")
        await make_discount("PAUSED", active=False)

        assert (await discount_repo.get_active_by_code("LIVE")).code == "LIVE"
        assert await discount_repo.get_active_by_code("PAUSED") is None
        assert await discount_repo.get_active_by_code("MISSING") is None
        assert (await discount_repo.get_by_code("PAUSED")).active is False

    async def test_usage_tracking(self, discount_repo, db_session, make_discount, make_user):
        user = await make_user()
        code = await make_discount("TRACK")

        assert await discount_repo.count_usages(code.id) == 0
        assert await discount_repo.has_user_used(code.id, user.id) is False

        await discount_repo.record_usage(code.id, user.id)
        await db_session.commit()

        assert await discount_repo.count_usages(code.id) == 1
        assert await discount_repo.has_user_used(code.id, user.id) is True
        assert await discount_repo.has_user_used(code.id, user.id + 1) is False

    async def test_deactivate_only_once(self, discount_repo, db_session, make_discount):
        code = await make_discount("ONCE")

        assert await discount_repo.deactivate(code.id) is True
        assert await discount_repo.deactivate(code.id) is False
        await db_session.commit()

        assert (await discount_repo.get_by_id(code.id)).active is False

    async def test_list_with_usage_counts(self, discount_repo, make_discount, add_usages):
        first = await make_discount("A")
        second = await make_discount("B")
        await add_usages(second.id, [1, 2, 3])

        rows = await discount_repo.list_with_usage_counts()

        assert [(row.code, count) for row, count in rows] == [("A", 0), ("B", 3)]
        assert rows[0][0].id == first.id

    async def test_update_fields_with_patch(self, discount_repo, db_session, make_discount):
        code = await make_discount("EDIT", usage_limit=5, end_date=date(2024, 12, 31))

        patch = DiscountUpdate(value=Decimal("25"), type=DiscountType.PERCENT, end_date=None).to_patch()
        assert await discount_repo.update_fields(code.id, patch) is True
        await db_session.commit()

        updated = await discount_repo.get_by_id(code.id)
        assert updated.value == Decimal("25.00")
        assert updated.end_date is None
        assert updated.usage_limit == 5
        assert updated.code == "EDIT"

    async def test_update_fields_empty_patch(self, discount_repo, make_discount):
        code = await make_discount("NOOP")
        assert await discount_repo.update_fields(code.id, {}) is True

    async def test_reset_detach_and_delete(self, discount_repo, db_session, make_discount, make_user, add_usages):
        user = await make_user()
        code = await make_discount("GONE")
        await add_usages(code.id, [user.id, user.id + 1])
        purchase = PurchaseDB(
            user_id=user.id,
            total_amount=Decimal("10.00"),
            discount_amount=Decimal("1.00"),
            final_amount=Decimal("9.00"),
            discount_code_id=code.id
        )
        db_session.add(purchase)
        await db_session.commit()

        assert await discount_repo.detach_from_purchases(code.id) == 1
        assert await discount_repo.reset_usage(code.id) == 2
        assert await discount_repo.delete(code.id) is True
        await db_session.commit()

        await db_session.refresh(purchase)
        assert purchase.discount_code_id is None
        assert await discount_repo.get_by_id(code.id) is None
        assert await discount_repo.count_usages(code.id) == 0

    async def test_find_exhausted_codes(self, discount_repo, make_discount, add_usages):
        full = await make_discount("FULL", usage_limit=2)
        await add_usages(full.id, [1, 2])
        over = await make_discount("OVER", usage_limit=1)
        await add_usages(over.id, [1, 2])
        partial = await make_discount("PART", usage_limit=3)
        await add_usages(partial.id, [1])
        inactive = await make_discount("OFF", usage_limit=1, active=False)
        await add_usages(inactive.id, [1])
        await make_discount("NEVER", usage_limit=1)

        assert await discount_repo.find_exhausted_codes() == [full.id, over.id]

    async def test_find_expired_codes(self, discount_repo, make_discount):
        old = await make_discount("OLD", end_date=date(2024, 6, 14))
        ends_today = await make_discount("TODAY", end_date=date(2024, 6, 15))
        await make_discount("TOMORROW", end_date=date(2024, 6, 16))
        await make_discount("OPEN")
        await make_discount("OFF", end_date=date(2024, 1, 1), active=False)

        assert await discount_repo.find_expired_codes(date(2024, 6, 15)) == [old.id, ends_today.id]
