"""
HTTP接口测试 - httpx + ASGITransport，数据库替换为内存SQLite
"""

import pytest
import pytest_asyncio
from decimal import Decimal
from datetime import date, timedelta
from httpx import AsyncClient, ASGITransport

from storefront.core.database import get_db_session
from storefront.main import app


@pytest_asyncio.fixture
async def client(session_maker):
    """测试客户端，不执行应用生命周期"""
    async def override_get_db_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def user_headers(user_id: int) -> dict:
    return {"User-ID": str(user_id)}


def admin_headers(user_id: int = 1) -> dict:
    return {"User-ID": str(user_id), "Role": "admin"}


@pytest.mark.asyncio
class TestIdentity:
    """身份请求头测试类"""

    async def test_missing_user_header(self, client):
        response = await client.post("/checkout", json={})

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    async def test_invalid_user_header(self, client):
        response = await client.get("/cart", headers={"User-ID": "abc"})
        assert response.status_code == 401

    async def test_admin_route_requires_admin_role(self, client):
        response = await client.get("/admin/discounts", headers=user_headers(1))

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"


@pytest.mark.asyncio
class TestCheckoutApi:
    """结账接口测试类"""

    async def test_full_purchase_flow(self, client, make_user, make_game, make_discount):
        user = await make_user(balance="0.00")
        alpha = await make_game("Alpha", "60.00")
        beta = await make_game("Beta", "40.00")
        await make_discount("SAVE10", usage_limit=5)
        headers = user_headers(user.id)

        response = await client.post("/wallet/deposit", json={"amount": "100.00"}, headers=headers)
        assert response.status_code == 200
        assert Decimal(response.json()["balance"]) == Decimal("100.00")

        for game in (alpha, beta):
            response = await client.post("/cart/add", json={"game_id": game.id}, headers=headers)
            assert response.status_code == 200

        cart = (await client.get("/cart", headers=headers)).json()
        assert cart["item_count"] == 2
        assert Decimal(cart["total"]) == Decimal("100.00")

        response = await client.post(
            "/discounts/apply",
            json={"code": "SAVE10", "total_amount": "100.00", "user_id": user.id},
            headers=headers
        )
        assert response.status_code == 200
        preview = response.json()
        assert preview["valid"] is True
        assert preview["type"] == "percent"
        assert Decimal(preview["final_amount"]) == Decimal("90.00")

        response = await client.post("/checkout", json={"discount_code": "SAVE10"}, headers=headers)
        assert response.status_code == 200
        body = response.json()
        assert body["games_count"] == 2
        assert Decimal(body["total"]) == Decimal("100.00")
        assert Decimal(body["discount"]) == Decimal("10.00")
        assert Decimal(body["final_amount"]) == Decimal("90.00")
        assert body["message"] == "Purchase completed successfully"

        wallet = (await client.get("/wallet", headers=headers)).json()
        assert Decimal(wallet["balance"]) == Decimal("10.00")

        transactions = (await client.get("/wallet/transactions", headers=headers)).json()
        assert [t["type"] for t in transactions] == ["purchase", "deposit"]
        assert transactions[0]["description"] == f"Purchase #{body['purchase_id']}"

        assert (await client.get("/cart", headers=headers)).json()["items"] == []

        purchases = (await client.get("/wallet/purchases", headers=headers)).json()
        assert [p["id"] for p in purchases] == [body["purchase_id"]]
        assert purchases[0]["discount_code"] == "SAVE10"
        assert Decimal(purchases[0]["discount_amount"]) == Decimal("10.00")
        assert sorted(item["name"] for item in purchases[0]["items"]) == ["Alpha", "Beta"]

        response = await client.get(f"/wallet/purchases/{body['purchase_id']}", headers=user_headers(user.id + 1))
        assert response.status_code == 404

        rankings = (await client.get("/rankings")).json()
        assert [(r["name"], r["sales_count"], r["rank_position"]) for r in rankings] == [
            ("Alpha", 1, 1), ("Beta", 1, 1)
        ]

        response = await client.post("/cart/add", json={"game_id": alpha.id}, headers=headers)
        assert response.status_code == 400
        assert response.json()["error"] == "already_owned"

    async def test_empty_cart(self, client, make_user):
        user = await make_user()

        response = await client.post("/checkout", json={}, headers=user_headers(user.id))

        assert response.status_code == 400
        assert response.json() == {"error": "empty_cart", "message": "Cart is empty"}

    async def test_insufficient_funds(self, client, make_user, make_game, add_to_cart):
        user = await make_user(balance="50.00")
        game = await make_game("Expensive", "80.00")
        await add_to_cart(user.id, game.id)

        response = await client.post("/checkout", json={}, headers=user_headers(user.id))

        assert response.status_code == 400
        assert response.json()["error"] == "insufficient_funds"

    async def test_expired_code(self, client, make_user, make_game, add_to_cart, make_discount):
        user = await make_user()
        game = await make_game("Alpha", "10.00")
        await add_to_cart(user.id, game.id)
        await make_discount("OLD", end_date=date.today() - timedelta(days=1))

        response = await client.post("/checkout", json={"discount_code": "OLD"}, headers=user_headers(user.id))

        assert response.status_code == 400
        assert response.json()["error"] == "expired"


@pytest.mark.asyncio
class TestDiscountApi:
    """折扣码接口测试类"""

    async def test_apply_unknown_code(self, client, make_user):
        user = await make_user()

        response = await client.post(
            "/discounts/apply",
            json={"code": "NOPE", "total_amount": "10.00", "user_id": user.id},
            headers=user_headers(user.id)
        )

        assert response.status_code == 400
        assert response.json()["error"] == "code_not_found"

    async def test_apply_validation_error(self, client):
        response = await client.post("/discounts/apply", json={"code": "X"}, headers=user_headers(1))

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    async def test_admin_crud(self, client, add_usages):
        headers = admin_headers()

        response = await client.post("/admin/discounts", json={
            "code": "SUMMER", "type": "fixed", "value": "5.00", "usage_limit": 2
        }, headers=headers)
        assert response.status_code == 201
        created = response.json()
        discount_id = created["id"]
        assert created["usage_count"] == 0

        response = await client.post("/admin/discounts", json={
            "code": "SUMMER", "type": "percent", "value": "10"
        }, headers=headers)
        assert response.status_code == 409

        await add_usages(discount_id, [10, 11])

        listing = (await client.get("/admin/discounts", headers=headers)).json()
        assert [(d["code"], d["usage_count"]) for d in listing] == [("SUMMER", 2)]

        response = await client.put(f"/admin/discounts/{discount_id}", json={"active": False}, headers=headers)
        assert response.status_code == 200
        assert response.json()["reset_usage"] is False
        assert response.json()["discount"]["usage_count"] == 2

        response = await client.put(f"/admin/discounts/{discount_id}", json={"active": True}, headers=headers)
        assert response.json()["reset_usage"] is True
        assert response.json()["discount"]["usage_count"] == 0

        response = await client.delete(f"/admin/discounts/{discount_id}", headers=headers)
        assert response.status_code == 200

        response = await client.get(f"/admin/discounts/{discount_id}", headers=headers)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    async def test_create_rejects_invalid_type(self, client):
        response = await client.post("/admin/discounts", json={
            "code": "BAD", "type": "bogo", "value": "5"
        }, headers=admin_headers())

        assert response.status_code == 400


@pytest.mark.asyncio
class TestHealthApi:
    """健康检查接口测试类"""

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_sweeper_health_without_lifespan(self, client):
        response = await client.get("/health/sweeper")
        assert response.json() == {"enabled": False}
