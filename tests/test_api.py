"""
HTTP surface tests through the Flask test client.

Covers auth/session, error mapping and the admin guard.
"""

import pytest

from app import create_app
from config import TestConfig
from conftest import login
from models import Transaction


def register(client, username="zoe", password="secret123", referral_code=None):
    payload = {"username": username, "email": f"{username}@example.com", "password": password}
    if referral_code:
        payload["referralCode"] = referral_code
    return client.post("/api/auth/register", json=payload)


class TestAuthRoutes:

    def test_register_login_session_logout(self, client):
        response = register(client)
        assert response.status_code == 201
        assert response.get_json()["user"]["balance"] == 0.0

        assert client.get("/api/auth/session").get_json() == {"authenticated": False}

        response = login(client, "zoe@example.com")
        assert response.status_code == 200
        assert "password_hash" not in response.get_json()["user"]

        session = client.get("/api/auth/session").get_json()
        assert session["authenticated"] is True
        assert session["user"]["email"] == "zoe@example.com"

        client.post("/api/auth/logout")
        assert client.get("/api/auth/session").get_json() == {"authenticated": False}

    def test_duplicate_email_is_conflict(self, client):
        register(client)
        response = register(client)
        assert response.status_code == 409
        assert response.get_json()["code"] == "duplicate_email"

    def test_invalid_referral_code(self, client):
        response = register(client, referral_code="NOPE")
        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid Referral Code"

    def test_login_errors(self, client):
        register(client)
        assert login(client, "nobody@example.com").status_code == 404
        response = login(client, "zoe@example.com", "bad-password")
        assert response.status_code == 401
        assert response.get_json()["error"] == "Wrong credentials"

    def test_missing_body(self, client):
        response = client.post("/api/auth/login", data="not json")
        assert response.status_code == 400


class TestUserRoutes:

    def test_requires_login(self, client):
        assert client.get("/api/users/me").status_code == 401
        assert client.post("/api/users/claim").status_code == 401

    def test_invest_and_claim_flow(self, user_client, product):
        client, user = user_client

        response = client.post("/api/users/invest", json={"productId": product.id})
        assert response.status_code == 201
        body = response.get_json()
        assert body["user"]["balance"] == 400.0
        assert body["investment"]["productSnapshot"]["dailyIncome"] == 50.0

        response = client.post("/api/users/claim")
        assert response.status_code == 400
        assert response.get_json()["code"] == "nothing_to_claim"
        assert response.get_json()["nextEligibleAt"] is not None

        status = client.get("/api/users/me/claim-status").get_json()
        assert status["claimable"] is False
        assert status["investmentCount"] == 1

    def test_insufficient_balance(self, user_client):
        client, _ = user_client
        from ledger.catalog import ProductCatalog
        expensive = ProductCatalog.add_product({"name": "BIG", "price": 5000, "dailyIncome": 1, "days": 1})

        response = client.post("/api/users/invest", json={"productId": expensive.id})

        assert response.status_code == 400
        assert response.get_json()["code"] == "insufficient_balance"

    def test_unknown_product(self, user_client):
        client, _ = user_client
        response = client.post("/api/users/invest", json={"productId": 999})
        assert response.status_code == 404

    def test_activity_and_referrals(self, user_client):
        client, user = user_client
        client.post("/api/transactions", json={"type": "recharge", "amount": 100})

        activity = client.get("/api/users/me/activity?type=recharge").get_json()
        assert activity["total"] == 1
        assert client.get("/api/users/me/activity?page=abc").status_code == 400
        assert client.get("/api/users/me/activity?pageSize=0").status_code == 400

        referrals = client.get("/api/users/me/referrals").get_json()
        assert referrals["referralCode"] == user.referral_code
        assert referrals["referralCount"] == 0


class TestTransactionRoutes:

    def test_withdrawal_request(self, user_client):
        client, _ = user_client

        response = client.post("/api/transactions", json={
            "type": "withdrawal",
            "amount": 300,
            "withdrawalDetails": {"method": "upi", "details": "alice@upi"},
        })

        assert response.status_code == 201
        body = response.get_json()
        assert body["balance"] == 700.0
        assert body["transaction"]["status"] == "pending"
        assert body["transaction"]["netAmount"] == 285.0

    def test_withdrawal_below_minimum(self, user_client):
        client, _ = user_client
        response = client.post("/api/transactions", json={
            "type": "withdrawal", "amount": 100,
            "withdrawalDetails": {"method": "upi", "details": "alice@upi"},
        })
        assert response.status_code == 400
        assert response.get_json()["code"] == "below_minimum"

    def test_withdrawal_quote(self, user_client):
        client, _ = user_client
        quote = client.get("/api/transactions/withdrawal-quote?amount=1000").get_json()
        assert quote == {"amount": 1000.0, "feePercentage": 5.0, "fee": 50.0, "netAmount": 950.0}


class TestAdminRoutes:

    def test_non_admin_is_forbidden(self, user_client):
        client, _ = user_client
        assert client.get("/api/admin/users").status_code == 403
        assert client.put("/api/admin/settings", json={"upiId": "x"}).status_code == 403

    def test_settings_are_publicly_readable(self, client):
        response = client.get("/api/admin/settings")
        assert response.status_code == 200
        assert response.get_json()["withdrawalFeePercentage"] == 5.0

    def test_admin_resolves_pending_recharge(self, admin_client, make_user):
        from ledger.account_service import AccountService
        user = make_user("yara", balance=0)
        tx = AccountService.recharge(user.id, 500)

        pending = admin_client.get("/api/admin/transactions/pending").get_json()
        assert [t["id"] for t in pending["transactions"]] == [tx.id]

        response = admin_client.post(f"/api/admin/transaction/{user.id}/{tx.id}",
                                     json={"action": "approve"})
        assert response.status_code == 200
        assert response.get_json()["user"]["balance"] == 500.0

        again = admin_client.post(f"/api/admin/transaction/{user.id}/{tx.id}",
                                  json={"action": "approve"})
        assert again.status_code == 409

    def test_admin_updates_settings_and_users(self, admin_client, make_user):
        user = make_user("xena", balance=10)

        response = admin_client.put("/api/admin/settings", json={"referralBonusPercentage": 7.5})
        assert response.get_json()["settings"]["referralBonusPercentage"] == 7.5
        assert admin_client.put("/api/admin/settings",
                                json={"withdrawalFeePercentage": 150}).status_code == 400

        response = admin_client.put(f"/api/admin/users/{user.id}", json={"balance": 999})
        assert response.get_json()["user"]["balance"] == 999.0
        assert Transaction.query.filter_by(user_id=user.id).count() == 0

        users = admin_client.get("/api/admin/users").get_json()
        assert users["total"] == 2

    def test_admin_product_crud(self, admin_client):
        created = admin_client.post("/api/products", json={
            "name": "ROYAL-TEST", "price": 1000, "dailyIncome": 20, "days": 60,
        })
        assert created.status_code == 201
        product_id = created.get_json()["product"]["id"]
        assert created.get_json()["product"]["totalRevenue"] == 1200.0

        updated = admin_client.put(f"/api/products/{product_id}", json={"dailyIncome": 25})
        assert updated.get_json()["product"]["totalRevenue"] == 1500.0

        assert admin_client.delete(f"/api/products/{product_id}").status_code == 200
        assert admin_client.delete(f"/api/products/{product_id}").status_code == 404
        assert admin_client.get("/api/products").get_json() == {"products": []}

    def test_admin_reset(self, admin_client, make_user):
        make_user("wendy", balance=100)
        response = admin_client.post("/api/admin/reset")
        assert response.status_code == 200
        assert response.get_json()["usersRemoved"] == 1


class TestMisc:

    def test_healthz(self, client):
        assert client.get("/healthz").get_json()["status"] == "ok"

    def test_admin_password_is_required_outside_testing(self):
        class ProductionConfig(TestConfig):
            TESTING = False
            ADMIN_PASSWORD = None

        with pytest.raises(RuntimeError, match="ADMIN_PASSWORD"):
            create_app(ProductionConfig)

    def test_advice_requires_login(self, client):
        assert client.post("/api/advice", json={"query": "hi"}).status_code == 401

    def test_advice_falls_back_when_unconfigured(self, user_client, product):
        client, _ = user_client
        response = client.post(f"/api/advice/product/{product.id}")
        assert response.status_code == 200
        assert response.get_json()["roi"] == 150.0
