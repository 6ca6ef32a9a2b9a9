"""Tests for subscription read endpoints."""

from datetime import UTC, datetime, timedelta


class TestSubscriptionDetails:
    def test_anonymous(self, client):
        response = client.get("/api/subscription")
        assert response.status_code == 200
        assert response.json() == {"has_subscription": False}

    def test_no_rows(self, client, auth_headers):
        response = client.get("/api/subscription", headers=auth_headers)
        assert response.json() == {"has_subscription": False}

    def test_active(self, client, auth_headers, user, make_subscription):
        make_subscription(id="sub_1", user_id=user.id, product_id="prod_pro")
        response = client.get("/api/subscription", headers=auth_headers)
        body = response.json()
        assert body["has_subscription"] is True
        assert "error" not in body
        assert body["subscription"]["id"] == "sub_1"
        assert body["subscription"]["plan"]["productId"] == "prod_pro"
        assert body["subscription"]["plan"]["slug"] == "pro"

    def test_canceled(self, client, auth_headers, user, make_subscription):
        make_subscription(user_id=user.id, status="canceled")
        body = client.get("/api/subscription", headers=auth_headers).json()
        assert body["has_subscription"] is True
        assert body["error_type"] == "CANCELED"
        assert body["error"] == "Subscription has been canceled"

    def test_cookie_session(self, client, user, auth_session, session_token, make_subscription):
        make_subscription(user_id=user.id)
        body = client.get(
            "/api/subscription", headers={"cookie": f"session_token={session_token}"}
        ).json()
        assert body["has_subscription"] is True

    def test_quoted_cookie_session(
        self, client, user, auth_session, session_token, make_subscription
    ):
        make_subscription(user_id=user.id)
        body = client.get(
            "/api/subscription",
            headers={"cookie": f'theme=dark; session_token="{session_token}"'},
        ).json()
        assert body["has_subscription"] is True


class TestSubscriptionStatus:
    def test_anonymous(self, client):
        assert client.get("/api/subscription/status").json() == {"status": "none"}

    def test_expired(self, client, auth_headers, user, make_subscription):
        make_subscription(
            user_id=user.id,
            status="past_due",
            current_period_end=datetime.now(UTC) - timedelta(days=2),
        )
        response = client.get("/api/subscription/status", headers=auth_headers)
        assert response.json() == {"status": "expired"}


class TestSubscriptionList:
    def test_lists_all_rows(self, client, auth_headers, user, make_subscription):
        make_subscription(id="a", user_id=user.id)
        make_subscription(id="b", user_id=user.id, status="canceled")
        make_subscription(id="c", user_id="someone-else")
        response = client.get("/api/subscriptions", headers=auth_headers)
        assert response.status_code == 200
        assert sorted(item["id"] for item in response.json()) == ["a", "b"]

    def test_anonymous(self, client):
        assert client.get("/api/subscriptions").json() == []


class TestProductAccess:
    def test_single_product(self, client, auth_headers, user, make_subscription):
        make_subscription(user_id=user.id, product_id="prod_pro")
        allowed = client.get(
            "/api/subscription/access/prod_pro", headers=auth_headers
        ).json()
        denied = client.get(
            "/api/subscription/access/prod_starter", headers=auth_headers
        ).json()
        assert allowed == {"has_access": True}
        assert denied == {"has_access": False}

    def test_any_product(self, client, auth_headers, user, make_subscription):
        make_subscription(user_id=user.id, product_id="prod_pro")
        response = client.post(
            "/api/subscription/access",
            json={"product_ids": ["prod_starter", "prod_pro"]},
            headers=auth_headers,
        )
        assert response.json() == {"has_access": True, "active_product": "prod_pro"}

    def test_any_product_requires_ids(self, client, auth_headers):
        response = client.post(
            "/api/subscription/access", json={"product_ids": []}, headers=auth_headers
        )
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"
