"""Tests for the subscription store and the /api/subscriptions endpoints."""

from datetime import datetime
from decimal import Decimal

import pytest

from subtracker.core.errors import NotFoundError, ValidationError
from subtracker.domain.subscriptions.services import SubscriptionStore


@pytest.fixture
async def category_id(category_store, user_id):
    category = await category_store.create_category("Streaming", user_id)
    return category.id


async def _create(store, category_id, user_id, **overrides):
    fields = {
        "name": "Netflix",
        "cost": 15.99,
        "billing_cycle": "month",
        "renewal_date": 12,
        "account_info": "alice@example.com",
    }
    fields.update(overrides)
    return await store.create_subscription(
        fields["name"],
        fields["cost"],
        fields["billing_cycle"],
        fields["renewal_date"],
        fields["account_info"],
        category_id,
        user_id,
    )


# =============================================================================
# Store
# =============================================================================


class TestCreateSubscription:
    async def test_round_trip(self, database, subscription_store, category_id, user_id):
        created = await _create(subscription_store, category_id, user_id, name="  Netflix  ")

        async with database.session() as fresh:
            loaded = await SubscriptionStore(fresh).get_subscription(created.id, user_id)

        assert loaded.cancelled_at is None
        assert loaded.name == "Netflix"
        assert loaded.cost == Decimal("15.99")
        assert loaded.billing_cycle == "month"
        assert loaded.renewal_date == 12
        assert loaded.account_info == "alice@example.com"
        assert loaded.category_id == category_id
        assert loaded.user_id == user_id

    async def test_missing_account_info_defaults_to_empty(self, subscription_store, category_id, user_id):
        created = await _create(subscription_store, category_id, user_id, account_info=None)

        assert created.account_info == ""

    @pytest.mark.parametrize("renewal_date", [1, 31])
    async def test_renewal_date_bounds_accepted(self, subscription_store, category_id, user_id, renewal_date):
        created = await _create(subscription_store, category_id, user_id, renewal_date=renewal_date)

        assert created.renewal_date == renewal_date

    @pytest.mark.parametrize("renewal_date", [0, 32, -1, "5", 5.0, None])
    async def test_renewal_date_out_of_range_rejected(
        self, subscription_store, category_id, user_id, renewal_date
    ):
        with pytest.raises(ValidationError, match="Invalid renewal date"):
            await _create(subscription_store, category_id, user_id, renewal_date=renewal_date)

    @pytest.mark.parametrize("cost", [-0.01, None, "abc", float("nan"), True])
    async def test_invalid_cost_rejected(self, subscription_store, category_id, user_id, cost):
        with pytest.raises(ValidationError, match="Invalid cost"):
            await _create(subscription_store, category_id, user_id, cost=cost)

    async def test_zero_cost_allowed(self, subscription_store, category_id, user_id):
        created = await _create(subscription_store, category_id, user_id, cost=0)

        assert created.cost == Decimal("0.00")

    @pytest.mark.parametrize("cycle", ["monthly", "", None, "year"])
    async def test_invalid_billing_cycle_rejected(self, subscription_store, category_id, user_id, cycle):
        with pytest.raises(ValidationError, match="Invalid billing cycle"):
            await _create(subscription_store, category_id, user_id, billing_cycle=cycle)

    async def test_blank_name_rejected(self, subscription_store, category_id, user_id):
        with pytest.raises(ValidationError):
            await _create(subscription_store, category_id, user_id, name="   ")

    async def test_malformed_category_id_rejected(self, subscription_store, user_id):
        with pytest.raises(ValidationError, match="Invalid category ID"):
            await _create(subscription_store, "1", user_id)


class TestOwnership:
    """A category owned by another user behaves exactly like a missing one."""

    async def test_create_in_foreign_category(self, subscription_store, category_id, other_user_id):
        with pytest.raises(NotFoundError):
            await _create(subscription_store, category_id, other_user_id)

    async def test_list_foreign_category(self, subscription_store, category_id, other_user_id):
        with pytest.raises(NotFoundError):
            await subscription_store.list_by_category(category_id, other_user_id)

    async def test_mutations_on_foreign_subscription(
        self, subscription_store, category_id, user_id, other_user_id
    ):
        created = await _create(subscription_store, category_id, user_id)

        with pytest.raises(NotFoundError):
            await subscription_store.get_subscription(created.id, other_user_id)
        with pytest.raises(NotFoundError):
            await subscription_store.set_cancellation(created.id, other_user_id, datetime(2025, 1, 1))
        with pytest.raises(NotFoundError):
            await subscription_store.delete_subscription(created.id, other_user_id)

        assert (await subscription_store.get_subscription(created.id, user_id)).cancelled_at is None


class TestCancellationTimestamp:
    async def test_clearing_active_subscription_is_noop(self, subscription_store, category_id, user_id):
        created = await _create(subscription_store, category_id, user_id)

        await subscription_store.set_cancellation(created.id, user_id, None)

        assert (await subscription_store.get_subscription(created.id, user_id)).cancelled_at is None

    async def test_set_and_reactivate(self, database, subscription_store, category_id, user_id):
        created = await _create(subscription_store, category_id, user_id)
        moment = datetime(2025, 3, 4, 5, 6, 7)

        await subscription_store.set_cancellation(created.id, user_id, moment)
        async with database.session() as fresh:
            assert (await SubscriptionStore(fresh).get_subscription(created.id, user_id)).cancelled_at == moment

        await subscription_store.set_cancellation(created.id, user_id, None)
        async with database.session() as fresh:
            assert (await SubscriptionStore(fresh).get_subscription(created.id, user_id)).cancelled_at is None

    async def test_missing_subscription(self, subscription_store, user_id):
        with pytest.raises(NotFoundError):
            await subscription_store.set_cancellation(4242, user_id, None)


class TestListing:
    async def test_list_by_category_newest_first(self, subscription_store, category_store, category_id, user_id):
        other_category = await category_store.create_category("Music", user_id)
        first = await _create(subscription_store, category_id, user_id, name="First")
        second = await _create(subscription_store, category_id, user_id, name="Second")
        await _create(subscription_store, other_category.id, user_id, name="Elsewhere")

        listed = await subscription_store.list_by_category(category_id, user_id)

        assert [item.id for item in listed] == [second.id, first.id]

    async def test_delete(self, subscription_store, category_id, user_id):
        created = await _create(subscription_store, category_id, user_id)

        await subscription_store.delete_subscription(created.id, user_id)

        with pytest.raises(NotFoundError):
            await subscription_store.get_subscription(created.id, user_id)


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def http_category_id(auth_client):
    return auth_client.post("/api/categories", json={"name": "Streaming"}).json()["id"]


def _payload(category_id, overrides=None):
    payload = {
        "name": "Netflix",
        "cost": 15.99,
        "billing_cycle": "month",
        "renewal_date": 12,
        "account_info": "alice@example.com",
        "category_id": category_id,
    }
    payload.update(overrides or {})
    return payload


class TestSubscriptionsApi:
    def test_requires_authentication(self, client):
        response = client.post("/api/subscriptions", json=_payload(1))

        assert response.status_code == 401

    def test_create(self, auth_client, http_category_id):
        response = auth_client.post("/api/subscriptions", json=_payload(http_category_id))

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Netflix"
        assert data["cost"] == 15.99
        assert data["billing_cycle"] == "month"
        assert data["renewal_date"] == 12
        assert data["cancelled_at"] is None

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"name": ""}, "Invalid subscription name"),
            ({"cost": -5}, "Invalid cost"),
            ({"billing_cycle": "fortnight"}, "Invalid billing cycle"),
            ({"renewal_date": 0}, "Invalid renewal date"),
            ({"renewal_date": 32}, "Invalid renewal date"),
            ({"category_id": "abc"}, "Invalid category ID"),
        ],
    )
    def test_validation_failures_return_400(self, auth_client, http_category_id, overrides, message):
        response = auth_client.post("/api/subscriptions", json=_payload(http_category_id, overrides))

        assert response.status_code == 400
        assert response.json()["detail"] == message

    def test_foreign_category_returns_404(self, auth_client, http_category_id, login_as):
        login_as("bob")

        response = auth_client.post("/api/subscriptions", json=_payload(http_category_id))

        assert response.status_code == 404

    def test_list_by_category(self, auth_client, http_category_id):
        created = auth_client.post("/api/subscriptions", json=_payload(http_category_id)).json()

        response = auth_client.get(f"/api/categories/{http_category_id}/subscriptions")

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == [created["id"]]

    def test_put_cancellation_and_reactivate(self, auth_client, http_category_id):
        created = auth_client.post("/api/subscriptions", json=_payload(http_category_id)).json()

        response = auth_client.put(
            "/api/subscriptions",
            json={"id": created["id"], "cancelled_at": "2025-05-01T10:00:00Z"},
        )
        assert response.status_code == 200
        assert response.json() == {
            "message": "Subscription cancelled successfully",
            "cancelled_at": "2025-05-01T10:00:00Z",
        }

        response = auth_client.put("/api/subscriptions", json={"id": created["id"], "cancelled_at": None})
        assert response.status_code == 200
        assert response.json()["message"] == "Subscription reactivated successfully"

    @pytest.mark.parametrize("cancelled_at", [123, "not-a-date", True])
    def test_put_invalid_timestamp_returns_400(self, auth_client, http_category_id, cancelled_at):
        created = auth_client.post("/api/subscriptions", json=_payload(http_category_id)).json()

        response = auth_client.put(
            "/api/subscriptions", json={"id": created["id"], "cancelled_at": cancelled_at}
        )

        assert response.status_code == 400

    def test_put_unknown_returns_404(self, auth_client):
        response = auth_client.put("/api/subscriptions", json={"id": 999, "cancelled_at": None})

        assert response.status_code == 404

    def test_delete(self, auth_client, http_category_id):
        created = auth_client.post("/api/subscriptions", json=_payload(http_category_id)).json()

        response = auth_client.request("DELETE", "/api/subscriptions", json={"id": created["id"]})
        assert response.status_code == 200

        response = auth_client.request("DELETE", "/api/subscriptions", json={"id": created["id"]})
        assert response.status_code == 404
