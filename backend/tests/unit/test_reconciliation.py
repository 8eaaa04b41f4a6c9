"""
Unit tests for the publication reconciler.

The reconciler must never publish a page unless Stripe holds a succeeded
charge tagged with exactly that page and user.
"""

import pytest
from unittest.mock import MagicMock

from memorizu.domain.page import PaymentStatus
from memorizu.infrastructure.exceptions import NotFoundError
from memorizu.services.reconciliation_service import (
    ReconciliationService,
    find_publication_charge,
)
from memorizu.services.refund_service import RefundService


@pytest.fixture
def reconciler(mock_stripe_service, user_repo, publication):
    return ReconciliationService(mock_stripe_service, user_repo, publication, max_charges=100)


class TestFindPublicationCharge:

    def test_matches_tagged_succeeded_charge(self, charge_factory):
        charge = charge_factory()
        assert find_publication_charge([charge], "user_1", "page_1") is charge

    @pytest.mark.parametrize("overrides", [
        {"status": "failed"},
        {"page_id": "page_2"},
        {"user_id": "user_2"},
        {"type_": "subscription"},
        {"refunded": True},
        {"disputed": True},
    ])
    def test_rejects_non_matching_charges(self, charge_factory, overrides):
        charge = charge_factory(**overrides)
        assert find_publication_charge([charge], "user_1", "page_1") is None

    def test_returns_first_match_newest_first(self, charge_factory):
        newest = charge_factory(charge_id="ch_new")
        older = charge_factory(charge_id="ch_old")
        assert find_publication_charge([newest, older], "user_1", "page_1")["id"] == "ch_new"

    def test_charge_without_metadata(self):
        assert find_publication_charge([{"id": "ch_1", "status": "succeeded"}], "u", "p") is None


class TestVerifyAndPublish:

    @pytest.mark.asyncio
    async def test_publishes_on_match(
        self, reconciler, mock_stripe_service, user_repo, page_repo, charge_factory
    ):
        user_repo.add("user_1", stripeCustomerId="cus_1")
        page_repo.add("user_1", "page_1")
        mock_stripe_service.list_charges.return_value = [charge_factory(amount=990)]

        result = await reconciler.verify_and_publish("user_1", "page_1")

        assert result["success"] is True
        assert result["page"]["published"] is True
        assert result["page"]["paymentStatus"] == "paid"
        assert result["page"]["recoveredAt"] is not None
        assert result["payment"]["chargeId"] == "ch_1"
        assert result["payment"]["amount"] == 9.9

        doc = page_repo.docs[("user_1", "page_1")]
        assert doc["paymentIntentId"] == "pi_1"
        assert doc["paidAt"].timestamp() == 1_700_000_000

    @pytest.mark.asyncio
    async def test_never_publishes_without_match(
        self, reconciler, mock_stripe_service, user_repo, page_repo, charge_factory
    ):
        user_repo.add("user_1", stripeCustomerId="cus_1")
        page_repo.add("user_1", "page_1")
        mock_stripe_service.list_charges.return_value = [
            charge_factory(page_id="page_2"),
            charge_factory(status="pending"),
        ]

        with pytest.raises(NotFoundError) as exc_info:
            await reconciler.verify_and_publish("user_1", "page_1")

        assert exc_info.value.message == "No successful payment found for this page"
        assert page_repo.writes == []
        assert page_repo.docs[("user_1", "page_1")].get("published") is None

    @pytest.mark.asyncio
    async def test_requires_customer(self, reconciler, mock_stripe_service, user_repo):
        user_repo.add("user_1")

        with pytest.raises(NotFoundError) as exc_info:
            await reconciler.verify_and_publish("user_1", "page_1")

        assert exc_info.value.message == "No Stripe customer found"
        mock_stripe_service.list_charges.assert_not_called()

    @pytest.mark.asyncio
    async def test_scan_is_capped(self, mock_stripe_service, user_repo, publication):
        user_repo.add("user_1", stripeCustomerId="cus_1")
        mock_stripe_service.list_charges.return_value = []
        reconciler = ReconciliationService(
            mock_stripe_service, user_repo, publication, max_charges=25
        )

        with pytest.raises(NotFoundError):
            await reconciler.verify_and_publish("user_1", "page_1")

        mock_stripe_service.list_charges.assert_awaited_once_with("cus_1", max_charges=25)

    @pytest.mark.asyncio
    async def test_repeat_call_keeps_page_paid(
        self, reconciler, mock_stripe_service, user_repo, page_repo, charge_factory
    ):
        user_repo.add("user_1", stripeCustomerId="cus_1")
        page_repo.add("user_1", "page_1")
        mock_stripe_service.list_charges.return_value = [charge_factory()]

        await reconciler.verify_and_publish("user_1", "page_1")
        result = await reconciler.verify_and_publish("user_1", "page_1")

        assert result["page"]["paymentStatus"] == PaymentStatus.PAID.value

    @pytest.mark.asyncio
    async def test_refunded_page_stays_unpublished(
        self, reconciler, mock_stripe_service, user_repo, page_repo, publication, charge_factory
    ):
        user_repo.add("user_1", stripeCustomerId="cus_1")
        page_repo.add("user_1", "page_1", paymentStatus="paid", published=True,
                      paymentIntentId="pi_1")
        mock_stripe_service.create_refund.return_value = MagicMock(id="re_1", amount=100)
        await RefundService(mock_stripe_service, publication).refund_page("user_1", "page_1", "pi_1")
        mock_stripe_service.list_charges.return_value = [charge_factory(refunded=True)]

        with pytest.raises(NotFoundError):
            await reconciler.verify_and_publish("user_1", "page_1")

        doc = page_repo.docs[("user_1", "page_1")]
        assert doc["paymentStatus"] == "refunded"
        assert doc["published"] is False


class TestListPublicationPayments:

    @pytest.mark.asyncio
    async def test_lists_only_publication_charges(
        self, reconciler, mock_stripe_service, user_repo, charge_factory
    ):
        user_repo.add("user_1", stripeCustomerId="cus_1")
        mock_stripe_service.list_charges.return_value = [
            charge_factory(charge_id="ch_pub"),
            charge_factory(charge_id="ch_sub", type_="subscription"),
        ]

        payments = await reconciler.list_publication_payments("user_1")

        assert [p["id"] for p in payments] == ["ch_pub"]
        assert payments[0]["pageId"] == "page_1"
        assert payments[0]["amount"] == 1.0

    @pytest.mark.asyncio
    async def test_empty_without_customer(self, reconciler, mock_stripe_service):
        assert await reconciler.list_publication_payments("nobody") == []
        mock_stripe_service.list_charges.assert_not_called()
