"""
Integration Tests for Webhooks (Stripe)

Verifies:
- Signature verification failure (400, nothing processed)
- Subscription events sync the user's plan, idempotently
- Publication events move the page through its states
- Handler failures answer 500 so Stripe retries
"""

from unittest.mock import patch

from memorizu.infrastructure.exceptions import WebhookSignatureError
from memorizu.infrastructure.payments.stripe_service import StripeServiceError


def _event(event_type, data_object, event_id="evt_1"):
    return {"id": event_id, "type": event_type, "data": {"object": data_object}}


def _subscription(status="active", price_id="price_pro", user_id="user_1"):
    return {
        "id": "sub_1",
        "object": "subscription",
        "status": status,
        "customer": "cus_1",
        "current_period_end": 1_900_000_000,
        "cancel_at_period_end": False,
        "metadata": {"userId": user_id, "plan": "pro"},
        "items": {"data": [{"price": {"id": price_id}}]},
    }


class TestSignatureVerification:

    def test_missing_signature_rejected(self, client, mock_stripe_service, user_repo):
        mock_stripe_service.verify_webhook_signature.side_effect = WebhookSignatureError(
            "No signature"
        )

        response = client.post("/api/stripe/webhook", content=b"{}")

        assert response.status_code == 400
        assert response.json()["error"] == "No signature"
        assert user_repo.writes == []

    def test_invalid_signature_rejected(self, client, mock_stripe_service, user_repo):
        mock_stripe_service.verify_webhook_signature.side_effect = WebhookSignatureError(
            "Invalid signature"
        )

        response = client.post(
            "/api/stripe/webhook",
            content=b'{"id": "evt_1"}',
            headers={"stripe-signature": "t=1,v1=bad"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid signature"
        assert user_repo.writes == []

    def test_signature_header_passed_through(self, client, mock_stripe_service):
        mock_stripe_service.verify_webhook_signature.return_value = _event(
            "customer.created", {"object": "customer"}
        )

        client.post(
            "/api/stripe/webhook",
            content=b'{"id": "evt_1"}',
            headers={"stripe-signature": "t=1,v1=good"},
        )

        mock_stripe_service.verify_webhook_signature.assert_called_once_with(
            b'{"id": "evt_1"}', "t=1,v1=good", publication=False
        )

    def test_publication_endpoint_uses_publication_secret(self, client, mock_stripe_service):
        mock_stripe_service.verify_webhook_signature.return_value = _event(
            "customer.created", {"object": "customer"}
        )

        response = client.post(
            "/api/stripe/publication-webhook",
            content=b"{}",
            headers={"stripe-signature": "sig"},
        )

        assert response.status_code == 200
        assert mock_stripe_service.verify_webhook_signature.call_args.kwargs == {
            "publication": True
        }


class TestSubscriptionEvents:

    def _post(self, client, mock_stripe_service, event):
        mock_stripe_service.verify_webhook_signature.return_value = event
        return client.post(
            "/api/stripe/webhook",
            content=b"{}",
            headers={"stripe-signature": "valid_sig"},
        )

    def test_unknown_event_acknowledged(self, client, mock_stripe_service, user_repo):
        response = self._post(
            client, mock_stripe_service, _event("customer.created", {"object": "customer"})
        )

        assert response.status_code == 200
        assert response.json() == {"received": True}
        assert user_repo.writes == []

    def test_subscription_updated_syncs_plan(self, client, mock_stripe_service, user_repo):
        response = self._post(
            client,
            mock_stripe_service,
            _event("customer.subscription.updated", _subscription()),
        )

        assert response.status_code == 200
        doc = user_repo.docs["user_1"]
        assert doc["plan"] == "pro"
        assert doc["subscriptionId"] == "sub_1"
        assert doc["subscriptionStatus"] == "active"
        assert doc["stripeCustomerId"] == "cus_1"
        assert doc["cancelAtPeriodEnd"] is False

    def test_subscription_updated_is_idempotent(self, client, mock_stripe_service, user_repo):
        event = _event("customer.subscription.updated", _subscription())

        self._post(client, mock_stripe_service, event)
        first = {k: v for k, v in user_repo.docs["user_1"].items() if k != "updatedAt"}
        self._post(client, mock_stripe_service, event)
        second = {k: v for k, v in user_repo.docs["user_1"].items() if k != "updatedAt"}

        assert first == second

    def test_subscription_deleted_downgrades(self, client, mock_stripe_service, user_repo):
        user_repo.add("user_1", plan="pro", subscriptionId="sub_1", subscriptionStatus="active")

        self._post(
            client,
            mock_stripe_service,
            _event("customer.subscription.deleted", _subscription(status="canceled")),
        )

        doc = user_repo.docs["user_1"]
        assert doc["plan"] == "free"
        assert doc["subscriptionId"] is None
        assert doc["subscriptionStatus"] == "canceled"

    def test_handler_failure_returns_500(self, client, mock_stripe_service):
        mock_stripe_service.get_subscription.side_effect = StripeServiceError(
            "Failed to retrieve subscription"
        )
        invoice = {"id": "in_1", "subscription": "sub_1", "customer": "cus_1"}

        response = self._post(
            client, mock_stripe_service, _event("invoice.payment_succeeded", invoice)
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Webhook handler failed"}

    def test_unexpected_error_returns_500(self, client, mock_stripe_service):
        with patch(
            "memorizu.services.webhook_service.WebhookDispatcher.handle_subscription_change",
            side_effect=RuntimeError("boom"),
        ):
            response = self._post(
                client,
                mock_stripe_service,
                _event("customer.subscription.created", _subscription()),
            )

        assert response.status_code == 500


class TestPublicationEvents:

    def _post(self, client, mock_stripe_service, event):
        mock_stripe_service.verify_webhook_signature.return_value = event
        return client.post(
            "/api/stripe/publication-webhook",
            content=b"{}",
            headers={"stripe-signature": "valid_sig"},
        )

    def test_checkout_completed_publishes_page(self, client, mock_stripe_service, page_repo):
        page_repo.add("user_1", "page_1", paymentStatus="unpaid")
        session = {
            "id": "cs_1",
            "payment_status": "paid",
            "payment_intent": "pi_1",
            "metadata": {"userId": "user_1", "pageId": "page_1", "type": "page_publication"},
        }

        response = self._post(
            client, mock_stripe_service, _event("checkout.session.completed", session)
        )

        assert response.status_code == 200
        doc = page_repo.docs[("user_1", "page_1")]
        assert doc["paymentStatus"] == "paid"
        assert doc["published"] is True
        assert doc["paymentIntentId"] == "pi_1"
        assert doc["publishedUrl"] == "user_1/page_1"

    def test_subscription_checkout_does_not_touch_pages(
        self, client, mock_stripe_service, page_repo
    ):
        page_repo.add("user_1", "page_1", paymentStatus="unpaid")
        session = {
            "id": "cs_1",
            "payment_status": "paid",
            "metadata": {"userId": "user_1", "plan": "pro"},
        }

        self._post(client, mock_stripe_service, _event("checkout.session.completed", session))

        assert page_repo.writes == []

    def test_missing_page_is_acknowledged(self, client, mock_stripe_service, page_repo):
        intent = {
            "id": "pi_1",
            "metadata": {"userId": "user_1", "pageId": "gone", "type": "page_publication"},
        }

        response = self._post(
            client, mock_stripe_service, _event("payment_intent.succeeded", intent)
        )

        assert response.status_code == 200
        assert page_repo.writes == []

    def test_dispute_unpublishes_page(self, client, mock_stripe_service, page_repo, charge_factory):
        page_repo.add("user_1", "page_1", paymentStatus="paid", published=True)
        mock_stripe_service.get_charge.return_value = charge_factory()

        response = self._post(
            client,
            mock_stripe_service,
            _event("charge.dispute.created", {"id": "dp_1", "charge": "ch_1"}),
        )

        assert response.status_code == 200
        doc = page_repo.docs[("user_1", "page_1")]
        assert doc["paymentStatus"] == "disputed"
        assert doc["published"] is False
        assert doc["disputeId"] == "dp_1"
