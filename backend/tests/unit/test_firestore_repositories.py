"""
Unit tests for the Firestore repositories.

The AsyncClient is a MagicMock; these tests check document paths, write
semantics and error mapping.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from google.api_core import exceptions as gcp_exceptions

from memorizu.domain.pricing import PublicationPricing
from memorizu.infrastructure.exceptions import DatabaseError, NotFoundError
from memorizu.infrastructure.firestore.page_repository import PageRepository
from memorizu.infrastructure.firestore.pricing_repository import PricingRepository
from memorizu.infrastructure.firestore.user_repository import UserRepository


def _snapshot(doc_id, data):
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = data is not None
    snapshot.to_dict.return_value = data
    return snapshot


@pytest.fixture
def db():
    return MagicMock()


@pytest.fixture
def doc_ref(db):
    """The document reference every path resolves to."""
    ref = MagicMock()
    ref.get = AsyncMock()
    ref.set = AsyncMock()
    ref.update = AsyncMock()
    db.collection.return_value.document.return_value = ref
    ref.collection.return_value.document.return_value = ref
    return ref


class TestUserRepository:

    @pytest.mark.asyncio
    async def test_get_maps_camel_case(self, db, doc_ref):
        doc_ref.get.return_value = _snapshot(
            "user_1", {"plan": "pro", "stripeCustomerId": "cus_1", "cancelAtPeriodEnd": None}
        )

        user = await UserRepository(db).get("user_1")

        db.collection.assert_called_with("users")
        assert user.id == "user_1"
        assert user.plan == "pro"
        assert user.stripe_customer_id == "cus_1"
        assert user.cancel_at_period_end is False

    @pytest.mark.asyncio
    async def test_get_missing(self, db, doc_ref):
        doc_ref.get.return_value = _snapshot("user_1", None)
        assert await UserRepository(db).get("user_1") is None

    @pytest.mark.asyncio
    async def test_update_merges(self, db, doc_ref):
        await UserRepository(db).update("user_1", {"plan": "free"})

        data, = doc_ref.set.call_args.args
        assert data["plan"] == "free"
        assert "updatedAt" in data
        assert doc_ref.set.call_args.kwargs == {"merge": True}

    @pytest.mark.asyncio
    async def test_store_error_wrapped(self, db, doc_ref):
        doc_ref.get.side_effect = gcp_exceptions.ServiceUnavailable("down")

        with pytest.raises(DatabaseError):
            await UserRepository(db).get("user_1")

    @pytest.mark.asyncio
    async def test_malformed_document_wrapped(self, db, doc_ref):
        doc_ref.get.return_value = _snapshot("user_1", {"currentPeriodEnd": "garbage"})

        with pytest.raises(DatabaseError) as exc_info:
            await UserRepository(db).get("user_1")

        assert exc_info.value.details["collection"] == "users"


class TestPageRepository:

    @pytest.mark.asyncio
    async def test_get_page_under_user(self, db, doc_ref):
        doc_ref.get.return_value = _snapshot(
            "page_1", {"title": "Our Story", "paymentStatus": "paid", "published": True}
        )

        page = await PageRepository(db).get("user_1", "page_1")

        db.collection.return_value.document.assert_called_with("user_1")
        doc_ref.collection.assert_called_with("pages")
        assert page.id == "page_1"
        assert page.user_id == "user_1"
        assert page.is_live

    @pytest.mark.asyncio
    async def test_update_missing_page(self, db, doc_ref):
        doc_ref.update.side_effect = gcp_exceptions.NotFound("no document")

        with pytest.raises(NotFoundError):
            await PageRepository(db).update("user_1", "page_1", {"published": True})

    @pytest.mark.asyncio
    async def test_update_adds_timestamp(self, db, doc_ref):
        await PageRepository(db).update("user_1", "page_1", {"customSlug": "abc"})

        data, = doc_ref.update.call_args.args
        assert data["customSlug"] == "abc"
        assert "updatedAt" in data


class TestPricingRepository:

    @pytest.mark.asyncio
    async def test_missing_config(self, db, doc_ref):
        doc_ref.get.return_value = _snapshot("publication", None)

        assert await PricingRepository(db).get() is None
        db.collection.assert_called_with("config")
        db.collection.return_value.document.assert_called_with("publication")

    @pytest.mark.asyncio
    async def test_malformed_config_wrapped(self, db, doc_ref):
        doc_ref.get.return_value = _snapshot("publication", {"price": "1,00", "currency": "brl"})

        with pytest.raises(DatabaseError):
            await PricingRepository(db).get()

    @pytest.mark.asyncio
    async def test_set_overwrites(self, db, doc_ref):
        pricing = PublicationPricing(price=3, currency="usd", description="Fee")

        await PricingRepository(db).set(pricing)

        doc_ref.set.assert_awaited_once_with(
            {"price": 3.0, "currency": "usd", "description": "Fee"}
        )
