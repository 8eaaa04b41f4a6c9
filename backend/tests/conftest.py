"""
Test configuration and fixtures for Memorizu.

Provides in-memory repositories, a mocked Stripe service and an app wired
to both through dependency overrides. Nothing here talks to Firestore or
Stripe.
"""

import os

# Settings are read once at import time
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("STRIPE_PRO_PRICE_ID", "price_pro")
os.environ.setdefault("STRIPE_BUSINESS_PRICE_ID", "price_business")
os.environ.setdefault("FRONTEND_URL", "http://localhost:3000")

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from memorizu.domain.page import Page
from memorizu.domain.pricing import PublicationPricing
from memorizu.domain.subscription import UserAccount
from memorizu.infrastructure.exceptions import NotFoundError
from memorizu.services.publication_service import PublicationStateService


ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}


# =============================================================================
# In-memory Repositories
# =============================================================================

class InMemoryUserRepository:
    """Same interface as UserRepository, backed by a dict of documents."""

    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.writes: List[Tuple[str, Dict[str, Any]]] = []

    def add(self, user_id: str, **fields) -> None:
        self.docs[user_id] = dict(fields)

    async def get(self, user_id: str) -> Optional[UserAccount]:
        data = self.docs.get(user_id)
        if data is None:
            return None
        return UserAccount.model_validate({**data, "id": user_id})

    async def update(self, user_id: str, fields: Dict[str, Any]) -> None:
        self.writes.append((user_id, dict(fields)))
        doc = self.docs.setdefault(user_id, {})
        doc.update(fields)
        doc["updatedAt"] = datetime.now(timezone.utc)

    async def get_or_create(self, user_id: str) -> UserAccount:
        if user_id not in self.docs:
            self.docs[user_id] = {"createdAt": datetime.now(timezone.utc)}
        return await self.get(user_id)


class InMemoryPageRepository:
    """Same interface as PageRepository, keyed by (userId, pageId)."""

    def __init__(self):
        self.docs: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.writes: List[Tuple[str, str, Dict[str, Any]]] = []

    def add(self, user_id: str, page_id: str, **fields) -> None:
        self.docs[(user_id, page_id)] = {"title": "Our Story", **fields}

    def _to_domain(self, user_id: str, page_id: str) -> Page:
        data = self.docs[(user_id, page_id)]
        return Page.model_validate({**data, "id": page_id, "userId": user_id})

    async def get(self, user_id: str, page_id: str) -> Optional[Page]:
        if (user_id, page_id) not in self.docs:
            return None
        return self._to_domain(user_id, page_id)

    async def list_for_user(self, user_id: str) -> List[Page]:
        return [self._to_domain(uid, pid) for uid, pid in self.docs if uid == user_id]

    async def count_for_user(self, user_id: str) -> int:
        return sum(1 for uid, _ in self.docs if uid == user_id)

    async def find_by_custom_slug(self, slug: str) -> Optional[Page]:
        for (uid, pid), data in self.docs.items():
            if data.get("customSlug") == slug:
                return self._to_domain(uid, pid)
        return None

    async def update(self, user_id: str, page_id: str, fields: Dict[str, Any]) -> None:
        if (user_id, page_id) not in self.docs:
            raise NotFoundError("Page not found", operation="update", collection="pages")
        self.writes.append((user_id, page_id, dict(fields)))
        self.docs[(user_id, page_id)].update(fields)
        self.docs[(user_id, page_id)]["updatedAt"] = datetime.now(timezone.utc)


class InMemoryPricingRepository:
    def __init__(self):
        self.doc: Optional[Dict[str, Any]] = None

    async def get(self) -> Optional[PublicationPricing]:
        if self.doc is None:
            return None
        return PublicationPricing.model_validate(self.doc)

    async def set(self, pricing: PublicationPricing) -> PublicationPricing:
        self.doc = pricing.model_dump()
        return pricing


# =============================================================================
# Repository and Service Fixtures
# =============================================================================

@pytest.fixture
def user_repo():
    return InMemoryUserRepository()


@pytest.fixture
def page_repo():
    return InMemoryPageRepository()


@pytest.fixture
def pricing_repo():
    return InMemoryPricingRepository()


@pytest.fixture
def publication(page_repo):
    return PublicationStateService(page_repo)


@pytest.fixture
def mock_stripe_service():
    """StripeService stand-in; async API methods are AsyncMocks."""
    service = MagicMock()
    for name in (
        "create_customer",
        "get_or_create_customer",
        "create_subscription_checkout_session",
        "create_publication_checkout_session",
        "create_portal_session",
        "get_subscription",
        "get_charge",
        "list_charges",
        "create_refund",
    ):
        setattr(service, name, AsyncMock())
    return service


def make_charge(
    charge_id: str = "ch_1",
    user_id: str = "user_1",
    page_id: str = "page_1",
    status: str = "succeeded",
    payment_intent: str = "pi_1",
    amount: int = 100,
    created: int = 1_700_000_000,
    type_: str = "page_publication",
    refunded: bool = False,
    disputed: bool = False,
) -> Dict[str, Any]:
    """Charge as returned by Stripe's list endpoint (dict-compatible)."""
    return {
        "id": charge_id,
        "status": status,
        "amount": amount,
        "currency": "brl",
        "created": created,
        "payment_intent": payment_intent,
        "receipt_url": f"https://pay.stripe.com/receipts/{charge_id}",
        "refunded": refunded,
        "disputed": disputed,
        "metadata": {"userId": user_id, "pageId": page_id, "type": type_},
    }


@pytest.fixture
def charge_factory():
    return make_charge


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app(user_repo, page_repo, pricing_repo, mock_stripe_service):
    """FastAPI application with in-memory storage and mocked Stripe."""
    from memorizu.main import app
    from memorizu.infrastructure.firestore.dependencies import (
        get_page_repository,
        get_pricing_repository,
        get_user_repository,
    )
    from memorizu.infrastructure.payments.stripe_service import get_stripe_service

    app.dependency_overrides[get_user_repository] = lambda: user_repo
    app.dependency_overrides[get_page_repository] = lambda: page_repo
    app.dependency_overrides[get_pricing_repository] = lambda: pricing_repo
    app.dependency_overrides[get_stripe_service] = lambda: mock_stripe_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Get synchronous test client."""
    return TestClient(app)


@pytest.fixture
def admin_headers():
    return dict(ADMIN_HEADERS)
