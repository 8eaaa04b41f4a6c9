"""
API Dependencies

FastAPI dependency injection for authentication and the service layer.
Routers import everything they need from here; tests replace providers
through app.dependency_overrides.

Two guards:
- X-Admin-Key header for admin and debug routes
- Firebase ID tokens for user routes, only when ENFORCE_USER_AUTH is set
"""

import logging
import secrets
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth

from memorizu.config.settings import get_settings
from memorizu.infrastructure.firestore.dependencies import (
    PageRepoDep,
    PricingRepoDep,
    UserRepoDep,
)
from memorizu.infrastructure.payments.stripe_service import (
    StripeService,
    get_stripe_service,
)
from memorizu.services.checkout_service import CheckoutService
from memorizu.services.pricing_service import PricingService
from memorizu.services.publication_service import PublicationStateService
from memorizu.services.reconciliation_service import ReconciliationService
from memorizu.services.refund_service import RefundService
from memorizu.services.slug_service import SlugService
from memorizu.services.subscription_limits import SubscriptionLimitService
from memorizu.services.webhook_service import WebhookDispatcher


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


# =============================================================================
# Admin API Key Authentication
# =============================================================================

async def verify_admin_api_key(
    x_admin_key: str = Header(..., description="Admin API key for protected operations")
) -> bool:
    """
    Verify admin API key from header.

    The admin key is read from the ADMIN_API_KEY environment variable.
    """
    expected_key = get_settings().admin_api_key

    if not expected_key:
        logger.error("ADMIN_API_KEY environment variable not set")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin authentication not configured"
        )

    if not secrets.compare_digest(x_admin_key, expected_key):
        logger.warning("Invalid admin API key attempt")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin API key"
        )

    return True


# =============================================================================
# Firebase User Authentication
# =============================================================================

async def get_authenticated_uid(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """
    Firebase uid of the caller, or None when user auth is not enforced.

    Raises:
        HTTPException 401: enforcement is on and the token is missing or invalid
    """
    if not get_settings().enforce_user_auth:
        return None

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        decoded = auth.verify_id_token(credentials.credentials, check_revoked=True)
    except auth.RevokedIdTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Token has been revoked")
    except auth.ExpiredIdTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Token has expired")
    except (auth.InvalidIdTokenError, ValueError) as e:
        logger.warning("Firebase token verification failed: %s", e)
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")

    return decoded.get("uid")


AuthUidDep = Annotated[Optional[str], Depends(get_authenticated_uid)]


def authorize_user(user_id: str, auth_uid: Optional[str]) -> None:
    """
    Reject requests acting on another user's data.

    A None auth_uid means enforcement is off.
    """
    if not get_settings().enforce_user_auth:
        return
    if auth_uid != user_id:
        logger.warning(f"User {auth_uid} attempted to act on user {user_id}")
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Forbidden")


# =============================================================================
# Service Providers
# =============================================================================

StripeDep = Annotated[StripeService, Depends(get_stripe_service)]


def get_publication_service(pages: PageRepoDep) -> PublicationStateService:
    return PublicationStateService(pages)


PublicationDep = Annotated[PublicationStateService, Depends(get_publication_service)]


def get_pricing_service(repo: PricingRepoDep) -> PricingService:
    return PricingService(repo)


PricingServiceDep = Annotated[PricingService, Depends(get_pricing_service)]


def get_checkout_service(
    stripe_service: StripeDep,
    users: UserRepoDep,
    pages: PageRepoDep,
    pricing: PricingServiceDep,
) -> CheckoutService:
    return CheckoutService(stripe_service, users, pages, pricing)


def get_webhook_dispatcher(
    stripe_service: StripeDep,
    users: UserRepoDep,
    publication: PublicationDep,
) -> WebhookDispatcher:
    return WebhookDispatcher(stripe_service, users, publication)


def get_reconciliation_service(
    stripe_service: StripeDep,
    users: UserRepoDep,
    publication: PublicationDep,
) -> ReconciliationService:
    return ReconciliationService(stripe_service, users, publication)


def get_refund_service(
    stripe_service: StripeDep,
    publication: PublicationDep,
) -> RefundService:
    return RefundService(stripe_service, publication)


def get_limit_service(users: UserRepoDep, pages: PageRepoDep) -> SubscriptionLimitService:
    return SubscriptionLimitService(users, pages)


def get_slug_service(pages: PageRepoDep) -> SlugService:
    return SlugService(pages)


CheckoutServiceDep = Annotated[CheckoutService, Depends(get_checkout_service)]
WebhookDispatcherDep = Annotated[WebhookDispatcher, Depends(get_webhook_dispatcher)]
ReconciliationDep = Annotated[ReconciliationService, Depends(get_reconciliation_service)]
RefundServiceDep = Annotated[RefundService, Depends(get_refund_service)]
LimitServiceDep = Annotated[SubscriptionLimitService, Depends(get_limit_service)]
SlugServiceDep = Annotated[SlugService, Depends(get_slug_service)]
