"""
Dependency Injection Providers for Memorizu

FastAPI dependencies for the Firestore client and repositories.
Tests replace these through app.dependency_overrides.
"""

from typing import Annotated

from fastapi import Depends
from google.cloud.firestore import AsyncClient

from memorizu.infrastructure.firestore.client import get_firestore_client
from memorizu.infrastructure.firestore.page_repository import PageRepository
from memorizu.infrastructure.firestore.pricing_repository import PricingRepository
from memorizu.infrastructure.firestore.user_repository import UserRepository


# Type alias for client dependency
FirestoreDep = Annotated[AsyncClient, Depends(get_firestore_client)]


def get_user_repository(db: FirestoreDep) -> UserRepository:
    """
    Dependency provider for UserRepository.

    Usage:
        @router.get("/user")
        async def get_user(repo: UserRepository = Depends(get_user_repository)):
            ...
    """
    return UserRepository(db)


def get_page_repository(db: FirestoreDep) -> PageRepository:
    """Dependency provider for PageRepository."""
    return PageRepository(db)


def get_pricing_repository(db: FirestoreDep) -> PricingRepository:
    """Dependency provider for PricingRepository."""
    return PricingRepository(db)


# Type aliases for repository dependencies
UserRepoDep = Annotated[UserRepository, Depends(get_user_repository)]
PageRepoDep = Annotated[PageRepository, Depends(get_page_repository)]
PricingRepoDep = Annotated[PricingRepository, Depends(get_pricing_repository)]
