"""
Firestore Infrastructure Package for Memorizu

Exports the client lifecycle helpers and repositories.
"""

from memorizu.infrastructure.firestore.client import (
    FirestoreManager,
    get_firestore_manager,
    get_firestore_client,
    init_firestore,
    close_firestore,
)
from memorizu.infrastructure.firestore.user_repository import UserRepository
from memorizu.infrastructure.firestore.page_repository import PageRepository
from memorizu.infrastructure.firestore.pricing_repository import PricingRepository


__all__ = [
    # Client management
    "FirestoreManager",
    "get_firestore_manager",
    "get_firestore_client",
    "init_firestore",
    "close_firestore",
    # Repositories
    "UserRepository",
    "PageRepository",
    "PricingRepository",
]
