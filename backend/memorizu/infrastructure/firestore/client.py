"""
Firestore Client Management for Memorizu

Owns the process-wide Firebase Admin app and async Firestore client.
Created once at startup (lifespan) and torn down at shutdown; handlers get
the client through FastAPI dependencies so tests can swap it out.
"""

import json
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore_async
from google.cloud.firestore import AsyncClient

from memorizu.config.settings import settings
from memorizu.infrastructure.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


class FirestoreManager:
    """
    Manages the Firebase Admin app and the async Firestore client.

    One instance per process (see get_firestore_manager).
    """

    def __init__(self):
        self._app: Optional[firebase_admin.App] = None
        self._client: Optional[AsyncClient] = None

    @property
    def client(self) -> AsyncClient:
        """Get or create the async Firestore client."""
        if self._client is None:
            self._initialize()
        return self._client

    @property
    def initialized(self) -> bool:
        return self._client is not None

    def _build_credential(self):
        """
        Resolve credentials from settings.

        Service account JSON string first, then a key file, then application
        default credentials.
        """
        if settings.firebase_service_account_key:
            try:
                info = json.loads(settings.firebase_service_account_key)
            except json.JSONDecodeError as e:
                raise ConfigurationError(
                    "FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON",
                    original_error=e,
                )
            return credentials.Certificate(info)

        if settings.firebase_service_account_path:
            return credentials.Certificate(settings.firebase_service_account_path)

        return credentials.ApplicationDefault()

    def _initialize(self) -> None:
        """Initialize the Firebase app (reusing an existing one) and client."""
        try:
            self._app = firebase_admin.get_app()
        except ValueError:
            options = {}
            if settings.firebase_project_id:
                options["projectId"] = settings.firebase_project_id
            self._app = firebase_admin.initialize_app(self._build_credential(), options)
            logger.info("Firebase Admin initialized")

        self._client = firestore_async.client(app=self._app)
        logger.info("Firestore async client initialized")

    def close(self) -> None:
        """Release the client and delete the Firebase app."""
        if self._app is not None:
            firebase_admin.delete_app(self._app)
        self._app = None
        self._client = None


# Global instance (lazy initialization)
_firestore_manager: Optional[FirestoreManager] = None


def get_firestore_manager() -> FirestoreManager:
    """Get or create the Firestore manager instance."""
    global _firestore_manager
    if _firestore_manager is None:
        _firestore_manager = FirestoreManager()
    return _firestore_manager


def get_firestore_client() -> AsyncClient:
    """
    Dependency injection for the Firestore client.

    Usage in FastAPI:
        @app.get("/items")
        async def get_items(db: AsyncClient = Depends(get_firestore_client)):
            ...
    """
    return get_firestore_manager().client


def init_firestore() -> None:
    """Initialize the Firestore client (called on app startup)."""
    get_firestore_manager().client


def close_firestore() -> None:
    """Close the Firestore client (called on app shutdown)."""
    get_firestore_manager().close()
