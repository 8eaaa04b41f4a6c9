"""
Custom Slug Service

Custom slugs give paid pages a short public URL (/s/{slug}).
"""

import logging
import re
import unicodedata
from typing import Optional

from memorizu.domain.page import Page
from memorizu.infrastructure.exceptions import ConflictError, NotFoundError, ValidationError
from memorizu.infrastructure.firestore.page_repository import PageRepository


logger = logging.getLogger(__name__)

SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 50

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def generate_slug(text: str) -> str:
    """
    Normalize free text into a slug.

    "Nosso Aniversário!" -> "nosso-aniversario"
    """
    ascii_text = (
        unicodedata.normalize("NFKD", text)
        .encode("ascii", "ignore")
        .decode("ascii")
        .lower()
    )
    slug = _NON_SLUG_CHARS.sub("-", ascii_text).strip("-")
    return slug[:SLUG_MAX_LENGTH].rstrip("-")


def validate_slug(slug: str) -> None:
    if len(slug) < SLUG_MIN_LENGTH:
        raise ValidationError(f"Slug must be at least {SLUG_MIN_LENGTH} characters")
    if len(slug) > SLUG_MAX_LENGTH:
        raise ValidationError(f"Slug must be at most {SLUG_MAX_LENGTH} characters")


class SlugService:
    """Assigns, clears and resolves custom slugs."""

    def __init__(self, pages: PageRepository):
        self._pages = pages

    async def _get_page(self, user_id: str, page_id: str) -> Page:
        page = await self._pages.get(user_id, page_id)
        if page is None:
            raise NotFoundError("Page not found", operation="get", collection="pages")
        return page

    async def is_available(
        self,
        slug: str,
        user_id: Optional[str] = None,
        page_id: Optional[str] = None,
    ) -> bool:
        """A slug is available when unused or already used by this page."""
        existing = await self._pages.find_by_custom_slug(slug)
        if existing is None:
            return True
        return existing.id == page_id and existing.user_id == user_id

    async def set_slug(self, user_id: str, page_id: str, requested: str) -> str:
        """
        Assign a custom slug to a paid page.

        Returns:
            The normalized slug that was stored

        Raises:
            ValidationError: slug too short or too long after normalization
            ConflictError: page not paid, or slug used by another page
        """
        slug = generate_slug(requested)
        validate_slug(slug)

        page = await self._get_page(user_id, page_id)
        if not page.is_paid:
            raise ConflictError(
                "Custom URLs are only available for paid pages",
                current_status=page.payment_status.value,
            )

        if not await self.is_available(slug, user_id, page_id):
            raise ConflictError("Slug is already in use")

        await self._pages.update(user_id, page_id, {"customSlug": slug})
        logger.info(f"Page {user_id}/{page_id} now uses slug '{slug}'")
        return slug

    async def remove_slug(self, user_id: str, page_id: str) -> None:
        await self._get_page(user_id, page_id)
        await self._pages.update(user_id, page_id, {"customSlug": None})

    async def resolve(self, slug: str) -> Page:
        """
        Published page for a slug.

        Raises:
            NotFoundError: no page uses the slug, or it is not published
        """
        page = await self._pages.find_by_custom_slug(generate_slug(slug))
        if page is None or not page.published:
            raise NotFoundError("Page not found", operation="query", collection="pages")
        return page
