"""
Page Routes

Public lookups of published pages and custom slug management.
"""

from fastapi import APIRouter

from memorizu.api.dependencies import (
    AuthUidDep,
    PublicationDep,
    SlugServiceDep,
    authorize_user,
)
from memorizu.api.schemas import SlugRequest, SlugResponse
from memorizu.config.settings import get_settings
from memorizu.infrastructure.exceptions import NotFoundError


router = APIRouter(prefix="/pages", tags=["Pages"])


def _public_page(page) -> dict:
    return page.model_dump(by_alias=True, mode="json")


@router.get("/by-slug/{slug}")
async def get_page_by_slug(slug: str, slugs: SlugServiceDep):
    page = await slugs.resolve(slug)
    return _public_page(page)


@router.get("/{user_id}/{page_id}")
async def get_published_page(user_id: str, page_id: str, publication: PublicationDep):
    """A published page; unpublished pages are reported as missing."""
    page = await publication.get_page(user_id, page_id)
    if not page.published:
        raise NotFoundError("Page not found", operation="get", collection="pages")
    return _public_page(page)


@router.put("/{user_id}/{page_id}/slug", response_model=SlugResponse)
async def set_custom_slug(
    user_id: str,
    page_id: str,
    request: SlugRequest,
    slugs: SlugServiceDep,
    auth_uid: AuthUidDep,
):
    authorize_user(user_id, auth_uid)
    slug = await slugs.set_slug(user_id, page_id, request.slug)
    base_url = get_settings().frontend_url.rstrip("/")
    return SlugResponse(success=True, custom_slug=slug, url=f"{base_url}/s/{slug}")


@router.delete("/{user_id}/{page_id}/slug", response_model=SlugResponse)
async def remove_custom_slug(
    user_id: str,
    page_id: str,
    slugs: SlugServiceDep,
    auth_uid: AuthUidDep,
):
    authorize_user(user_id, auth_uid)
    await slugs.remove_slug(user_id, page_id)
    return SlugResponse(success=True)
