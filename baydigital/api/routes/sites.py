"""Tenant site management endpoints."""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.api.middleware.auth import get_current_user
from baydigital.models.account import Site, SiteCreate
from baydigital.services.database import get_db_session
from baydigital.services.sites import SiteService

router = APIRouter(prefix="/v1/sites", tags=["sites"])


@router.get("", response_model=list[Site])
async def list_sites(
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> list[Site]:
    """The caller's sites with form submission counts."""
    return await SiteService(db_session).list_sites(current_user["user_id"])


@router.post("", response_model=Site, status_code=status.HTTP_201_CREATED)
async def create_site(
    request: SiteCreate,
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> Site:
    site = await SiteService(db_session).create_site(current_user["user_id"], request)
    return Site.model_validate(site)


@router.delete("/{site_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_site(
    site_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> None:
    """Delete one of the caller's sites and its form submissions."""
    await SiteService(db_session).delete_site(site_id, current_user["user_id"])
