"""Admin console endpoints: overview, tenants, their sites and the ticket queue."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.api.middleware.auth import require_admin
from baydigital.models.account import AdminOverview, AdminUser, AdminUserUpdate, Site, SiteCreate
from baydigital.models.ticket import Ticket, TicketStatus, TicketUpdate
from baydigital.services.admin import AdminService
from baydigital.services.database import get_db_session
from baydigital.services.sites import SiteService
from baydigital.services.tickets import TicketService

router = APIRouter(prefix="/v1/admin", tags=["admin"])


class AdminUserDetail(BaseModel):
    """One tenant with their tickets and sites."""

    user: AdminUser
    tickets: list[Ticket] = Field(default_factory=list)
    sites: list[Site] = Field(default_factory=list)


@router.get("/overview", response_model=AdminOverview)
async def admin_overview(
    admin: dict = Depends(require_admin),
    db_session: AsyncSession = Depends(get_db_session),
) -> AdminOverview:
    return await AdminService(db_session).overview()


# ========== Tenants ==========


@router.get("/users", response_model=list[AdminUser])
async def admin_list_users(
    admin: dict = Depends(require_admin),
    db_session: AsyncSession = Depends(get_db_session),
) -> list[AdminUser]:
    """All tenants, newest first."""
    users = await AdminService(db_session).list_users()
    return [AdminUser.model_validate(user) for user in users]


@router.get("/users/{user_id}", response_model=AdminUserDetail)
async def admin_get_user(
    user_id: uuid.UUID,
    admin: dict = Depends(require_admin),
    db_session: AsyncSession = Depends(get_db_session),
) -> AdminUserDetail:
    service = AdminService(db_session)
    user = await service.get_user(user_id)
    tickets = await service.get_user_tickets(user_id)
    sites = await SiteService(db_session).list_sites(user_id)
    return AdminUserDetail(
        user=AdminUser.model_validate(user),
        tickets=[Ticket.model_validate(ticket) for ticket in tickets],
        sites=sites,
    )


@router.patch("/users/{user_id}", response_model=AdminUser)
async def admin_update_user(
    user_id: uuid.UUID,
    update: AdminUserUpdate,
    admin: dict = Depends(require_admin),
    db_session: AsyncSession = Depends(get_db_session),
) -> AdminUser:
    user = await AdminService(db_session).update_user(user_id, update)
    return AdminUser.model_validate(user)


@router.get("/users/{user_id}/sites", response_model=list[Site])
async def admin_list_user_sites(
    user_id: uuid.UUID,
    admin: dict = Depends(require_admin),
    db_session: AsyncSession = Depends(get_db_session),
) -> list[Site]:
    return await SiteService(db_session).list_sites(user_id)


@router.post("/users/{user_id}/sites", response_model=Site, status_code=status.HTTP_201_CREATED)
async def admin_create_user_site(
    user_id: uuid.UUID,
    request: SiteCreate,
    admin: dict = Depends(require_admin),
    db_session: AsyncSession = Depends(get_db_session),
) -> Site:
    """Add a site on a tenant's behalf."""
    site = await SiteService(db_session).create_site(user_id, request)
    return Site.model_validate(site)


@router.delete("/sites/{site_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_site(
    site_id: uuid.UUID,
    admin: dict = Depends(require_admin),
    db_session: AsyncSession = Depends(get_db_session),
) -> None:
    await SiteService(db_session).delete_site(site_id)


# ========== Ticket queue ==========


@router.get("/tickets", response_model=list[Ticket])
async def admin_list_tickets(
    ticket_status: TicketStatus | None = Query(None, alias="status"),
    admin: dict = Depends(require_admin),
    db_session: AsyncSession = Depends(get_db_session),
) -> list[Ticket]:
    """All tickets: open first, then by priority, then newest."""
    tickets = await TicketService(db_session).admin_list_tickets(ticket_status)
    return [Ticket.model_validate(ticket) for ticket in tickets]


@router.patch("/tickets/{ticket_id}", response_model=Ticket)
async def admin_update_ticket(
    ticket_id: uuid.UUID,
    update: TicketUpdate,
    admin: dict = Depends(require_admin),
    db_session: AsyncSession = Depends(get_db_session),
) -> Ticket:
    ticket = await TicketService(db_session).update_ticket(ticket_id, update)
    return Ticket.model_validate(ticket)
