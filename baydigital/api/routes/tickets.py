"""Support ticket endpoints for tenants (admins share the thread endpoints)."""

import uuid

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.api.middleware.auth import get_current_user, is_admin_user
from baydigital.models.account import UserDB
from baydigital.models.ticket import Ticket, TicketCreate, TicketMessage, TicketMessageCreate
from baydigital.services.database import get_db_session
from baydigital.services.tickets import TicketService, sender_display_name

router = APIRouter(prefix="/v1", tags=["tickets"])


class ChangeRequest(BaseModel):
    """Request schema for a website change request."""

    description: str = Field(..., min_length=1, max_length=5000)


class UnreadCountResponse(BaseModel):
    unread_count: int


@router.post("/tickets", response_model=Ticket, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    request: TicketCreate,
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> Ticket:
    """Open a support ticket within the plan's allowance."""
    ticket = await TicketService(db_session).create_ticket(current_user["user_id"], request)
    return Ticket.model_validate(ticket)


@router.post("/change-requests", response_model=Ticket, status_code=status.HTTP_201_CREATED)
async def create_change_request(
    request: ChangeRequest,
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> Ticket:
    ticket = await TicketService(db_session).create_change_request(
        current_user["user_id"], request.description
    )
    return Ticket.model_validate(ticket)


@router.get("/tickets", response_model=list[Ticket])
async def list_tickets(
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> list[Ticket]:
    tickets = await TicketService(db_session).list_tickets(current_user["user_id"])
    return [Ticket.model_validate(ticket) for ticket in tickets]


@router.get("/tickets/{ticket_id}", response_model=Ticket)
async def get_ticket(
    ticket_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    is_admin: bool = Depends(is_admin_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> Ticket:
    ticket = await TicketService(db_session).get_ticket(
        ticket_id, current_user["user_id"], is_admin=is_admin
    )
    return Ticket.model_validate(ticket)


@router.get("/tickets/{ticket_id}/messages", response_model=list[TicketMessage])
async def list_messages(
    ticket_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    is_admin: bool = Depends(is_admin_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> list[TicketMessage]:
    """Ticket thread, oldest first."""
    return await TicketService(db_session).list_messages(
        ticket_id, current_user["user_id"], is_admin=is_admin
    )


@router.post(
    "/tickets/{ticket_id}/messages",
    response_model=TicketMessage,
    status_code=status.HTTP_201_CREATED,
)
async def add_message(
    ticket_id: uuid.UUID,
    request: TicketMessageCreate,
    current_user: dict = Depends(get_current_user),
    is_admin: bool = Depends(is_admin_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> TicketMessage:
    """Reply on a ticket; admins reply as support staff."""
    message = await TicketService(db_session).add_message(
        ticket_id, current_user["user_id"], request.message, is_admin=is_admin
    )
    return TicketMessage(
        id=message.id,
        ticket_id=message.ticket_id,
        user_id=message.user_id,
        message=message.message,
        is_admin=message.is_admin,
        created_at=message.created_at,
        sender_name=sender_display_name(await db_session.get(UserDB, message.user_id)),
    )


@router.post("/tickets/{ticket_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_read(
    ticket_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    is_admin: bool = Depends(is_admin_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> None:
    await TicketService(db_session).mark_read(ticket_id, current_user["user_id"], is_admin=is_admin)


@router.get("/tickets/{ticket_id}/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    ticket_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    is_admin: bool = Depends(is_admin_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> UnreadCountResponse:
    count = await TicketService(db_session).unread_count(
        ticket_id, current_user["user_id"], is_admin=is_admin
    )
    return UnreadCountResponse(unread_count=count)
