"""Contact form endpoints: public submit plus the owner's inbox."""

import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.api.middleware.auth import get_current_user
from baydigital.models.submission import (
    ContactFormSubmission,
    FormSubmission,
    SubmissionStatusUpdate,
)
from baydigital.services.database import get_db_session
from baydigital.services.submissions import SubmissionService

router = APIRouter(prefix="/v1", tags=["submissions"])


class SubmitResponse(BaseModel):
    success: bool
    message: str
    submission_id: uuid.UUID


@router.post("/forms/submit", response_model=SubmitResponse)
async def submit_form(
    request: ContactFormSubmission,
    db_session: AsyncSession = Depends(get_db_session),
) -> SubmitResponse:
    """Accept a contact form post from a tenant's live website (no auth)."""
    row = await SubmissionService(db_session).submit(request)
    return SubmitResponse(
        success=True,
        message="Form submitted successfully",
        submission_id=row.id,
    )


@router.get("/submissions", response_model=list[FormSubmission])
async def list_submissions(
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> list[FormSubmission]:
    rows = await SubmissionService(db_session).list_for_user(current_user["user_id"])
    return [FormSubmission.model_validate(row) for row in rows]


@router.patch("/submissions/{submission_id}", response_model=FormSubmission)
async def update_submission_status(
    submission_id: uuid.UUID,
    update: SubmissionStatusUpdate,
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> FormSubmission:
    row = await SubmissionService(db_session).update_status(
        submission_id, current_user["user_id"], update.status
    )
    return FormSubmission.model_validate(row)
