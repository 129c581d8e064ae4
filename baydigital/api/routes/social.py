"""Social media scheduling endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.api.dependencies import get_graph_publisher, get_image_stager
from baydigital.api.middleware.auth import get_current_user, require_service_key
from baydigital.models.social import SocialPost, SocialPostCreate
from baydigital.services.database import get_db_session
from baydigital.services.social_posts import DUE_BATCH_SIZE, SocialPostService
from baydigital.services.social_publisher import GraphPublisher, ImageStager

router = APIRouter(prefix="/v1/social", tags=["social"])


class ProcessDueResponse(BaseModel):
    processed: int
    results: list[dict]


class PublishNowResponse(BaseModel):
    post: SocialPost
    result: dict


@router.post("/posts", response_model=SocialPost, status_code=status.HTTP_201_CREATED)
async def schedule_post(
    request: SocialPostCreate,
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> SocialPost:
    """Schedule a post for a future time."""
    post = await SocialPostService(db_session).schedule_post(current_user["user_id"], request)
    return SocialPost.model_validate(post)


@router.post("/drafts", response_model=SocialPost, status_code=status.HTTP_201_CREATED)
async def save_draft(
    request: SocialPostCreate,
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> SocialPost:
    post = await SocialPostService(db_session).save_draft(current_user["user_id"], request)
    return SocialPost.model_validate(post)


@router.post("/posts/publish-now", response_model=PublishNowResponse)
async def publish_now(
    request: SocialPostCreate,
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
    publisher: GraphPublisher = Depends(get_graph_publisher),
    image_stager: ImageStager = Depends(get_image_stager),
) -> PublishNowResponse:
    """Publish straight away; a platform failure is reported in the result, not as an error."""
    service = SocialPostService(db_session, publisher=publisher, image_stager=image_stager)
    post, outcome = await service.publish_now(current_user["user_id"], request)
    return PublishNowResponse(post=SocialPost.model_validate(post), result=outcome)


@router.get("/posts", response_model=list[SocialPost])
async def list_scheduled(
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> list[SocialPost]:
    """Upcoming scheduled and dated draft posts."""
    posts = await SocialPostService(db_session).list_scheduled(current_user["user_id"])
    return [SocialPost.model_validate(post) for post in posts]


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
) -> None:
    await SocialPostService(db_session).delete_post(post_id, current_user["user_id"])


@router.post(
    "/process-due",
    response_model=ProcessDueResponse,
    dependencies=[Depends(require_service_key)],
)
async def process_due_posts(
    limit: int = Query(DUE_BATCH_SIZE, ge=1, le=50),
    db_session: AsyncSession = Depends(get_db_session),
    publisher: GraphPublisher = Depends(get_graph_publisher),
    image_stager: ImageStager = Depends(get_image_stager),
) -> ProcessDueResponse:
    """Publish due posts; called by an external scheduler with the service key."""
    service = SocialPostService(db_session, publisher=publisher, image_stager=image_stager)
    return ProcessDueResponse(**await service.process_due_posts(limit=limit))
