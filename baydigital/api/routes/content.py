"""AI content generation endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.api.dependencies import get_llm_client
from baydigital.api.middleware.auth import get_current_user
from baydigital.api.middleware.rate_limiter import check_generation_rate_limit
from baydigital.api.routes.stock_images import get_stock_image_service
from baydigital.services.content_generator import ContentGenerator
from baydigital.services.database import get_db_session
from baydigital.services.llm_client import LLMClient
from baydigital.services.stock_images import StockImageService

router = APIRouter(
    prefix="/v1/content",
    tags=["content"],
    dependencies=[Depends(check_generation_rate_limit)],
)


class DocumentFile(BaseModel):
    """Base64 reference document for blog drafting."""

    data: str
    mime_type: str = Field(..., alias="mimeType")

    model_config = {"populate_by_name": True}


class BlogPostRequest(BaseModel):
    topic: str = Field(..., min_length=1, max_length=500)
    tone: str = Field("professional", max_length=50)
    language: str = Field("English", max_length=50)
    images: list = Field(default_factory=list)
    document_file: DocumentFile | None = None


class BlogPostPreview(BaseModel):
    title: str
    meta_title: str | None = None
    meta_description: str | None = None
    keywords: list[str] = Field(default_factory=list)
    body_html: str
    slug: str
    images: list = Field(default_factory=list)


class SocialPostRequest(BaseModel):
    topic: str = Field(..., max_length=500)
    tone: str = Field("professional", max_length=50)
    custom_image: str | None = None


class SocialPostDraft(BaseModel):
    success: bool = True
    post_text: str
    headline: str | None = None
    images: list = Field(default_factory=list)


class CaptionRequest(BaseModel):
    topic: str | None = Field(None, max_length=500)
    platform: str | None = Field(None, max_length=50)
    tone: str | None = Field(None, max_length=50)


class CaptionResponse(BaseModel):
    caption: str


@router.post("/blog-post", response_model=BlogPostPreview)
async def generate_blog_post(
    request: BlogPostRequest,
    current_user: dict = Depends(get_current_user),
    db_session: AsyncSession = Depends(get_db_session),
    llm_client: LLMClient = Depends(get_llm_client),
) -> BlogPostPreview:
    """Draft a blog post preview for the caller's site."""
    generator = ContentGenerator(llm_client=llm_client, db_session=db_session)
    preview = await generator.generate_blog_post(
        current_user["user_id"],
        topic=request.topic,
        tone=request.tone,
        language=request.language,
        images=request.images,
        document_file=request.document_file.model_dump() if request.document_file else None,
    )
    return BlogPostPreview(**preview)


@router.post("/social-post", response_model=SocialPostDraft)
async def generate_social_post(
    request: SocialPostRequest,
    llm_client: LLMClient = Depends(get_llm_client),
    stock_images: StockImageService = Depends(get_stock_image_service),
) -> SocialPostDraft:
    """Write post copy and suggest stock images."""
    generator = ContentGenerator(llm_client=llm_client, stock_images=stock_images)
    return SocialPostDraft(
        **await generator.generate_social_post(
            request.topic,
            tone=request.tone,
            custom_image=request.custom_image,
        )
    )


@router.post("/caption", response_model=CaptionResponse)
async def generate_caption(
    request: CaptionRequest,
    llm_client: LLMClient = Depends(get_llm_client),
) -> CaptionResponse:
    generator = ContentGenerator(llm_client=llm_client)
    caption = await generator.generate_caption(request.topic, request.platform, request.tone)
    return CaptionResponse(caption=caption)
