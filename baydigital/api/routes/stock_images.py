"""Stock image search and download endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.api.dependencies import get_backend_client
from baydigital.api.middleware.auth import get_current_user
from baydigital.api.middleware.rate_limiter import check_stock_image_rate_limit
from baydigital.services.backend_client import ManagedBackendClient
from baydigital.services.database import get_db_session
from baydigital.services.stock_images import StockImageService

router = APIRouter(prefix="/v1/stock-images", tags=["stock-images"])


class SearchFilters(BaseModel):
    type: str | None = None
    orientation: str | None = None
    license: str | None = None


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=200)
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    filters: SearchFilters = Field(default_factory=SearchFilters)


class DownloadRequest(BaseModel):
    resource_id: str = Field(..., min_length=1, max_length=100)
    image_url: str = Field(..., min_length=1)


class DownloadResponse(BaseModel):
    success: bool
    file_name: str
    public_url: str
    path: str


class UsageResponse(BaseModel):
    used: int
    limit: int
    remaining: int


async def get_stock_image_service(
    db_session: AsyncSession = Depends(get_db_session),
    backend_client: ManagedBackendClient = Depends(get_backend_client),
):
    """Per-request service; its HTTP client is closed when the request ends."""
    service = StockImageService(db_session=db_session, backend_client=backend_client)
    try:
        yield service
    finally:
        await service.close()


@router.post("/search", dependencies=[Depends(check_stock_image_rate_limit)])
async def search(
    request: SearchRequest,
    current_user: dict = Depends(get_current_user),
    service: StockImageService = Depends(get_stock_image_service),
) -> dict:
    """Proxy a Freepik search; the vendor's body is returned unchanged."""
    return await service.search(
        request.query,
        page=request.page,
        limit=request.limit,
        filters=request.filters.model_dump(exclude_none=True),
    )


@router.post(
    "/download",
    response_model=DownloadResponse,
    dependencies=[Depends(check_stock_image_rate_limit)],
)
async def download(
    request: DownloadRequest,
    current_user: dict = Depends(get_current_user),
    service: StockImageService = Depends(get_stock_image_service),
) -> DownloadResponse:
    """Copy an image into the caller's asset library, counting against the monthly quota."""
    result = await service.download(current_user["user_id"], request.resource_id, request.image_url)
    return DownloadResponse(**result)


@router.get("/usage", response_model=UsageResponse)
async def usage(
    current_user: dict = Depends(get_current_user),
    service: StockImageService = Depends(get_stock_image_service),
) -> UsageResponse:
    return UsageResponse(**await service.usage(current_user["user_id"]))
