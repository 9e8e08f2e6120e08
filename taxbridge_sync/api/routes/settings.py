"""Device settings endpoints."""

from fastapi import APIRouter, Depends

from taxbridge_sync.api.dependencies import get_api_base_url_use_case, set_api_base_url_use_case
from taxbridge_sync.application.dto.requests import SetApiBaseUrlRequest
from taxbridge_sync.application.dto.responses import ApiBaseUrlResponse, ErrorResponse
from taxbridge_sync.application.use_cases import GetApiBaseUrlUseCase, SetApiBaseUrlUseCase

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("/api-base-url", response_model=ApiBaseUrlResponse)
async def get_api_base_url(
    use_case: GetApiBaseUrlUseCase = Depends(get_api_base_url_use_case),
) -> ApiBaseUrlResponse:
    return await use_case.execute()


@router.put(
    "/api-base-url",
    response_model=ApiBaseUrlResponse,
    responses={400: {"model": ErrorResponse}},
)
async def set_api_base_url(
    request: SetApiBaseUrlRequest,
    use_case: SetApiBaseUrlUseCase = Depends(set_api_base_url_use_case),
) -> ApiBaseUrlResponse:
    """Store a remote API base URL on the device; used by the next sync pass."""
    return await use_case.execute(request.url)
