"""Remote API base URL stored on the device."""

import httpx

from taxbridge_sync.application.dto.responses import ApiBaseUrlResponse
from taxbridge_sync.config import get_logger, get_settings
from taxbridge_sync.core.exceptions import ValidationError
from taxbridge_sync.core.interfaces import ISettingsStore

logger = get_logger(__name__)

API_BASE_URL_KEY = "api:baseUrl"


def validate_base_url(url: str) -> str:
    """Return the normalized URL or raise ValidationError."""
    candidate = (url or "").strip()
    try:
        parsed = httpx.URL(candidate)
    except (httpx.InvalidURL, TypeError) as e:
        raise ValidationError("url", "not a valid URL", url) from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ValidationError("url", "must be an absolute http(s) URL", url)
    return candidate.rstrip("/")


async def load_stored_base_url(store: ISettingsStore) -> str | None:
    """Stored override, ignoring values that no longer validate."""
    stored = await store.get_setting(API_BASE_URL_KEY)
    if not stored:
        return None
    try:
        return validate_base_url(stored)
    except ValidationError:
        logger.warning("stored_base_url_invalid", value=stored)
        return None


class GetApiBaseUrlUseCase:
    def __init__(self, store: ISettingsStore | None = None):
        self._store = store

    async def _get_store(self) -> ISettingsStore:
        if self._store is None:
            from taxbridge_sync.infrastructure.storage.sqlite import get_record_store

            self._store = await get_record_store()
        return self._store

    async def execute(self) -> ApiBaseUrlResponse:
        stored = await load_stored_base_url(await self._get_store())
        if stored:
            return ApiBaseUrlResponse(url=stored, source="device")
        return ApiBaseUrlResponse(url=get_settings().remote.base_url, source="default")


class SetApiBaseUrlUseCase:
    def __init__(self, store: ISettingsStore | None = None):
        self._store = store

    async def _get_store(self) -> ISettingsStore:
        if self._store is None:
            from taxbridge_sync.infrastructure.storage.sqlite import get_record_store

            self._store = await get_record_store()
        return self._store

    async def execute(self, url: str) -> ApiBaseUrlResponse:
        normalized = validate_base_url(url)
        store = await self._get_store()
        await store.set_setting(API_BASE_URL_KEY, normalized)
        logger.info("api_base_url_updated", url=normalized)
        return ApiBaseUrlResponse(url=normalized, source="device")
