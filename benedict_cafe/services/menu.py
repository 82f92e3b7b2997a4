import logging
from typing import Optional

from pydantic import ValidationError

from benedict_cafe.errors import ApiError, PayloadError
from benedict_cafe.models.schemas import MenuData
from benedict_cafe.services.api_client import ApiClient
from benedict_cafe.services.cache import Cache, MemoryCache


logger = logging.getLogger(__name__)

MENU_CACHE_TTL = 30 * 60


class MenuFetcher:
    """Per-branch menu reads with a TTL cache and an empty fallback.

    Concurrent reads of the same stale branch each hit the API and the last
    write wins in the cache.
    """

    def __init__(self, api: ApiClient, cache: Optional[Cache] = None):
        self.api = api
        self.cache = cache if cache is not None else MemoryCache(MENU_CACHE_TTL)

    async def fetch_menu(self, branch_id: str) -> MenuData:
        cached = await self.cache.get(branch_id)
        if cached is not None:
            return MenuData.model_validate(cached)

        try:
            menu = await self.fetch_menu_data(branch_id)
        except ApiError as e:
            logger.error(f"Error fetching menu for {branch_id}: {e}")
            return self.fallback_menu(branch_id)

        await self.cache.set(branch_id, menu.model_dump())
        return menu

    async def fetch_menu_data(self, branch_id: str) -> MenuData:
        """Uncached GET /menu/{branch_id}."""
        data = await self.api.get(f"menu/{branch_id}", default_error="Failed to load menu")
        if not isinstance(data, dict):
            raise PayloadError("Menu payload is not an object")
        try:
            return MenuData(
                branch_id=branch_id,
                categories=data.get("categories") or [],
                items=data.get("items") or [],
            )
        except ValidationError as e:
            raise PayloadError(f"Malformed menu payload: {e.error_count()} errors") from e

    @staticmethod
    def fallback_menu(branch_id: str) -> MenuData:
        return MenuData(branch_id=branch_id, categories=[], items=[])

    async def clear_cache(self, branch_id: str):
        await self.cache.delete(branch_id)

    async def clear_all_cache(self):
        await self.cache.clear()
