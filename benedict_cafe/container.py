"""Composition root: builds every service once and hands them to the bot."""

from dataclasses import dataclass, field
from typing import Dict, Optional

from benedict_cafe.admin.events_editor import EventsEditor
from benedict_cafe.config import Settings
from benedict_cafe.services.ai import AIService
from benedict_cafe.services.api_client import ApiClient
from benedict_cafe.services.cache import build_cache
from benedict_cafe.services.events import AdminEventsClient, ContentClient
from benedict_cafe.services.menu import MenuFetcher
from benedict_cafe.services.orders import OrdersClient
from benedict_cafe.services.rewards import RewardsClient
from benedict_cafe.services.telegram import TelegramBridge


@dataclass
class Container:
    settings: Settings
    api: ApiClient
    admin_api: ApiClient
    menu: MenuFetcher
    content: ContentClient
    orders: OrdersClient
    rewards: RewardsClient
    admin_events: AdminEventsClient
    ai: AIService
    telegram: TelegramBridge
    # customer auth tokens and admin editors, keyed by Telegram user id
    auth_tokens: Dict[int, str] = field(default_factory=dict)
    editors: Dict[int, EventsEditor] = field(default_factory=dict)

    def editor_for(self, user_id: int) -> EventsEditor:
        editor = self.editors.get(user_id)
        if editor is None:
            editor = EventsEditor(self.admin_events)
            self.editors[user_id] = editor
        return editor

    def is_admin(self, user_id: Optional[int]) -> bool:
        return user_id is not None and user_id in self.settings.admin_ids

    async def close(self):
        await self.api.close()
        await self.admin_api.close()
        await self.menu.cache.close()


def build_container(settings: Settings) -> Container:
    api = ApiClient(settings.API_BASE_URL, timeout=settings.HTTP_TIMEOUT)
    admin_api = ApiClient(
        settings.API_BASE_URL,
        token=settings.ADMIN_API_TOKEN or None,
        timeout=settings.HTTP_TIMEOUT,
    )
    cache = build_cache(
        settings.MENU_CACHE_BACKEND,
        settings.MENU_CACHE_TTL,
        redis_url=settings.REDIS_URL,
        prefix="menu",
    )

    return Container(
        settings=settings,
        api=api,
        admin_api=admin_api,
        menu=MenuFetcher(api, cache),
        content=ContentClient(api),
        orders=OrdersClient(api),
        rewards=RewardsClient(api),
        admin_events=AdminEventsClient(admin_api),
        ai=AIService(
            api_key=settings.GEMINI_API_KEY,
            model=settings.AI_MODEL,
            base_url=settings.AI_BASE_URL,
            cafe_name=settings.CAFE_NAME,
        ),
        # the webhook process has no Mini-App host; per-user bridges come
        # from TelegramBridge.from_init_data
        telegram=TelegramBridge(),
    )
