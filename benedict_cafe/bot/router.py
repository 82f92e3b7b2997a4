from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from benedict_cafe.bot.admin import router as admin_router
from benedict_cafe.bot.handlers import router
from benedict_cafe.container import Container
from benedict_cafe.errors import ConfigurationError


def create_bot(token: str) -> Bot:
    if not token:
        raise ConfigurationError("TG_TOKEN is not defined. Please add it to your .env file before running the bot.")
    return Bot(
        token=token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )


def create_dispatcher(container: Container) -> Dispatcher:
    # handlers receive the container as the `container` keyword
    dp = Dispatcher(container=container)
    dp.include_router(admin_router)
    dp.include_router(router)
    return dp


async def setup_webhook(bot: Bot, url: str):
    await bot.set_webhook(url, drop_pending_updates=True)


async def shutdown(bot: Bot, container: Container):
    await bot.delete_webhook(drop_pending_updates=True)
    await bot.session.close()
    await container.close()
