from fastapi import FastAPI, HTTPException, Request, Response
from contextlib import asynccontextmanager
from aiogram.types import Update
from pydantic import BaseModel
from benedict_cafe.bot.router import create_bot, create_dispatcher, setup_webhook, shutdown
from benedict_cafe.config import settings
from benedict_cafe.container import build_container
from benedict_cafe.errors import InitDataError
from benedict_cafe.services.telegram import TelegramBridge
import logging
import sys

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, stream=sys.stdout, force=True)


class InitDataRequest(BaseModel):
    init_data: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = build_container(settings)
    bot = create_bot(settings.TG_TOKEN)
    app.state.container = container
    app.state.bot = bot
    app.state.dp = create_dispatcher(container)

    # Устанавливаем webhook при старте
    try:
        await setup_webhook(bot, settings.WEBHOOK_URL)
        logger.info(f"✅ Webhook установлен: {settings.WEBHOOK_URL}")
    except Exception as e:
        logger.error(f"⚠️ Ошибка установки webhook: {e}")

    yield
    await shutdown(bot, container)


app = FastAPI(lifespan=lifespan, debug=settings.DEBUG)


@app.get("/")
async def root():
    return {"status": "ok", "bot": settings.CAFE_NAME}


@app.post("/webhook")
async def webhook(request: Request):
    update_data = await request.json()
    update = Update(**update_data)
    await request.app.state.dp.feed_update(request.app.state.bot, update)
    return Response(status_code=200)


@app.get("/health")
async def health():
    return {"status": "healthy"}


@app.post("/miniapp/me")
async def miniapp_me(payload: InitDataRequest):
    """Проверка initData Mini App и возврат пользователя"""
    try:
        bridge = TelegramBridge.from_init_data(payload.init_data, settings.TG_TOKEN)
    except InitDataError as e:
        raise HTTPException(status_code=401, detail=e.message)
    user = bridge.get_user()
    return {"success": True, "user": user.model_dump() if user else None}


@app.get("/webhook-info")
async def webhook_info(request: Request):
    """Проверка webhook"""
    try:
        info = await request.app.state.bot.get_webhook_info()
        return {
            "url": info.url,
            "has_custom_certificate": info.has_custom_certificate,
            "pending_update_count": info.pending_update_count,
            "last_error_date": info.last_error_date,
            "last_error_message": info.last_error_message
        }
    except Exception as e:
        return {"status": "error", "message": str(e)}
