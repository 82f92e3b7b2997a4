import logging
from typing import Optional

from aiogram import F, Router
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command, CommandObject
from aiogram.types import KeyboardButton, Message, ReplyKeyboardMarkup

from benedict_cafe.bot import views
from benedict_cafe.container import Container
from benedict_cafe.errors import AIConfigurationError
from benedict_cafe.services.rewards import RewardFilter, filter_rewards


logger = logging.getLogger(__name__)

router = Router()

TAB_MENU = "🍽 Меню"
TAB_EVENTS = "🎉 События"
TAB_HISTORY = "📦 История"
TAB_CONTACTS = "📍 Контакты"
TAB_REWARDS = "🎁 Награды"

DEFAULT_BRANCH = "mirabad"


def navigation_keyboard() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text=TAB_MENU), KeyboardButton(text=TAB_EVENTS)],
            [KeyboardButton(text=TAB_HISTORY), KeyboardButton(text=TAB_CONTACTS)],
            [KeyboardButton(text=TAB_REWARDS)],
        ],
        resize_keyboard=True,
    )


@router.message(Command("start"))
async def cmd_start(message: Message, container: Container):
    await message.answer(
        f"Привет! 👋 Это {container.settings.CAFE_NAME}.\n\n"
        "Могу:\n"
        "🍽 Показать меню филиала\n"
        "🎉 Рассказать о событиях\n"
        "📦 Показать историю покупок\n"
        "🎁 Показать каталог наград\n"
        "💬 Ответить на вопрос: /ask ваш вопрос",
        reply_markup=navigation_keyboard(),
    )


@router.message(Command("menu"))
async def cmd_menu(message: Message, command: CommandObject, container: Container):
    branch_id = (command.args or DEFAULT_BRANCH).strip()
    menu = await container.menu.fetch_menu(branch_id)
    await views.answer_chunks(message, views.render_menu(menu))


@router.message(F.text == TAB_MENU)
async def tab_menu(message: Message, container: Container):
    menu = await container.menu.fetch_menu(DEFAULT_BRANCH)
    await views.answer_chunks(message, views.render_menu(menu))


@router.message(Command("events"))
@router.message(F.text == TAB_EVENTS)
async def cmd_events(message: Message, container: Container):
    events = await container.content.get_promotions()
    await views.answer_chunks(message, views.render_promotions(events))


@router.message(Command("login"))
async def cmd_login(message: Message, command: CommandObject, container: Container):
    token = (command.args or "").strip()
    if not token:
        await message.answer("Укажите токен: /login <токен>")
        return
    container.auth_tokens[message.from_user.id] = token
    # the token must not stay in the chat history
    try:
        await message.delete()
    except TelegramAPIError as e:
        logger.warning(f"Could not delete login message for {message.from_user.id}: {e}")
    await message.answer("Готово ✅ Теперь доступна история покупок: /history")


@router.message(Command("history"))
@router.message(F.text == TAB_HISTORY)
async def cmd_history(message: Message, container: Container):
    token = container.auth_tokens.get(message.from_user.id)
    history = await container.orders.get_purchase_history(token)
    await views.answer_chunks(message, views.render_purchase_history(history))


async def send_rewards(message: Message, container: Container, args: Optional[str] = None):
    reward_filter = RewardFilter.parse(args)
    rewards = await container.rewards.get_rewards()
    balance = await container.rewards.get_balance(container.auth_tokens.get(message.from_user.id))
    shown = filter_rewards(rewards, reward_filter, points=balance.points if balance else None)
    await views.answer_chunks(message, views.render_rewards(shown, len(rewards), reward_filter, balance))


@router.message(Command("rewards"))
async def cmd_rewards(message: Message, command: CommandObject, container: Container):
    await send_rewards(message, container, command.args)


@router.message(F.text == TAB_REWARDS)
async def tab_rewards(message: Message, container: Container):
    await send_rewards(message, container)


@router.message(Command("contacts"))
@router.message(F.text == TAB_CONTACTS)
async def cmd_contacts(message: Message, container: Container):
    await message.answer(views.render_contacts(container.settings))


@router.message(Command("reset"))
async def cmd_reset(message: Message, container: Container):
    container.ai.end_chat(str(message.from_user.id))
    await message.answer("Диалог сброшен ✅")


@router.message(Command("ask"))
async def cmd_ask(message: Message, command: CommandObject, container: Container):
    question = (command.args or "").strip()
    if not question:
        await message.answer("Напишите вопрос после команды: /ask Во сколько вы открываетесь?")
        return

    try:
        reply = await container.ai.send_chat_message(str(message.from_user.id), question)
    except AIConfigurationError:
        await message.answer("Ассистент временно недоступен. Позвоните нам напрямую!")
        return
    except Exception as e:
        logger.error(f"AI reply failed for {message.from_user.id}: {e}")
        await message.answer("Извините, возникла техническая проблема. Попробуйте ещё раз через минуту.")
        return

    await views.answer_chunks(message, reply, parse_mode=None)
