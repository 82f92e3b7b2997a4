from typing import Any, Iterable, List, Optional, Tuple

from aiogram import html
from aiogram.types import Message

from benedict_cafe.config import Settings
from benedict_cafe.models.schemas import Event, MenuData, PointsBalance, PromotionEvent, Purchase, Reward, EVENT_TYPE_LABELS
from benedict_cafe.services.orders import PurchaseHistory
from benedict_cafe.services.rewards import REWARD_CATEGORIES, RewardFilter, category_of
from benedict_cafe.utils.formatting import format_date_ddmmyyyy, format_datetime, format_price


NO_EVENTS = "Пока нет запланированных мероприятий 📅"
NO_PURCHASES = "У вас пока нет покупок 🛍"
NO_MENU = "Меню этого филиала пока недоступно 🍽"
NO_ADMIN_EVENTS = "Нет событий. Создайте первое событие для дайджеста: /admin_add_event"
NO_REWARDS = "Каталог наград пуст 🎁\nНаграды появятся здесь позже"
NO_MATCHING_REWARDS = "Награды не найдены. По выбранным фильтрам ничего нет, попробуйте /rewards без фильтров"
REWARDS_HELP = "Фильтры: /rewards drinks | food | merchandise | experiences, points-desc | name-asc, available | can-redeem"

# Telegram rejects longer texts
MESSAGE_LIMIT = 4096

TYPE_ICONS = {
    "pianist": "🎹",
    "singer": "🎤",
}


def render_promotions(events: List[PromotionEvent]) -> str:
    if not events:
        return NO_EVENTS

    text = "🎉 Ближайшие события:\n"
    for event in events:
        icon = TYPE_ICONS.get(event.type, "📅")
        star = " ⭐" if event.highlighted else ""
        text += f"\n{icon} {html.bold(html.quote(event.performer))}{star}\n"
        text += f"📅 {event.date} {event.month} ⏰ {html.quote(event.time)}\n"
        text += f"{html.quote(event.type_label)} • {html.quote(event.location)}\n"
    return text


def _item_line(item: Any) -> Optional[str]:
    if not isinstance(item, dict):
        return None
    name = item.get("name") or item.get("title")
    if not name:
        return None
    line = f"  • {html.quote(str(name))}"
    if item.get("price") is not None:
        line += f": {format_price(item['price'])}"
    return line


def render_menu(menu: MenuData) -> str:
    lines = [_item_line(item) for item in menu.items]
    lines = [line for line in lines if line]
    if not lines:
        return NO_MENU

    text = f"🍽 Меню филиала {html.quote(menu.branch_id)}:\n"
    categories = [c.get("name") for c in menu.categories if isinstance(c, dict) and c.get("name")]
    if categories:
        text += "Категории: " + ", ".join(html.quote(str(c)) for c in categories) + "\n"
    return text + "\n" + "\n".join(lines)


def render_purchase(purchase: Purchase) -> str:
    text = f"📦 Заказ #{html.quote(str(purchase.order_number or 'N/A'))}\n"
    text += f"{html.quote(purchase.branch_name or 'Филиал не указан')}\n"
    text += f"{format_datetime(purchase.order_date) or 'Дата не указана'}\n"
    text += f"💰 {format_price(purchase.total_amount or 0)}"
    if purchase.cashback_amount and purchase.cashback_amount > 0:
        text += f" (+{format_price(purchase.cashback_amount)} кешбэк)"
    status = "Завершен" if purchase.is_closed else (purchase.status or "Неизвестно")
    text += f"\nСтатус: {html.quote(status)}"

    if purchase.items:
        text += "\nБлюда:"
        for item in purchase.items:
            text += f"\n  • {html.quote(item.name or 'Блюдо')} × {item.quantity} — {format_price(item.total)}"
    return text


def render_purchase_history(history: PurchaseHistory) -> str:
    if history.error:
        return f"⚠️ {html.quote(history.error)}"
    if not history.purchases:
        return NO_PURCHASES
    return "\n\n".join(render_purchase(purchase) for purchase in history.purchases)


def render_contacts(settings: Settings) -> str:
    text = f"📍 {html.quote(settings.CAFE_NAME)}\n\n"
    if settings.CAFE_ADDRESS:
        text += f"Адрес: {html.quote(settings.CAFE_ADDRESS)}\n"
    if settings.CAFE_PHONE:
        text += f"Телефон: {html.quote(settings.CAFE_PHONE)}\n"
    if settings.CAFE_INSTAGRAM:
        text += f"Instagram: {html.quote(settings.CAFE_INSTAGRAM)}\n"
    return text


def render_reward(reward: Reward) -> str:
    star = " ⭐" if reward.is_featured else ""
    text = f"🎁 {html.bold(html.quote(reward.title))}{star}\n"
    text += f"💎 {reward.points_cost} баллов • {REWARD_CATEGORIES[category_of(reward)]}"
    if reward.stock_quantity is not None:
        text += f" • осталось {reward.stock_quantity}"
    if reward.description:
        text += f"\n{html.quote(reward.description)}"
    return text


def render_rewards(
    rewards: List[Reward],
    catalog_size: int,
    reward_filter: RewardFilter,
    balance: Optional[PointsBalance] = None,
) -> str:
    if catalog_size == 0:
        return NO_REWARDS

    text = ""
    if balance is not None:
        text += f"⭐ Ваш баланс: {balance.points} баллов ({html.quote(balance.tier)})\n\n"
    if not rewards:
        return text + NO_MATCHING_REWARDS

    text += "\n\n".join(render_reward(reward) for reward in rewards)
    if reward_filter.is_default:
        text += f"\n\n{REWARDS_HELP}"
    return text


def render_admin_event(event: Event) -> str:
    label = EVENT_TYPE_LABELS.get(event.type, event.type)
    text = f"{html.bold(html.quote(event.performer))} — {html.quote(event.time)}"
    if event.month:
        text += f" ({html.quote(event.month)})"
    if event.is_highlighted:
        text += " ⭐ Рекомендуется"
    text += "\n" + ("✅ Активно" if event.is_active else "⏸ Неактивно")
    text += f" • {html.quote(label)} • {html.quote(event.location)}"
    if event.description:
        text += f"\n{html.quote(event.description)}"
    return text


def render_admin_events(groups: Iterable[Tuple[Any, List[Event]]]) -> str:
    blocks = []
    for day, events in groups:
        header = html.bold(format_date_ddmmyyyy(day) if day else "Без даты")
        blocks.append(header + "\n" + "\n\n".join(render_admin_event(event) for event in events))
    if not blocks:
        return NO_ADMIN_EVENTS
    return "\n\n".join(blocks)


def split_message(text: str, limit: int = MESSAGE_LIMIT) -> List[str]:
    """Cut text into messages of at most limit characters on line breaks.

    Lines are never joined across chunks, so tags opened on a line close in
    the same chunk. A single line longer than limit is cut hard.
    """
    if len(text) <= limit:
        return [text]

    chunks = []
    current: Optional[str] = None
    for line in text.split("\n"):
        while len(line) > limit:
            if current is not None:
                chunks.append(current)
                current = None
            chunks.append(line[:limit])
            line = line[limit:]
        if current is None:
            current = line
        elif len(current) + 1 + len(line) > limit:
            chunks.append(current)
            current = line
        else:
            current += "\n" + line
    if current is not None:
        chunks.append(current)
    # Telegram refuses blank messages
    return [chunk for chunk in chunks if chunk.strip()]


async def answer_chunks(message: Message, text: str, **kwargs):
    for chunk in split_message(text):
        await message.answer(chunk, **kwargs)
