import logging

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, InlineKeyboardButton, InlineKeyboardMarkup, Message

from benedict_cafe.admin.events_editor import EventsEditor
from benedict_cafe.bot import views
from benedict_cafe.container import Container
from benedict_cafe.errors import FormValidationError
from benedict_cafe.models.schemas import CUSTOM_EVENT_TYPE, Event
from benedict_cafe.utils.formatting import MONTH_ABBRS


logger = logging.getLogger(__name__)

router = Router()

EVENT_TYPES = {
    "pianist": "Пианист",
    "singer": "Вокалист",
    CUSTOM_EVENT_TYPE: "Другой (ввести свой)",
}

FORM_IN_PROGRESS = "Сначала завершите добавление события или отправьте /cancel"


class AddEvent(StatesGroup):
    date = State()
    performer = State()
    time = State()
    type = State()
    custom_type = State()


# field -> state to re-ask after a validation error
FIELD_STATES = {
    "date": AddEvent.date,
    "performer": AddEvent.performer,
    "time": AddEvent.time,
    "custom_type": AddEvent.custom_type,
}


def event_keyboard(event: Event) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        InlineKeyboardButton(text="⭐" if not event.is_highlighted else "☆", callback_data=f"ev_hl:{event.id}"),
        InlineKeyboardButton(text="⏸" if event.is_active else "▶️", callback_data=f"ev_act:{event.id}"),
        InlineKeyboardButton(text="🗑", callback_data=f"ev_del:{event.id}"),
    ]])


def confirm_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        InlineKeyboardButton(text="Да, удалить", callback_data="ev_delc:yes"),
        InlineKeyboardButton(text="Отмена", callback_data="ev_delc:no"),
    ]])


def type_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=label, callback_data=f"ev_type:{value}")]
        for value, label in EVENT_TYPES.items()
    ])


async def form_in_progress(callback: CallbackQuery, state: FSMContext) -> bool:
    # list buttons share the editor with the add-event conversation
    if await state.get_state() is None:
        return False
    await callback.answer(FORM_IN_PROGRESS, show_alert=True)
    return True


async def send_event_list(message: Message, editor: EventsEditor):
    if editor.error:
        await message.answer(f"⚠️ Ошибка: {editor.error}", parse_mode=None)
    await views.answer_chunks(message, views.render_admin_events(editor.grouped_events()))
    for event in editor.events:
        await message.answer(views.render_admin_event(event), reply_markup=event_keyboard(event))


@router.message(Command("admin_events"))
async def cmd_admin_events(message: Message, command: CommandObject, container: Container):
    if not container.is_admin(message.from_user.id):
        return

    event_type, month = None, None
    for arg in (command.args or "").split():
        if arg.upper() in MONTH_ABBRS:
            month = arg.upper()
        else:
            event_type = arg

    editor = container.editor_for(message.from_user.id)
    await editor.set_filter(type=event_type, month=month)
    await send_event_list(message, editor)


@router.callback_query(F.data.startswith("ev_del:"))
async def on_delete(callback: CallbackQuery, state: FSMContext, container: Container):
    if not container.is_admin(callback.from_user.id):
        await callback.answer()
        return
    if await form_in_progress(callback, state):
        return
    editor = container.editor_for(callback.from_user.id)
    editor.request_delete(callback.data.split(":", 1)[1])
    await callback.message.answer("Вы уверены, что хотите удалить это событие?", reply_markup=confirm_keyboard())
    await callback.answer()


@router.callback_query(F.data.startswith("ev_delc:"))
async def on_delete_confirm(callback: CallbackQuery, state: FSMContext, container: Container):
    if not container.is_admin(callback.from_user.id):
        await callback.answer()
        return
    if await form_in_progress(callback, state):
        return
    editor = container.editor_for(callback.from_user.id)
    if callback.data.endswith(":yes") and editor.pending_delete is not None:
        deleted = await editor.confirm_delete()
        await callback.message.edit_text("Событие удалено 🗑" if deleted else f"⚠️ {editor.error}")
    else:
        editor.cancel_delete()
        await callback.message.edit_text("Удаление отменено")
    await callback.answer()


@router.callback_query(F.data.startswith("ev_hl:") | F.data.startswith("ev_act:"))
async def on_toggle(callback: CallbackQuery, state: FSMContext, container: Container):
    if not container.is_admin(callback.from_user.id):
        await callback.answer()
        return
    if await form_in_progress(callback, state):
        return
    editor = container.editor_for(callback.from_user.id)
    action, event_id = callback.data.split(":", 1)
    event = editor.find_event(event_id)
    if event is None:
        await callback.answer("Событие не найдено", show_alert=True)
        return

    form = editor.open_edit(event)
    if action == "ev_hl":
        form.is_highlighted = not form.is_highlighted
    else:
        form.is_active = not form.is_active

    try:
        saved = await editor.submit()
    except FormValidationError as e:
        editor.close_modal()
        await callback.answer(e.message, show_alert=True)
        return

    if not saved:
        error = editor.error
        editor.close_modal()
        await callback.answer(f"Ошибка: {error}", show_alert=True)
        return

    updated = editor.find_event(event_id)
    if updated is not None:
        await callback.message.edit_text(views.render_admin_event(updated), reply_markup=event_keyboard(updated))
    await callback.answer("Сохранено ✅")


@router.message(Command("admin_add_event"))
async def cmd_add_event(message: Message, state: FSMContext, container: Container):
    if not container.is_admin(message.from_user.id):
        return
    container.editor_for(message.from_user.id).open_create()
    await state.set_state(AddEvent.date)
    await message.answer("Дата события (dd/mm/yyyy, например 15/12/2024):")


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext, container: Container):
    if await state.get_state() is None:
        return
    container.editor_for(message.from_user.id).close_modal()
    await state.clear()
    await message.answer("Отменено")


@router.message(AddEvent.date, F.text)
async def on_date(message: Message, state: FSMContext, container: Container):
    container.editor_for(message.from_user.id).form.date = message.text.strip()
    await state.set_state(AddEvent.performer)
    await message.answer("Исполнитель или название события:")


@router.message(AddEvent.performer, F.text)
async def on_performer(message: Message, state: FSMContext, container: Container):
    container.editor_for(message.from_user.id).form.performer = message.text.strip()
    await state.set_state(AddEvent.time)
    await message.answer("Время (например, 20:00):")


@router.message(AddEvent.time, F.text)
async def on_time(message: Message, state: FSMContext, container: Container):
    container.editor_for(message.from_user.id).form.time = message.text.strip()
    await state.set_state(AddEvent.type)
    await message.answer("Тип события:", reply_markup=type_keyboard())


@router.callback_query(AddEvent.type, F.data.startswith("ev_type:"))
async def on_type(callback: CallbackQuery, state: FSMContext, container: Container):
    editor = container.editor_for(callback.from_user.id)
    editor.form.type = callback.data.split(":", 1)[1]
    await callback.answer()
    if editor.form.type == CUSTOM_EVENT_TYPE:
        await state.set_state(AddEvent.custom_type)
        await callback.message.answer("Введите тип события (например: DJ, Музыкант):")
        return
    await submit_event(callback.message, state, editor)


@router.message(AddEvent.custom_type, F.text)
async def on_custom_type(message: Message, state: FSMContext, container: Container):
    editor = container.editor_for(message.from_user.id)
    editor.form.custom_type = message.text.strip()
    await submit_event(message, state, editor)


async def submit_event(message: Message, state: FSMContext, editor: EventsEditor):
    if not editor.is_form_open:
        editor.open_create()
        await state.set_state(AddEvent.date)
        await message.answer("Форма была сброшена. Начните заново.\nДата события (dd/mm/yyyy, например 15/12/2024):")
        return

    try:
        saved = await editor.submit()
    except FormValidationError as e:
        await state.set_state(FIELD_STATES[e.field])
        await message.answer(e.message)
        return

    if not saved:
        await message.answer(f"Ошибка: {editor.error}\nПопробуйте ещё раз или /cancel", parse_mode=None)
        return

    await state.clear()
    await message.answer("Событие сохранено ✅")
    await send_event_list(message, editor)
