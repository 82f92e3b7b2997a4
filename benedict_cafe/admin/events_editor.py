"""Admin events editor.

Screen flow without any UI attached::

    LIST -> CREATE | EDIT -> submit -> LIST
    LIST -> DELETE_CONFIRM -> LIST

The bot handlers drive one editor per admin conversation.
"""

import logging
from datetime import date
from enum import Enum
from itertools import groupby
from typing import Dict, List, Optional, Tuple, Union

from benedict_cafe.errors import ApiError, FormValidationError
from benedict_cafe.models.schemas import CUSTOM_EVENT_TYPE, Event, EventForm
from benedict_cafe.services.events import AdminEventsClient, EventImage
from benedict_cafe.utils.formatting import parse_date_ddmmyyyy


logger = logging.getLogger(__name__)

VALIDATION_MESSAGES = {
    "date": "Дата обязательна. Введите дату в формате dd/mm/yyyy (например: 15/12/2024)",
    "performer": "Исполнитель обязателен. Введите имя исполнителя или название события.",
    "time": "Время обязательно. Введите время события (например: 20:00)",
    "custom_type": "Тип события обязателен. Введите тип события (например: DJ, Музыкант, и т.д.)",
    "date_format": "Неверный формат даты. Используйте формат dd/mm/yyyy (например: 15/12/2024)",
}

SAVE_FAILED = "Failed to save event"
DELETE_FAILED = "Failed to delete event"


class EditorState(Enum):
    LIST = "list"
    CREATE = "create"
    EDIT = "edit"
    DELETE_CONFIRM = "delete_confirm"


def validate_form(form: EventForm) -> date:
    """Check required fields in display order and return the parsed date.

    Raises:
        FormValidationError: naming the first missing or malformed field.
    """
    if not form.date.strip():
        raise FormValidationError("date", VALIDATION_MESSAGES["date"])
    if not form.performer.strip():
        raise FormValidationError("performer", VALIDATION_MESSAGES["performer"])
    if not form.time.strip():
        raise FormValidationError("time", VALIDATION_MESSAGES["time"])
    if form.type == CUSTOM_EVENT_TYPE and not form.custom_type.strip():
        raise FormValidationError("custom_type", VALIDATION_MESSAGES["custom_type"])

    parsed = parse_date_ddmmyyyy(form.date)
    if parsed is None:
        raise FormValidationError("date", VALIDATION_MESSAGES["date_format"])
    return parsed


class EventsEditor:
    def __init__(self, client: AdminEventsClient):
        self.client = client
        self.state = EditorState.LIST
        self.events: List[Event] = []
        self.filter_type: Optional[str] = None
        self.filter_month: Optional[str] = None
        self.form = EventForm()
        self.image: Optional[EventImage] = None
        self.editing: Optional[Event] = None
        self.pending_delete: Optional[Union[int, str]] = None
        self.error: Optional[str] = None
        self.loading = False
        self._generation = 0

    async def refresh(self) -> List[Event]:
        """Reload the list with the current filters.

        Overlapping calls resolve latest-wins: a response that arrives after
        a newer refresh started is dropped.
        """
        self._generation += 1
        generation = self._generation
        self.loading = True
        try:
            events = await self.client.list_events(type=self.filter_type, month=self.filter_month)
        except ApiError as e:
            logger.error(f"Fetch events error: {e}")
            if generation == self._generation:
                self.error = e.message
                self.loading = False
            return self.events

        if generation == self._generation:
            self.events = events
            self.error = None
            self.loading = False
        return self.events

    async def set_filter(self, type: Optional[str] = None, month: Optional[str] = None) -> List[Event]:
        self.filter_type = type or None
        self.filter_month = month or None
        return await self.refresh()

    @property
    def is_form_open(self) -> bool:
        return self.state in (EditorState.CREATE, EditorState.EDIT)

    def open_create(self) -> EventForm:
        self._reset_form()
        self.pending_delete = None
        self.state = EditorState.CREATE
        return self.form

    def open_edit(self, event: Event) -> EventForm:
        self._reset_form()
        self.editing = event
        self.form = EventForm.from_event(event)
        self.state = EditorState.EDIT
        return self.form

    def close_modal(self):
        self._reset_form()
        self.state = EditorState.LIST

    def _reset_form(self):
        self.editing = None
        self.form = EventForm()
        self.image = None
        self.error = None

    async def submit(self) -> bool:
        """Validate and save the open form.

        Returns True when the event was saved and the list reloaded. On a
        server or connection failure the form stays open with ``error`` set.

        Raises:
            FormValidationError: before any request is made.
        """
        if not self.is_form_open:
            raise RuntimeError("No event form is open")

        validate_form(self.form)

        try:
            if self.editing is not None:
                await self.client.update_event(self.editing.id, self.form, self.image)
            else:
                await self.client.create_event(self.form, self.image)
        except ApiError as e:
            logger.error(f"Event save error: {e}")
            self.error = e.message or SAVE_FAILED
            return False

        await self.refresh()
        self.close_modal()
        return True

    def request_delete(self, event_id: Union[int, str]):
        self.pending_delete = event_id
        self.state = EditorState.DELETE_CONFIRM

    def cancel_delete(self):
        self.pending_delete = None
        if self.state == EditorState.DELETE_CONFIRM:
            self.state = EditorState.LIST

    async def confirm_delete(self) -> bool:
        if self.state != EditorState.DELETE_CONFIRM or self.pending_delete is None:
            raise RuntimeError("No delete is awaiting confirmation")

        event_id = self.pending_delete
        self.pending_delete = None
        self.state = EditorState.LIST
        try:
            await self.client.delete_event(event_id)
        except ApiError as e:
            logger.error(f"Delete error: {e}")
            self.error = DELETE_FAILED
            return False

        await self.refresh()
        return True

    def grouped_events(self) -> List[Tuple[Optional[date], List[Event]]]:
        """Events grouped by date, dated groups first in date order."""
        def sort_key(event: Event):
            return (event.date is None, event.date or date.min)

        ordered = sorted(self.events, key=sort_key)
        return [(day, list(items)) for day, items in groupby(ordered, key=lambda event: event.date)]

    def find_event(self, event_id: Union[int, str]) -> Optional[Event]:
        by_id: Dict[str, Event] = {str(event.id): event for event in self.events}
        return by_id.get(str(event_id))
