import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

from pydantic import ValidationError

from benedict_cafe.errors import ApiError, PayloadError
from benedict_cafe.models.schemas import (
    CUSTOM_EVENT_TYPE,
    DEFAULT_LOCATION,
    EventForm,
    Event,
    EventsResponse,
    PromotionEvent,
)
from benedict_cafe.services.api_client import ApiClient
from benedict_cafe.utils.formatting import get_month_abbr, parse_date_ddmmyyyy


logger = logging.getLogger(__name__)

ADMIN_EVENTS = "admin/events"
PUBLIC_EVENTS = "content/events"


@dataclass
class EventImage:
    filename: str
    content: bytes
    content_type: str = "image/jpeg"


def _bool_field(value: bool) -> str:
    return "true" if value else "false"


def build_event_fields(form: EventForm) -> List[Tuple[str, str]]:
    """Multipart text fields for a create/update request.

    The date goes out as typed (dd/mm/yyyy); the month label is derived
    from it when the form leaves it blank.
    """
    month = form.month
    if not month:
        parsed = parse_date_ddmmyyyy(form.date)
        month = get_month_abbr(parsed) if parsed else ""

    fields = [
        ("month", month),
        ("date", form.date.strip()),
        ("performer", form.performer.strip()),
        ("time", form.time.strip()),
    ]

    if form.type == CUSTOM_EVENT_TYPE and form.custom_type:
        fields.append(("customType", form.custom_type.strip()))
        fields.append(("type", CUSTOM_EVENT_TYPE))
    else:
        fields.append(("type", form.type or "pianist"))

    fields.extend([
        ("isHighlighted", _bool_field(form.is_highlighted)),
        ("description", (form.description or "").strip()),
        ("location", (form.location or DEFAULT_LOCATION).strip()),
        ("isActive", _bool_field(form.is_active)),
        ("displayOrder", str(form.display_order or 0)),
    ])
    return fields


def _multipart(form: EventForm, image: Optional[EventImage]) -> List[Tuple[str, Any]]:
    # (None, value) parts are plain form fields, so the body is multipart
    # even without an image
    parts: List[Tuple[str, Any]] = [(name, (None, value)) for name, value in build_event_fields(form)]
    if image is not None:
        parts.append(("eventImage", (image.filename, image.content, image.content_type)))
    return parts


def parse_events(data: Any) -> List[Event]:
    try:
        response = EventsResponse.model_validate(data)
    except ValidationError as e:
        raise PayloadError(f"Malformed events payload: {e.error_count()} errors") from e
    if not response.success:
        raise ApiError("Failed to load events")
    return response.events


class AdminEventsClient:
    """CRUD over the admin events endpoint."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def list_events(self, type: Optional[str] = None, month: Optional[str] = None) -> List[Event]:
        params = {}
        if type:
            params["type"] = type
        if month:
            params["month"] = month
        data = await self.api.get(ADMIN_EVENTS, params=params or None, default_error="Failed to load events")
        return parse_events(data)

    async def create_event(self, form: EventForm, image: Optional[EventImage] = None):
        logger.info(f"Creating event: {form.date} {form.performer} {form.time} {form.type}")
        await self.api.post(ADMIN_EVENTS, files=_multipart(form, image), default_error="Failed to save event")

    async def update_event(self, event_id: Union[int, str], form: EventForm, image: Optional[EventImage] = None):
        logger.info(f"Updating event {event_id}: {form.date} {form.performer} {form.time} {form.type}")
        await self.api.put(f"{ADMIN_EVENTS}/{event_id}", files=_multipart(form, image), default_error="Failed to save event")

    async def delete_event(self, event_id: Union[int, str]):
        await self.api.delete(f"{ADMIN_EVENTS}/{event_id}", default_error="Failed to delete event")


class ContentClient:
    """Public promotions digest."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def get_events(self) -> List[Event]:
        data = await self.api.get(PUBLIC_EVENTS, default_error="Failed to load events")
        return parse_events(data)

    async def get_promotions(self) -> List[PromotionEvent]:
        """Digest rows for display; an empty list if anything goes wrong."""
        try:
            events = await self.get_events()
        except ApiError as e:
            logger.error(f"Error fetching events: {e}")
            return []
        return [PromotionEvent.from_event(event) for event in events]
