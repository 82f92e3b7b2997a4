import json
import datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, field_validator

from benedict_cafe.utils.formatting import format_date_ddmmyyyy, format_date_with_month


KNOWN_EVENT_TYPES = ("pianist", "singer")
CUSTOM_EVENT_TYPE = "custom"
DEFAULT_LOCATION = "Мирабад"

EVENT_TYPE_LABELS = {
    "pianist": "Пианист",
    "singer": "Вокалист",
}


class Event(BaseModel):
    id: Union[int, str]
    date: Optional[datetime.date] = None
    month: Optional[str] = None
    performer: str
    time: str = ""
    type: str = "pianist"
    is_highlighted: bool = False
    description: Optional[str] = None
    location: str = DEFAULT_LOCATION
    is_active: bool = True
    display_order: int = 0
    image_url: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _strip_time(cls, value: Any) -> Any:
        # server sends either 2024-12-15 or a full ISO timestamp
        if isinstance(value, str):
            return value.split("T")[0] or None
        return value

    @field_validator("location", mode="before")
    @classmethod
    def _default_location(cls, value: Any) -> Any:
        return value or DEFAULT_LOCATION

    @field_validator("time", "type", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("is_highlighted", "is_active", "display_order", mode="before")
    @classmethod
    def _drop_null(cls, value: Any, info) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    @property
    def is_custom_type(self) -> bool:
        return self.type not in KNOWN_EVENT_TYPES


class EventForm(BaseModel):
    """Editable state of the event form; date is kept as typed (dd/mm/yyyy)."""

    date: str = ""
    month: str = ""
    performer: str = ""
    time: str = ""
    type: str = "pianist"
    custom_type: str = ""
    is_highlighted: bool = False
    description: str = ""
    location: str = DEFAULT_LOCATION
    is_active: bool = True
    display_order: int = 0

    @classmethod
    def from_event(cls, event: Event) -> "EventForm":
        custom = event.is_custom_type
        return cls(
            date=format_date_ddmmyyyy(event.date),
            month=event.month or "",
            performer=event.performer,
            time=event.time,
            type=CUSTOM_EVENT_TYPE if custom else event.type,
            custom_type=event.type if custom else "",
            is_highlighted=event.is_highlighted,
            description=event.description or "",
            location=event.location,
            is_active=event.is_active,
            display_order=event.display_order,
        )


class PromotionEvent(BaseModel):
    id: Union[int, str]
    date: str
    month: str
    performer: str
    time: str
    type: str
    highlighted: bool
    location: str

    @classmethod
    def from_event(cls, event: Event) -> "PromotionEvent":
        day_month = format_date_with_month(event.date)
        return cls(
            id=event.id,
            date=day_month.day_month,
            month=event.month or day_month.month,
            performer=event.performer,
            time=event.time,
            type=event.type or "pianist",
            highlighted=event.is_highlighted,
            location=event.location,
        )

    @property
    def type_label(self) -> str:
        return EVENT_TYPE_LABELS.get(self.type, self.type)


class EventsResponse(BaseModel):
    success: bool
    events: List[Event] = []

    @field_validator("events", mode="before")
    @classmethod
    def _null_events(cls, value: Any) -> Any:
        return value or []


class MenuData(BaseModel):
    branch_id: str
    categories: List[Any] = []
    items: List[Any] = []


class PurchaseItem(BaseModel):
    name: Optional[str] = None
    quantity: int = 1
    price: float = 0

    @field_validator("quantity", "price", mode="before")
    @classmethod
    def _drop_null(cls, value: Any, info) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    @property
    def total(self) -> float:
        return self.price * self.quantity


def normalize_purchase_items(raw: Any) -> List[dict]:
    """Items arrive as a JSON string, a list, a single object or nothing."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return []

    if isinstance(raw, dict):
        return [raw]
    if isinstance(raw, list):
        return [item for item in raw if isinstance(item, dict)]
    return []


class Purchase(BaseModel):
    id: Optional[Union[int, str]] = None
    order_number: Optional[Union[int, str]] = None
    branch_name: Optional[str] = None
    order_date: Optional[str] = None
    total_amount: Optional[float] = 0
    cashback_amount: Optional[float] = 0
    status: Optional[str] = None
    items: List[PurchaseItem] = []

    @field_validator("items", mode="before")
    @classmethod
    def _normalize_items(cls, value: Any) -> Any:
        return normalize_purchase_items(value)

    @property
    def is_closed(self) -> bool:
        return self.status == "CLOSED"


class PurchaseHistoryResponse(BaseModel):
    success: bool
    purchases: List[Purchase] = []
    error: Optional[str] = None

    @field_validator("purchases", mode="before")
    @classmethod
    def _null_purchases(cls, value: Any) -> Any:
        return value or []


class TelegramUser(BaseModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: Optional[str] = None
    phone_number: Optional[str] = None


class ThemeParams(BaseModel):
    header_color: str
    background_color: str


REWARD_CATEGORY_OTHER = "other"


class Reward(BaseModel):
    id: Union[int, str]
    title: str = "Награда"
    description: str = ""
    image_url: Optional[str] = None
    points_cost: int = 0
    tier: Optional[str] = None
    category: str = REWARD_CATEGORY_OTHER
    is_featured: bool = False
    stock_quantity: Optional[int] = None
    redemption_limit: Optional[int] = None
    valid_from: Optional[datetime.date] = None
    valid_until: Optional[datetime.date] = None

    @field_validator("valid_from", "valid_until", mode="before")
    @classmethod
    def _strip_time(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.split("T")[0] or None
        return value

    @field_validator("title", "description", "points_cost", "category", "is_featured", mode="before")
    @classmethod
    def _drop_null(cls, value: Any, info) -> Any:
        if value is None or value == "":
            return cls.model_fields[info.field_name].default
        return value

    def is_available(self, today: datetime.date) -> bool:
        if self.stock_quantity is not None and self.stock_quantity <= 0:
            return False
        if self.valid_from and today < self.valid_from:
            return False
        if self.valid_until and today > self.valid_until:
            return False
        return True


class RewardsResponse(BaseModel):
    success: bool
    rewards: List[Reward] = []

    @field_validator("rewards", mode="before")
    @classmethod
    def _null_rewards(cls, value: Any) -> Any:
        return value or []


class PointsBalance(BaseModel):
    points: int = 0
    tier: str = "Bronze"

    @field_validator("points", "tier", mode="before")
    @classmethod
    def _drop_null(cls, value: Any, info) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        return value
