"""Telegram Mini-App bridge.

The bridge wraps the host control object that Telegram provides to a
Mini-App (``Telegram.WebApp``). When no host is present every call is a
no-op, so callers never check availability themselves.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol

from aiogram.utils.web_app import safe_parse_webapp_init_data

from benedict_cafe.errors import InitDataError
from benedict_cafe.models.schemas import TelegramUser, ThemeParams

logger = logging.getLogger(__name__)

Callback = Callable[[], Any]


class HostButton(Protocol):
    def set_text(self, text: str) -> None: ...

    def show(self) -> None: ...

    def hide(self) -> None: ...

    def on_click(self, callback: Callback) -> None: ...


class WebAppHost(Protocol):
    init_data_unsafe: Dict[str, Any]
    main_button: HostButton
    back_button: HostButton

    def ready(self) -> None: ...

    def expand(self) -> None: ...

    def close(self) -> None: ...

    def set_header_color(self, color: str) -> None: ...

    def set_background_color(self, color: str) -> None: ...


@dataclass
class ButtonState:
    text: str = ""
    visible: bool = False
    callbacks: List[Callback] = field(default_factory=list)

    def set_text(self, text: str) -> None:
        self.text = text

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False

    def on_click(self, callback: Callback) -> None:
        self.callbacks.append(callback)

    def click(self) -> None:
        for callback in list(self.callbacks):
            callback()


@dataclass
class HostState:
    """In-process host that records what the bridge asked it to do."""

    init_data_unsafe: Dict[str, Any] = field(default_factory=dict)
    main_button: ButtonState = field(default_factory=ButtonState)
    back_button: ButtonState = field(default_factory=ButtonState)
    is_ready: bool = False
    is_expanded: bool = False
    is_closed: bool = False
    header_color: Optional[str] = None
    background_color: Optional[str] = None

    def ready(self) -> None:
        self.is_ready = True

    def expand(self) -> None:
        self.is_expanded = True

    def close(self) -> None:
        self.is_closed = True

    def set_header_color(self, color: str) -> None:
        self.header_color = color

    def set_background_color(self, color: str) -> None:
        self.background_color = color


def validate_init_data(
    init_data: str,
    bot_token: str,
    max_age: Optional[timedelta] = timedelta(days=1),
) -> TelegramUser:
    """Check the signature of Mini-App initData and return its user.

    Raises:
        InitDataError: if the hash does not match, auth_date is older than
            max_age, or there is no user in the payload.
    """
    try:
        data = safe_parse_webapp_init_data(token=bot_token, init_data=init_data)
    except ValueError as e:
        logger.warning(f"Rejected init data: {e}")
        raise InitDataError("Invalid init data signature") from e

    if max_age is not None:
        auth_date = data.auth_date
        if auth_date.tzinfo is None:
            auth_date = auth_date.replace(tzinfo=timezone.utc)
        if datetime.now(timezone.utc) - auth_date > max_age:
            raise InitDataError("Init data is expired")

    if data.user is None:
        raise InitDataError("Init data has no user")

    return TelegramUser.model_validate(data.user.model_dump())


class TelegramBridge:
    def __init__(self, host: Optional[WebAppHost] = None):
        self.host = host
        self.is_available = False
        self.init()

    @classmethod
    def from_init_data(cls, init_data: str, bot_token: str) -> "TelegramBridge":
        """Bridge over a HostState seeded with the verified user."""
        user = validate_init_data(init_data, bot_token)
        host = HostState(init_data_unsafe={"user": user.model_dump(exclude_none=True)})
        return cls(host)

    def init(self):
        if self.host is not None:
            self.is_available = True
            self.host.ready()
            self.host.expand()

    def is_telegram(self) -> bool:
        return self.is_available

    def get_user(self) -> Optional[TelegramUser]:
        if not self.is_available:
            return None
        user = (self.host.init_data_unsafe or {}).get("user")
        if not user:
            return None
        return TelegramUser.model_validate(user)

    def get_phone(self) -> Optional[str]:
        user = self.get_user()
        return user.phone_number if user else None

    def show_main_button(self, text: str, on_click: Callback):
        if not self.is_available:
            return
        self.host.main_button.set_text(text)
        self.host.main_button.show()
        self.host.main_button.on_click(on_click)

    def hide_main_button(self):
        if not self.is_available:
            return
        self.host.main_button.hide()

    def show_back_button(self, on_click: Callback):
        if not self.is_available:
            return
        self.host.back_button.show()
        self.host.back_button.on_click(on_click)

    def hide_back_button(self):
        if not self.is_available:
            return
        self.host.back_button.hide()

    def close(self):
        if not self.is_available:
            return
        self.host.close()

    def set_theme_params(self, params: ThemeParams):
        if not self.is_available:
            return
        self.host.set_header_color(params.header_color)
        self.host.set_background_color(params.background_color)
