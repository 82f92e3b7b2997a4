import hashlib
import hmac
import json
import time
from urllib.parse import urlencode

import pytest

from benedict_cafe.errors import InitDataError
from benedict_cafe.models.schemas import ThemeParams
from benedict_cafe.services.telegram import HostState, TelegramBridge, validate_init_data


BOT_TOKEN = "123456:TEST-TOKEN"
USER = {"id": 42, "first_name": "Иван", "username": "ivan", "language_code": "ru"}


def sign_init_data(fields: dict, token: str = BOT_TOKEN) -> str:
    """Build a query string signed the way Telegram signs Mini-App init data."""
    check_string = "\n".join(f"{key}={value}" for key, value in sorted(fields.items()))
    secret = hmac.new(b"WebAppData", token.encode(), hashlib.sha256).digest()
    signature = hmac.new(secret, check_string.encode(), hashlib.sha256).hexdigest()
    return urlencode({**fields, "hash": signature})


def init_fields(auth_date=None, user=USER) -> dict:
    fields = {"auth_date": str(auth_date or int(time.time())), "query_id": "AAE"}
    if user is not None:
        fields["user"] = json.dumps(user, ensure_ascii=False, separators=(",", ":"))
    return fields


class TestUnavailableBridge:
    def test_every_call_is_a_no_op(self):
        bridge = TelegramBridge()

        assert bridge.is_telegram() is False
        assert bridge.get_user() is None
        assert bridge.get_phone() is None
        bridge.show_main_button("Оплатить", lambda: None)
        bridge.hide_main_button()
        bridge.show_back_button(lambda: None)
        bridge.hide_back_button()
        bridge.set_theme_params(ThemeParams(header_color="#000", background_color="#fff"))
        bridge.close()


class TestHostBridge:
    def test_init_marks_host_ready_and_expanded(self):
        host = HostState()
        bridge = TelegramBridge(host)

        assert bridge.is_telegram()
        assert host.is_ready and host.is_expanded

    def test_user_and_phone(self):
        host = HostState(init_data_unsafe={"user": dict(USER, phone_number="+998901234567")})
        bridge = TelegramBridge(host)

        assert bridge.get_user().id == 42
        assert bridge.get_phone() == "+998901234567"

    def test_missing_user(self):
        bridge = TelegramBridge(HostState())
        assert bridge.get_user() is None
        assert bridge.get_phone() is None

    def test_main_button(self):
        host = HostState()
        bridge = TelegramBridge(host)
        clicks = []

        bridge.show_main_button("Оплатить", lambda: clicks.append("main"))
        assert host.main_button.text == "Оплатить"
        assert host.main_button.visible
        host.main_button.click()
        assert clicks == ["main"]

        bridge.hide_main_button()
        assert not host.main_button.visible

    def test_back_button_and_close(self):
        host = HostState()
        bridge = TelegramBridge(host)

        bridge.show_back_button(lambda: None)
        assert host.back_button.visible
        bridge.hide_back_button()
        assert not host.back_button.visible

        bridge.close()
        assert host.is_closed

    def test_theme_params(self):
        host = HostState()
        TelegramBridge(host).set_theme_params(ThemeParams(header_color="#1a1a1a", background_color="#ffffff"))
        assert (host.header_color, host.background_color) == ("#1a1a1a", "#ffffff")


class TestInitData:
    def test_valid_signature_returns_user(self):
        user = validate_init_data(sign_init_data(init_fields()), BOT_TOKEN)
        assert user.id == 42
        assert user.first_name == "Иван"

    def test_wrong_token_is_rejected(self):
        with pytest.raises(InitDataError):
            validate_init_data(sign_init_data(init_fields()), "999:OTHER")

    def test_tampered_payload_is_rejected(self):
        signed = sign_init_data(init_fields())
        with pytest.raises(InitDataError):
            validate_init_data(signed.replace("ivan", "eve"), BOT_TOKEN)

    def test_expired_auth_date(self):
        old = int(time.time()) - 2 * 24 * 3600
        with pytest.raises(InitDataError, match="expired"):
            validate_init_data(sign_init_data(init_fields(auth_date=old)), BOT_TOKEN)

    def test_age_check_can_be_disabled(self):
        old = int(time.time()) - 2 * 24 * 3600
        assert validate_init_data(sign_init_data(init_fields(auth_date=old)), BOT_TOKEN, max_age=None).id == 42

    def test_no_user(self):
        with pytest.raises(InitDataError, match="no user"):
            validate_init_data(sign_init_data(init_fields(user=None)), BOT_TOKEN)

    def test_bridge_from_init_data(self):
        bridge = TelegramBridge.from_init_data(sign_init_data(init_fields()), BOT_TOKEN)
        assert bridge.is_telegram()
        assert bridge.get_user().username == "ivan"
