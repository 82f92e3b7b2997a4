import asyncio
from datetime import date

import pytest

from benedict_cafe.admin.events_editor import (
    DELETE_FAILED,
    VALIDATION_MESSAGES,
    EditorState,
    EventsEditor,
    validate_form,
)
from benedict_cafe.errors import ApiError, FormValidationError
from benedict_cafe.models.schemas import Event, EventForm
from benedict_cafe.services.events import AdminEventsClient

from tests.helpers import Recorder, json_response, make_api, sample_event


class FakeEventsClient:
    """Stands in for AdminEventsClient and records every call."""

    def __init__(self, events=None, fail_with=None):
        self.events = [Event.model_validate(e) for e in (events or [])]
        self.fail_with = fail_with
        self.calls = []

    async def list_events(self, type=None, month=None):
        self.calls.append(("list", type, month))
        return list(self.events)

    async def create_event(self, form, image=None):
        self.calls.append(("create", form.performer))
        if self.fail_with:
            raise self.fail_with

    async def update_event(self, event_id, form, image=None):
        self.calls.append(("update", event_id, form.performer))
        if self.fail_with:
            raise self.fail_with

    async def delete_event(self, event_id):
        self.calls.append(("delete", event_id))
        if self.fail_with:
            raise self.fail_with


def filled_form(**overrides):
    values = dict(date="15/12/2024", performer="Анна", time="20:00")
    values.update(overrides)
    return EventForm(**values)


class TestValidateForm:
    @pytest.mark.parametrize(
        "overrides, field, message",
        [
            (dict(date=""), "date", VALIDATION_MESSAGES["date"]),
            (dict(performer="  "), "performer", VALIDATION_MESSAGES["performer"]),
            (dict(time=""), "time", VALIDATION_MESSAGES["time"]),
            (dict(type="custom", custom_type=""), "custom_type", VALIDATION_MESSAGES["custom_type"]),
            (dict(date="2024-12-15"), "date", VALIDATION_MESSAGES["date_format"]),
            (dict(date="31/02/2024"), "date", VALIDATION_MESSAGES["date_format"]),
        ],
    )
    def test_first_failing_field_is_reported(self, overrides, field, message):
        with pytest.raises(FormValidationError) as info:
            validate_form(filled_form(**overrides))
        assert info.value.field == field
        assert info.value.message == message

    def test_fields_checked_in_display_order(self):
        with pytest.raises(FormValidationError) as info:
            validate_form(EventForm(date="bad", performer="", time=""))
        assert info.value.field == "performer"

    def test_custom_type_ignored_for_known_types(self):
        assert validate_form(filled_form(type="singer", custom_type="")) == date(2024, 12, 15)


class TestSubmit:
    @pytest.mark.asyncio
    async def test_invalid_form_makes_no_request(self):
        recorder = Recorder(lambda request: json_response({"success": True, "events": []}))
        editor = EventsEditor(AdminEventsClient(make_api(recorder)))
        editor.open_create()
        editor.form.performer = "Анна"
        editor.form.time = "20:00"

        with pytest.raises(FormValidationError, match="Дата обязательна"):
            await editor.submit()

        assert recorder.count == 0
        assert editor.state == EditorState.CREATE

    @pytest.mark.asyncio
    async def test_create_success_refreshes_and_closes(self):
        client = FakeEventsClient(events=[sample_event()])
        editor = EventsEditor(client)
        editor.open_create()
        editor.form = filled_form()

        assert await editor.submit() is True

        assert client.calls == [("create", "Анна"), ("list", None, None)]
        assert editor.state == EditorState.LIST
        assert editor.form == EventForm()
        assert [event.id for event in editor.events] == [7]

    @pytest.mark.asyncio
    async def test_edit_sends_update_for_event_id(self):
        client = FakeEventsClient()
        editor = EventsEditor(client)
        form = editor.open_edit(Event.model_validate(sample_event()))
        form.performer = "Мария"

        assert await editor.submit() is True
        assert client.calls[0] == ("update", 7, "Мария")

    @pytest.mark.asyncio
    async def test_server_failure_keeps_form_open(self):
        client = FakeEventsClient(fail_with=ApiError("Дата занята", status=409))
        editor = EventsEditor(client)
        editor.open_create()
        editor.form = filled_form()

        assert await editor.submit() is False

        assert editor.state == EditorState.CREATE
        assert editor.form.performer == "Анна"
        assert editor.error == "Дата занята"
        assert ("list", None, None) not in client.calls

    @pytest.mark.asyncio
    async def test_submit_without_open_form(self):
        with pytest.raises(RuntimeError):
            await EventsEditor(FakeEventsClient()).submit()


class TestDelete:
    @pytest.mark.asyncio
    async def test_confirm_deletes_and_refreshes(self):
        client = FakeEventsClient()
        editor = EventsEditor(client)
        editor.request_delete(7)
        assert editor.state == EditorState.DELETE_CONFIRM

        assert await editor.confirm_delete() is True
        assert client.calls == [("delete", 7), ("list", None, None)]
        assert editor.state == EditorState.LIST

    @pytest.mark.asyncio
    async def test_cancel_makes_no_request(self):
        client = FakeEventsClient()
        editor = EventsEditor(client)
        editor.request_delete(7)
        editor.cancel_delete()

        assert client.calls == []
        assert editor.pending_delete is None
        with pytest.raises(RuntimeError):
            await editor.confirm_delete()

    def test_cancel_leaves_open_form_alone(self):
        editor = EventsEditor(FakeEventsClient())
        editor.open_create().date = "15/12/2024"
        editor.cancel_delete()

        assert editor.is_form_open
        assert editor.form.date == "15/12/2024"

    def test_opening_form_drops_pending_delete(self):
        editor = EventsEditor(FakeEventsClient())
        editor.request_delete(7)
        editor.open_create()

        assert editor.state == EditorState.CREATE
        assert editor.pending_delete is None

    @pytest.mark.asyncio
    async def test_failure_sets_error(self):
        editor = EventsEditor(FakeEventsClient(fail_with=ApiError("boom", status=500)))
        editor.request_delete(7)

        assert await editor.confirm_delete() is False
        assert editor.error == DELETE_FAILED


class TestRefresh:
    @pytest.mark.asyncio
    async def test_filters_are_passed_through(self):
        client = FakeEventsClient()
        editor = EventsEditor(client)
        await editor.set_filter(type="singer", month="")
        assert client.calls == [("list", "singer", None)]

    @pytest.mark.asyncio
    async def test_error_keeps_previous_list(self):
        editor = EventsEditor(FakeEventsClient(events=[sample_event()]))
        await editor.refresh()

        async def failing(type=None, month=None):
            raise ApiError("Failed to load events", status=500)

        editor.client.list_events = failing
        events = await editor.refresh()

        assert [event.id for event in events] == [7]
        assert editor.error == "Failed to load events"
        assert editor.loading is False

    @pytest.mark.asyncio
    async def test_latest_refresh_wins(self):
        slow_release = asyncio.Event()

        class SlowFirstClient(FakeEventsClient):
            async def list_events(self, type=None, month=None):
                self.calls.append(("list", type, month))
                if len(self.calls) == 1:
                    await slow_release.wait()
                    return [Event.model_validate(sample_event(id=1))]
                return [Event.model_validate(sample_event(id=2))]

        editor = EventsEditor(SlowFirstClient())
        first = asyncio.create_task(editor.refresh())
        await asyncio.sleep(0)
        await editor.refresh()
        slow_release.set()
        await first

        assert [event.id for event in editor.events] == [2]


def test_grouped_events_puts_undated_last():
    editor = EventsEditor(FakeEventsClient())
    editor.events = [
        Event.model_validate(sample_event(id=1, date="2024-12-20")),
        Event.model_validate(sample_event(id=2, date=None)),
        Event.model_validate(sample_event(id=3, date="2024-12-15")),
        Event.model_validate(sample_event(id=4, date="2024-12-20")),
    ]

    groups = editor.grouped_events()

    assert [(day, [e.id for e in events]) for day, events in groups] == [
        (date(2024, 12, 15), [3]),
        (date(2024, 12, 20), [1, 4]),
        (None, [2]),
    ]


def test_find_event_matches_string_ids():
    editor = EventsEditor(FakeEventsClient())
    editor.events = [Event.model_validate(sample_event())]
    assert editor.find_event("7").id == 7
    assert editor.find_event(99) is None
