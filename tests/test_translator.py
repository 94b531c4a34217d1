"""Tests for relay event translation."""

from datetime import datetime, timezone

import pytest

from helpers import RecordingEmitter, RecordingSink
from osc_bridge.core import OutboundMessage, encode_data_field
from osc_bridge.translator import (
    BUTTON_ACTION,
    CONTROLLER_DATA,
    CONTROLLER_DATA_ACK,
    EventTranslator,
    TranslationRule,
    translate_button_action,
    translate_controller_data,
)

FIXED_NOW = datetime(2025, 2, 6, 10, 27, 4, 714000, tzinfo=timezone.utc)

STEERING_PAYLOAD = {
    "userId": "u1",
    "timestamp": "2025-01-01T00:00:00Z",
    "name": "w1",
    "controlType": "steeringWheel",
    "action": "orientation",
    "data": {"orientation-beta": 5},
}


def _translator(sink=None, emitter=None, **kwargs):
    return EventTranslator(
        sink or RecordingSink(),
        emitter=emitter,
        clock=lambda: FIXED_NOW,
        **kwargs,
    )


def test_controller_data_maps_to_control_type_address():
    message = translate_controller_data(STEERING_PAYLOAD)

    assert message == OutboundMessage(
        address="/controller/steeringWheel",
        args=(
            "u1",
            "2025-01-01T00:00:00Z",
            "w1",
            "orientation",
            '{"orientation-beta":5}',
        ),
    )


@pytest.mark.parametrize(
    "data, expected",
    [
        ({"orientation-gama": 0, "orientation-beta": -12.5}, '{"orientation-gama":0,"orientation-beta":-12.5}'),
        ([1, 2, {"x": None}], '[1,2,{"x":null}]'),
        ({"label": "café"}, '{"label":"café"}'),
        (42, "42"),
        (3.0, "3"),
        (0.25, "0.25"),
        (True, "true"),
        (False, "false"),
        ("pressed", "pressed"),
        ("", ""),
        (None, "null"),
    ],
)
def test_data_field_encoding(data, expected):
    payload = dict(STEERING_PAYLOAD, data=data)

    assert translate_controller_data(payload).args[4] == expected
    assert encode_data_field(data) == expected


def test_controller_data_absent_data_is_null_text():
    payload = {key: value for key, value in STEERING_PAYLOAD.items() if key != "data"}

    assert translate_controller_data(payload).args[4] == "null"


def test_controller_data_missing_fields_degrade_to_placeholders():
    message = translate_controller_data({"data": {"x": 1}})

    assert message.address == "/controller/null"
    assert message.args == ("null", "null", "null", "null", '{"x":1}')


def test_controller_data_non_mapping_payload_does_not_raise():
    message = translate_controller_data("garbage")

    assert message.address == "/controller/null"
    assert len(message.args) == 5


def test_controller_data_keeps_numeric_fields_numeric():
    message = translate_controller_data(dict(STEERING_PAYLOAD, userId=17))

    assert message.args[0] == 17


def test_button_action_without_user_or_timestamp():
    message = translate_button_action({"name": "btn1", "action": "press"})

    assert message.address == "/controller/btn1/press"
    assert message.args == ("", "")


def test_button_action_with_user_and_timestamp():
    message = translate_button_action(
        {"name": "btn1", "action": "release", "userId": "u9", "timestamp": "t"}
    )

    assert message.address == "/controller/btn1/release"
    assert message.args == ("u9", "t")


@pytest.mark.asyncio
async def test_controller_data_is_sent_then_acknowledged():
    sink = RecordingSink()
    emitter = RecordingEmitter()
    translator = _translator(sink, emitter)

    message = await translator.handle(CONTROLLER_DATA, STEERING_PAYLOAD)

    assert message is not None
    assert sink.sent == [(message.address, message.args)]
    assert emitter.emitted == [
        (
            CONTROLLER_DATA_ACK,
            {
                "status": "ok",
                "receivedAt": "2025-02-06T10:27:04.714Z",
                "originalData": STEERING_PAYLOAD,
            },
        )
    ]
    assert translator.stats.forwarded == 1
    assert translator.stats.acknowledged == 1


@pytest.mark.asyncio
async def test_button_action_is_not_acknowledged():
    sink = RecordingSink()
    emitter = RecordingEmitter()
    translator = _translator(sink, emitter)

    await translator.handle(BUTTON_ACTION, {"name": "btn1", "action": "press"})

    assert sink.sent == [("/controller/btn1/press", ("", ""))]
    assert emitter.emitted == []


@pytest.mark.asyncio
async def test_unknown_event_type_is_dropped():
    sink = RecordingSink()
    emitter = RecordingEmitter()
    translator = _translator(sink, emitter)

    assert await translator.handle("joystick_action", {"name": "j1"}) is None
    assert sink.sent == []
    assert emitter.emitted == []
    assert translator.stats.received == 0


@pytest.mark.asyncio
async def test_failed_send_is_counted_and_still_acknowledged():
    sink = RecordingSink(succeed=False)
    emitter = RecordingEmitter()
    translator = _translator(sink, emitter)

    await translator.handle(CONTROLLER_DATA, STEERING_PAYLOAD)

    assert translator.stats.send_failures == 1
    assert translator.stats.forwarded == 0
    assert len(emitter.emitted) == 1


@pytest.mark.asyncio
async def test_failing_rule_is_isolated():
    def explode(payload):
        raise KeyError("boom")

    sink = RecordingSink()
    translator = _translator(sink)
    translator.register(TranslationRule("toggle_action", explode))

    assert await translator.handle("toggle_action", {}) is None
    assert translator.stats.translation_errors == 1

    await translator.handle(BUTTON_ACTION, {"name": "b", "action": "press"})
    assert len(sink.sent) == 1


@pytest.mark.asyncio
async def test_custom_rule_with_acknowledgement():
    sink = RecordingSink()
    emitter = RecordingEmitter()
    translator = _translator(sink, emitter)
    translator.register(
        TranslationRule(
            "toggle_action",
            lambda payload: OutboundMessage("/controller/toggle", (payload["state"],)),
            ack_event="toggle_action_ack",
        )
    )

    await translator.handle("toggle_action", {"state": 1})

    assert sink.sent == [("/controller/toggle", (1,))]
    assert emitter.emitted[0][0] == "toggle_action_ack"


def test_bind_registers_one_handler_per_rule():
    class _Source:
        def __init__(self):
            self.handlers = {}

        def on(self, event, handler):
            self.handlers[event] = handler

    source = _Source()
    translator = _translator()
    translator.bind(source)

    assert set(source.handlers) == {CONTROLLER_DATA, BUTTON_ACTION}
    assert translator.event_types == (CONTROLLER_DATA, BUTTON_ACTION)
