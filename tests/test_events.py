import logging

from dishdash.events import (
    ACTION_FAILED,
    RECORD_DELETED,
    RECORD_SAVED,
    VALIDATION_FAILED,
    Event,
    EventBus,
    event_bus,
    register_default_handlers,
)


def test_subscribe_and_publish():
    bus = EventBus()
    seen = []

    def handler(event: Event, payload: dict) -> dict:
        seen.append(event.name)
        return {"ok": payload["n"]}

    bus.subscribe(RECORD_SAVED, handler)

    assert bus.publish(RECORD_SAVED, {"n": 1}) == [{"ok": 1}]
    assert seen == [RECORD_SAVED]
    assert bus.publish(RECORD_DELETED, {"n": 2}) == []


def test_subscribe_twice_registers_once():
    bus = EventBus()

    def handler(event, payload):
        return {}

    bus.subscribe(RECORD_SAVED, handler)
    bus.subscribe(RECORD_SAVED, handler)
    assert len(bus.publish(RECORD_SAVED, {})) == 1


def test_unsubscribe():
    bus = EventBus()

    def handler(event, payload):
        return {"called": True}

    bus.subscribe(RECORD_SAVED, handler)
    bus.unsubscribe(RECORD_SAVED, handler)
    bus.unsubscribe(RECORD_DELETED, handler)

    assert bus.publish(RECORD_SAVED, {}) == []


def _notices(bus, name, payload):
    return [r for r in bus.publish(name, payload) if "notice" in r]


def test_default_saved_and_deleted_notices():
    bus = register_default_handlers(EventBus())

    assert _notices(bus, RECORD_SAVED, {"label": "Dish"}) == [
        {"notice": "success", "message": "Dish saved successfully"}
    ]
    assert _notices(bus, RECORD_SAVED, {"label": "Worker", "updated": True})[0]["message"] == "Worker updated successfully"
    assert _notices(bus, RECORD_DELETED, {"label": "Transaction"})[0]["message"] == "Transaction deleted"


def test_failure_notice_is_logged(caplog):
    bus = register_default_handlers(EventBus())

    with caplog.at_level(logging.ERROR, logger="dishdash.events"):
        notices = _notices(bus, ACTION_FAILED, {"action": "save dish", "error": "timeout"})

    assert notices == [{"notice": "error", "message": "Failed to save dish: timeout"}]
    assert "ACTION_FAILED" in caplog.text


def test_validation_notice():
    bus = register_default_handlers(EventBus())
    notices = _notices(bus, VALIDATION_FAILED, {"error": "missing_field", "message": "Amount is required"})

    assert notices == [{"notice": "warning", "message": "Amount is required"}]


def test_module_bus_has_default_handlers():
    assert _notices(event_bus, RECORD_SAVED, {"label": "Income"})[0]["notice"] == "success"
