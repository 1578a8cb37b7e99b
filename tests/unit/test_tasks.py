from unittest.mock import MagicMock

from unified_checkout import tasks


def test_dispatch_enqueues_booking_and_order_tasks(monkeypatch):
    cal = MagicMock()
    book = MagicMock()
    order = MagicMock()
    monkeypatch.setattr(tasks.sync_booking_calendar, "apply_async", cal)
    monkeypatch.setattr(tasks.send_booking_notifications, "apply_async", book)
    monkeypatch.setattr(tasks.send_order_notifications, "apply_async", order)

    enqueued = tasks.dispatch_side_effects(
        shop_order_id="order-1", booking_id="booking-1", business_id="biz-1", trace_id="trace-1",
    )

    cal.assert_called_once_with(kwargs={"booking_id": "booking-1", "trace_id": "trace-1"})
    book.assert_called_once_with(kwargs={"booking_id": "booking-1", "trace_id": "trace-1"})
    order.assert_called_once_with(kwargs={"order_id": "order-1", "business_id": "biz-1", "trace_id": "trace-1"})
    assert len(enqueued) == 3


def test_dispatch_without_booking_skips_calendar(monkeypatch):
    cal = MagicMock()
    order = MagicMock()
    monkeypatch.setattr(tasks.sync_booking_calendar, "apply_async", cal)
    monkeypatch.setattr(tasks.send_order_notifications, "apply_async", order)

    tasks.dispatch_side_effects(shop_order_id="order-1", booking_id=None, business_id="biz-1", trace_id="t")
    cal.assert_not_called()
    order.assert_called_once()


def test_dispatch_swallows_broker_errors(monkeypatch):
    def broker_down(*a, **kw):
        raise ConnectionError("broker unreachable")

    monkeypatch.setattr(tasks.sync_booking_calendar, "apply_async", broker_down)
    ok = MagicMock()
    monkeypatch.setattr(tasks.send_booking_notifications, "apply_async", ok)

    enqueued = tasks.dispatch_side_effects(shop_order_id=None, booking_id="booking-1", business_id="biz-1", trace_id="t")
    assert enqueued == [tasks.send_booking_notifications.name]


def test_calendar_task_runs_sync_booking(monkeypatch):
    sync = MagicMock(return_value="synced")
    monkeypatch.setattr("unified_checkout.tasks.calendar_service.sync_booking", sync)

    result = tasks.sync_booking_calendar.apply(kwargs={"booking_id": "booking-1", "trace_id": "trace-1"})
    assert result.get() == "synced"
    sync.assert_called_once_with("booking-1", "trace-1")


def test_dead_letter_recorded_on_failure(monkeypatch):
    recorded = MagicMock()
    monkeypatch.setattr("unified_checkout.tasks.record_dead_letter", recorded)
    monkeypatch.setattr(
        "unified_checkout.tasks.notifications_service.notify_order",
        MagicMock(side_effect=RuntimeError("template crashed")),
    )

    result = tasks.send_order_notifications.apply(
        kwargs={"order_id": "order-1", "business_id": "biz-1", "trace_id": "trace-9"},
    )
    assert result.failed()
    task_name, trace_id, payload, error = recorded.call_args.args
    assert task_name == "unified_checkout.tasks.send_order_notifications"
    assert trace_id == "trace-9"
    assert payload["kwargs"]["order_id"] == "order-1"
    assert "template crashed" in error


def test_calendar_task_failure_marks_booking_failed(monkeypatch):
    monkeypatch.setattr("unified_checkout.tasks.record_dead_letter", MagicMock())
    update = MagicMock()
    monkeypatch.setattr("unified_checkout.tasks.orders_repo.update_booking_calendar", update)
    monkeypatch.setattr(
        "unified_checkout.tasks.calendar_service.sync_booking",
        MagicMock(side_effect=ValueError("bad booking")),
    )

    result = tasks.sync_booking_calendar.apply(kwargs={"booking_id": "booking-1", "trace_id": "t"})
    assert result.failed()
    update.assert_called_once_with("booking-1", calendar_sync_status="failed")


def test_record_dead_letter_inserts_row(mock_db_dependency):
    tasks.record_dead_letter("task.x", "trace-1", {"kwargs": {"a": 1}}, "boom")
    mock_db_dependency.table.assert_called_with("side_effect_dead_letters")
    row = mock_db_dependency.table.return_value.insert.call_args.args[0]
    assert row["task_name"] == "task.x"
    assert row["trace_id"] == "trace-1"
    assert row["payload"] == {"kwargs": {"a": 1}}
