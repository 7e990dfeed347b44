from pika.exceptions import AMQPConnectionError

from cart_service import config, messaging


def test_emit_is_a_no_op_when_disabled(monkeypatch):
    monkeypatch.setattr(config, "EVENTS_ENABLED", False)

    def _unexpected(*args, **kwargs):
        raise AssertionError("publish_event must not be called")

    monkeypatch.setattr(messaging, "publish_event", _unexpected)

    assert messaging.emit("order.placed", order_id=1) is False


def test_emit_publishes_payload(monkeypatch):
    monkeypatch.setattr(config, "EVENTS_ENABLED", True)
    published = []
    monkeypatch.setattr(messaging, "publish_event", lambda key, payload: published.append((key, payload)))

    assert messaging.emit("cart.item_reserved", user_id="u1", product_id=3, quantity=2) is True

    key, payload = published[0]
    assert key == "cart.item_reserved"
    assert payload["event"] == "cart.item_reserved"
    assert payload["occurred_at"].endswith("Z")
    assert payload["user_id"] == "u1"
    assert payload["quantity"] == 2


def test_emit_reports_broker_failure(monkeypatch):
    monkeypatch.setattr(config, "EVENTS_ENABLED", True)

    def _down(key, payload):
        raise AMQPConnectionError("broker unreachable")

    monkeypatch.setattr(messaging, "publish_event", _down)

    assert messaging.emit("order.placed", order_id=1) is False
