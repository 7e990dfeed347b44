from __future__ import annotations

import datetime as dt
import json

import pika
from pika.exceptions import AMQPError

from . import config
from .utils.logging import logger


def _connect() -> pika.BlockingConnection:
    params = pika.URLParameters(config.RABBITMQ_URL)
    params.heartbeat = 30
    params.blocked_connection_timeout = 30
    return pika.BlockingConnection(params)


def publish_event(routing_key: str, payload: dict) -> None:
    connection = _connect()
    try:
        ch = connection.channel()
        ch.exchange_declare(exchange=config.EVENTS_EXCHANGE, exchange_type="topic", durable=True)
        body = json.dumps(payload, ensure_ascii=False, default=str).encode("utf-8")
        ch.basic_publish(
            exchange=config.EVENTS_EXCHANGE,
            routing_key=routing_key,
            body=body,
            properties=pika.BasicProperties(
                content_type="application/json",
                delivery_mode=2,
            ),
        )
    finally:
        connection.close()


def emit(routing_key: str, **fields) -> bool:
    """Announce a committed change. Returns True when the event was published.

    Events are sent after the store transaction has committed, so a broker
    failure is logged and reported to the caller but never rolls anything back.
    """
    if not config.EVENTS_ENABLED:
        return False

    payload = {
        "event": routing_key,
        "occurred_at": dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z"),
        **fields,
    }
    try:
        publish_event(routing_key, payload)
    except AMQPError as exc:
        logger.warning("event_publish_failed", routing_key=routing_key, error=str(exc))
        return False
    return True
