"""Kafka producer – publishes catalog events for the search indexer."""

import json
import logging
from typing import Optional

from confluent_kafka import Producer

from app.config import get_settings

logger = logging.getLogger(__name__)

_producer: Optional[Producer] = None


def get_producer() -> Producer:
    global _producer
    if _producer is None:
        settings = get_settings()
        _producer = Producer(
            {
                "bootstrap.servers": settings.kafka_bootstrap_servers,
                "client.id": "rmp-api-producer",
                "acks": "all",
                "retries": 3,
                "linger.ms": 50,
            }
        )
    return _producer


def _delivery_report(err, msg):
    if err:
        logger.error("Kafka delivery failed: %s", err)
    else:
        logger.debug("Kafka message delivered: %s [%d]", msg.topic(), msg.partition())


def publish_catalog_event(event_type: str, payload: dict):
    """Publish a catalog event to Kafka.

    event_type: '<kind>.created' | '<kind>.updated' | '<kind>.deleted'
    where kind is 'faculty', 'subject' or 'professor'.
    payload: JSON-serialisable dict; always carries ``id``.
    """
    settings = get_settings()
    if not settings.kafka_enabled:
        return
    message = {"event": event_type, "data": payload}
    try:
        producer = get_producer()
        producer.produce(
            topic=settings.kafka_topic_catalog,
            key=f"{event_type.split('.')[0]}:{payload.get('id', '')}",
            value=json.dumps(message, default=str),
            callback=_delivery_report,
        )
        producer.poll(0)  # trigger delivery callbacks
    except Exception as exc:
        # Search indexing lags behind; the write itself already committed.
        logger.warning("Could not publish %s: %s", event_type, exc)


def flush(timeout: float = 5.0):
    """Flush outstanding Kafka messages (call on shutdown)."""
    if _producer is None:
        return
    remaining = _producer.flush(timeout)
    if remaining:
        logger.warning("Kafka flush: %d messages still in queue", remaining)
