"""Kafka consumer – reads catalog events and keeps the Elasticsearch indexes current.

Run as a standalone process:
    python -m app.kafka_consumer
"""

import json
import logging
import signal

from confluent_kafka import Consumer, KafkaError

from app.config import get_settings
from app.es_service import delete_document, ensure_indexes, index_professor, index_subject

logger = logging.getLogger(__name__)

_running = True


def _shutdown(signum, _frame):
    global _running
    logger.info("Received signal %s – shutting down consumer", signum)
    _running = False


def _handle_professor_upsert(data: dict):
    if "professor_id" not in data:
        logger.warning("Professor event without a document: %s", data)
        return
    index_professor(data)
    logger.info("Indexed professor #%s", data["professor_id"])


def _handle_subject_upsert(data: dict):
    if "subject_id" not in data:
        logger.warning("Subject event without a document: %s", data)
        return
    index_subject(data)
    logger.info("Indexed subject #%s", data["subject_id"])


def _handle_professor_deleted(data: dict):
    delete_document(get_settings().es_index_professors, data["id"])
    logger.info("Removed professor #%s from search", data["id"])


def _handle_subject_deleted(data: dict):
    delete_document(get_settings().es_index_subjects, data["id"])
    logger.info("Removed subject #%s from search", data["id"])


def _handle_faculty_event(data: dict):
    # Faculty changes reach the index through the professor/subject events they cause.
    logger.debug("Faculty event for #%s", data.get("id"))


EVENT_HANDLERS = {
    "professor.created": _handle_professor_upsert,
    "professor.updated": _handle_professor_upsert,
    "professor.deleted": _handle_professor_deleted,
    "subject.created": _handle_subject_upsert,
    "subject.updated": _handle_subject_upsert,
    "subject.deleted": _handle_subject_deleted,
    "faculty.created": _handle_faculty_event,
    "faculty.updated": _handle_faculty_event,
    "faculty.deleted": _handle_faculty_event,
}


def handle_message(raw: bytes):
    """Decode one ``{"event", "data"}`` envelope and dispatch it."""
    envelope = json.loads(raw)
    event_type = envelope.get("event")
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.warning("Unknown event type: %s", event_type)
        return
    handler(envelope.get("data", {}))


def run():
    settings = get_settings()
    ensure_indexes()

    consumer = Consumer(
        {
            "bootstrap.servers": settings.kafka_bootstrap_servers,
            "group.id": settings.kafka_consumer_group,
            "auto.offset.reset": "earliest",
            "enable.auto.commit": True,
        }
    )
    consumer.subscribe([settings.kafka_topic_catalog])
    logger.info(
        "Kafka consumer started – topic=%s group=%s",
        settings.kafka_topic_catalog,
        settings.kafka_consumer_group,
    )

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    try:
        while _running:
            msg = consumer.poll(1.0)
            if msg is None:
                continue
            if msg.error():
                if msg.error().code() == KafkaError._PARTITION_EOF:
                    continue
                logger.error("Kafka error: %s", msg.error())
                continue

            try:
                handle_message(msg.value())
            except Exception:
                logger.exception("Failed to process Kafka message")
    finally:
        consumer.close()
        logger.info("Kafka consumer stopped")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    run()
