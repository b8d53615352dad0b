"""Admin activity feed: append-only log entries plus catalog event publishing."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.kafka_producer import publish_catalog_event
from app.models import ActivityLog, Faculty, Professor, Subject

logger = logging.getLogger(__name__)

# entity_kind -> model used to resolve ActivityLog.entity_id
ENTITY_MODELS = {
    "faculty": Faculty,
    "subject": Subject,
    "professor": Professor,
}

ACTIVITY_LABELS = {
    "CREATE_FACULTY": "Faculty added: {name}",
    "UPDATE_FACULTY": "Faculty updated: {name}",
    "DELETE_FACULTY": "Faculty deleted: {name}",
    "CREATE_SUBJECT": "Subject added: {name}",
    "UPDATE_SUBJECT": "Subject updated: {name}",
    "DELETE_SUBJECT": "Subject deleted: {name}",
    "CREATE_PROFESSOR": "New professor added: {name}",
    "UPDATE_PROFESSOR": "Professor updated: {name}",
    "DELETE_PROFESSOR": "Professor deleted: {name}",
}

_EVENT_SUFFIX = {"CREATE": "created", "UPDATE": "updated", "DELETE": "deleted"}

DELETED_ENTITY_NAME = "Deleted entity"


def record_activity(
    session: Session,
    activity_type: str,
    entity_id: int,
    changes: Optional[str] = None,
    document: Optional[dict] = None,
) -> ActivityLog:
    """Append a log entry, commit, then publish the matching catalog event.

    ``activity_type`` is one of ``ACTIVITY_LABELS``; the entity kind is taken
    from its suffix (``CREATE_SUBJECT`` -> ``subject``).
    """
    if activity_type not in ACTIVITY_LABELS:
        raise ValueError(f"Unknown activity type: {activity_type}")
    action, kind = activity_type.split("_", 1)
    kind = kind.lower()

    entry = ActivityLog(
        type=activity_type,
        entity_kind=kind,
        entity_id=entity_id,
        changes=changes,
    )
    session.add(entry)
    session.commit()

    publish_catalog_event(f"{kind}.{_EVENT_SUFFIX[action]}", document or {"id": entity_id})
    return entry


def _resolve_names(session: Session, entries: list[ActivityLog]) -> dict[tuple[str, int], str]:
    """Batch-load entity names, one query per entity kind."""
    ids_by_kind: dict[str, set[int]] = {}
    for e in entries:
        ids_by_kind.setdefault(e.entity_kind, set()).add(e.entity_id)

    names: dict[tuple[str, int], str] = {}
    for kind, ids in ids_by_kind.items():
        model = ENTITY_MODELS.get(kind)
        if model is None:
            logger.warning("Activity log references unknown entity kind %r", kind)
            continue
        for entity_id, name in session.query(model.id, model.name).filter(model.id.in_(ids)):
            names[(kind, entity_id)] = name
    return names


def recent_activities(session: Session, limit: int = 10) -> list[dict]:
    entries = (
        session.query(ActivityLog)
        .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
        .limit(limit)
        .all()
    )
    names = _resolve_names(session, entries)

    results = []
    for e in entries:
        name = names.get((e.entity_kind, e.entity_id), DELETED_ENTITY_NAME)
        label = ACTIVITY_LABELS.get(e.type)
        results.append({
            "type": label.format(name=name) if label else e.type,
            "details": e.changes or "No additional details",
            "timestamp": e.timestamp,
        })
    return results
