"""Report moderation: pending -> deleted | rejected, never back."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.cache import invalidate_faculty
from app.errors import ConflictError, NotFoundError, ValidationError
from app.es_service import professor_document
from app.kafka_producer import publish_catalog_event
from app.models import (
    REPORT_DELETED, REPORT_PENDING, REPORT_REJECTED,
    Professor, Rating, Report,
)
from app.relationships import delete_ratings
from app.stats import recompute_rating_stats

logger = logging.getLogger(__name__)


def create_report(
    session: Session,
    rating_id: int,
    reasons: list[str],
    report_comment: Optional[str] = None,
) -> Report:
    """Open a report, copying the rating's content so it outlives the rating."""
    rating = session.get(Rating, rating_id)
    if not rating:
        raise NotFoundError("Rating not found")

    report = Report(
        comment_id=rating.id,
        rating_comment=rating.comment,
        rating_date=rating.created_at,
        professor_id=rating.professor_id,
        subject_id=rating.subject_id,
        reasons=list(reasons),
        report_comment=report_comment,
        status=REPORT_PENDING,
    )
    session.add(report)
    session.commit()
    session.refresh(report)
    logger.info("Report #%s opened for rating #%s", report.id, rating.id)
    return report


def list_reports(session: Session, status: Optional[str] = None) -> list[Report]:
    q = session.query(Report)
    if status:
        q = q.filter(Report.status == status)
    return q.order_by(Report.report_date.desc(), Report.id.desc()).all()


def get_report(session: Session, report_id: int) -> Report:
    report = session.get(Report, report_id)
    if not report:
        raise NotFoundError("Report not found")
    return report


def _ensure_pending(report: Report):
    if report.status != REPORT_PENDING:
        raise ConflictError(f"Report is already {report.status}")


def resolve_as_deleted(session: Session, report_id: int) -> Report:
    """Delete the reported rating, close the report and refresh the stats."""
    report = get_report(session, report_id)
    _ensure_pending(report)
    if not report.comment_id or not report.professor_id:
        raise ValidationError("Report does not reference a valid rating or professor")

    delete_ratings(session, Rating.id == report.comment_id)
    report.status = REPORT_DELETED
    recompute_rating_stats(session, report.professor_id)
    session.commit()
    session.refresh(report)
    logger.info("Report #%s resolved: rating #%s deleted", report.id, report.comment_id)

    professor = session.get(Professor, report.professor_id)
    if professor is not None:
        invalidate_faculty(professor.faculty_id)
        publish_catalog_event("professor.updated", professor_document(professor))
    return report


def reject_report(session: Session, report_id: int) -> Report:
    """Close the report without touching the rating or the stats."""
    report = get_report(session, report_id)
    _ensure_pending(report)
    report.status = REPORT_REJECTED
    session.commit()
    session.refresh(report)
    logger.info("Report #%s rejected", report.id)
    return report
