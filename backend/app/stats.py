"""Professor rating statistics – full recomputation on every rating-set change."""

import logging

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.models import Professor, Rating

logger = logging.getLogger(__name__)

EMPTY_STATS = {
    "total_ratings": 0,
    "average_general": 0.0,
    "average_explanation": 0.0,
    "average_accessibility": 0.0,
    "average_difficulty": 0.0,
    "average_attendance": 0.0,
    "would_retake_count": 0,
    "would_retake_percentage": 0.0,
}


def _avg(value) -> float:
    # AVG over an all-NULL column comes back as None
    return float(value) if value is not None else 0.0


def compute_rating_stats(session: Session, professor_id: int) -> dict:
    row = (
        session.query(
            func.count(Rating.id),
            func.avg(Rating.general),
            func.avg(Rating.explanation),
            func.avg(Rating.accessibility),
            func.avg(Rating.difficulty),
            func.avg(Rating.attendance),
            func.sum(case((Rating.would_retake.is_(True), 1), else_=0)),
        )
        .filter(Rating.professor_id == professor_id)
        .one()
    )
    total = row[0] or 0
    if total == 0:
        return dict(EMPTY_STATS)

    retake = int(row[6] or 0)
    return {
        "total_ratings": total,
        "average_general": _avg(row[1]),
        "average_explanation": _avg(row[2]),
        "average_accessibility": _avg(row[3]),
        "average_difficulty": _avg(row[4]),
        "average_attendance": _avg(row[5]),
        "would_retake_count": retake,
        "would_retake_percentage": retake / total * 100,
    }


def recompute_rating_stats(session: Session, professor_id: int) -> dict:
    """Rewrite the professor's stats snapshot in one UPDATE. Does not commit."""
    stats = compute_rating_stats(session, professor_id)
    updated = (
        session.query(Professor)
        .filter(Professor.id == professor_id)
        .update(stats, synchronize_session="fetch")
    )
    if not updated:
        logger.warning("Stats recomputed for missing professor %s", professor_id)
    return stats
