"""Rating submission, listing and helpful-vote toggling."""

import logging
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from app.cache import invalidate_faculty
from app.errors import NotFoundError, ValidationError
from app.es_service import professor_document
from app.kafka_producer import publish_catalog_event
from app.models import VOTE_DISLIKE, VOTE_LIKE, Professor, Rating, RatingVote, Subject
from app.relationships import attach
from app.stats import recompute_rating_stats

logger = logging.getLogger(__name__)

LIKE_VOTE_TYPE = 1


def create_rating(
    session: Session,
    professor: Professor,
    subject_id: int,
    general: float,
    explanation: Optional[float] = None,
    accessibility: Optional[float] = None,
    difficulty: Optional[float] = None,
    attendance: Optional[float] = None,
    would_retake: bool = False,
    comment: str = "",
) -> Rating:
    """Store a rating, link professor and subject if needed, refresh the stats."""
    subject = session.get(Subject, subject_id)
    if not subject:
        raise NotFoundError("Professor or subject not found")

    if attach(professor, subject):
        logger.info("Linked professor #%s to subject #%s via rating", professor.id, subject.id)

    rating = Rating(
        general=general,
        explanation=explanation,
        accessibility=accessibility,
        difficulty=difficulty,
        attendance=attendance,
        would_retake=would_retake,
        comment=comment or "",
        subject_id=subject.id,
        professor_id=professor.id,
    )
    session.add(rating)
    session.flush()

    recompute_rating_stats(session, professor.id)
    session.commit()
    session.refresh(rating)

    invalidate_faculty(professor.faculty_id)
    publish_catalog_event("professor.updated", professor_document(professor))
    return rating


def get_rating(session: Session, professor: Professor, rating_id: int) -> Rating:
    rating = session.get(Rating, rating_id)
    if not rating or rating.professor_id != professor.id:
        raise NotFoundError("Rating not found")
    return rating


def list_professor_ratings(session: Session, professor: Professor, page: int = 1, limit: int = 10) -> dict:
    """Newest-first page of a professor's ratings."""
    q = session.query(Rating).filter(Rating.professor_id == professor.id)
    total = q.count()
    skip = (page - 1) * limit
    ratings = (
        q.options(selectinload(Rating.votes))
        .order_by(Rating.created_at.desc(), Rating.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    has_next = skip + len(ratings) < total
    return {
        "ratings": ratings,
        "next_page": page + 1 if has_next else None,
        "total": total,
    }


def toggle_like(session: Session, rating: Rating, voter_id: str, vote_type: int = LIKE_VOTE_TYPE) -> Rating:
    """Like the rating, or take the like back if ``voter_id`` already gave one.

    A new like also clears any legacy dislike from the same voter. Likes do
    not feed into the professor's stats.
    """
    if vote_type != LIKE_VOTE_TYPE:
        raise ValidationError("Invalid vote type")
    if not voter_id:
        raise ValidationError("Voter id is required")

    existing = {(v.voter_id, v.kind): v for v in rating.votes}
    if (voter_id, VOTE_LIKE) in existing:
        rating.votes.remove(existing[(voter_id, VOTE_LIKE)])
    else:
        rating.votes.append(RatingVote(voter_id=voter_id, kind=VOTE_LIKE))
        dislike = existing.get((voter_id, VOTE_DISLIKE))
        if dislike is not None:
            rating.votes.remove(dislike)

    session.commit()
    session.refresh(rating)
    return rating
