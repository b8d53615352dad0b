"""Professor/subject link maintenance.

Professor.subjects and Subject.professors are both views of the
``professor_subjects`` table; every function here goes through that table so a
professor lists a subject exactly when the subject lists the professor.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.activity import record_activity
from app.cache import invalidate_faculty
from app.cleanup import settle_all
from app.errors import NotFoundError, ValidationError
from app.es_service import professor_document
from app.kafka_producer import publish_catalog_event
from app.models import Faculty, Professor, Rating, RatingVote, Subject, professor_subjects
from app.naming import fold_name, format_name

logger = logging.getLogger(__name__)


def attach(professor: Professor, subject: Subject) -> bool:
    """Link professor and subject. Returns False (and writes nothing) if already linked."""
    if subject in professor.subjects:
        return False
    professor.subjects.append(subject)
    return True


def load_subjects(session: Session, subject_ids: Iterable[int], faculty_id: Optional[int] = None) -> list[Subject]:
    """Fetch subjects by id, failing if any id is unknown (or outside the faculty)."""
    wanted = list(dict.fromkeys(subject_ids))
    if not wanted:
        return []
    q = session.query(Subject).filter(Subject.id.in_(wanted))
    if faculty_id is not None:
        q = q.filter(Subject.faculty_id == faculty_id)
    subjects = q.all()
    if len(subjects) != len(wanted):
        raise NotFoundError("Some subjects were not found")
    by_id = {s.id: s for s in subjects}
    return [by_id[i] for i in wanted]


def find_professor_by_name(
    session: Session, faculty_id: int, name: str, exclude_id: Optional[int] = None
) -> Optional[Professor]:
    q = session.query(Professor).filter(
        Professor.faculty_id == faculty_id,
        Professor.normalized_name == fold_name(name),
    )
    if exclude_id is not None:
        q = q.filter(Professor.id != exclude_id)
    return q.order_by(Professor.id).first()


def create_professor(
    session: Session,
    faculty: Faculty,
    name: str,
    subject_ids: list[int],
    department: Optional[str] = None,
) -> tuple[Professor, bool]:
    """Create a professor teaching ``subject_ids``, or merge into a namesake.

    A professor in the same faculty whose folded name matches gets the
    subjects attached instead of a duplicate record being created.
    Returns ``(professor, created)``. Commits.
    """
    if not name or not name.strip():
        raise ValidationError("Professor name is required")
    subjects = load_subjects(session, subject_ids, faculty_id=faculty.id)

    existing = find_professor_by_name(session, faculty.id, name)
    if existing:
        added = [s for s in subjects if attach(existing, s)]
        session.commit()
        logger.info(
            "Merged professor %r into #%s (%d new subjects)", name, existing.id, len(added)
        )
        invalidate_faculty(faculty.id)
        if added:
            record_activity(
                session, "UPDATE_PROFESSOR", existing.id,
                changes=f"Subjects added: {', '.join(s.name for s in added)}",
                document=professor_document(existing),
            )
        return existing, False

    professor = Professor(
        name=format_name(name),
        normalized_name=fold_name(name),
        department=department or None,
        faculty_id=faculty.id,
    )
    session.add(professor)
    for subject in subjects:
        attach(professor, subject)
    session.commit()
    logger.info("Created professor #%s %r with %d subjects", professor.id, professor.name, len(subjects))

    invalidate_faculty(faculty.id)
    record_activity(
        session, "CREATE_PROFESSOR", professor.id,
        changes=f"Subjects: {', '.join(s.name for s in subjects)}" if subjects else None,
        document=professor_document(professor),
    )
    return professor, True


def update_professor_subjects(session: Session, professor: Professor, new_subject_ids: list[int]) -> tuple[list[Subject], list[Subject]]:
    """Replace the professor's subject set, diffing against the previous one.

    Returns ``(added, removed)``. Does not commit.
    """
    new_subjects = load_subjects(session, new_subject_ids, faculty_id=professor.faculty_id)
    new_ids = {s.id for s in new_subjects}
    old_ids = {s.id for s in professor.subjects}

    removed = [s for s in professor.subjects if s.id not in new_ids]
    for subject in removed:
        professor.subjects.remove(subject)

    added = [s for s in new_subjects if s.id not in old_ids]
    for subject in added:
        attach(professor, subject)

    return added, removed


def delete_ratings(session: Session, *criteria):
    """Bulk-delete ratings matching ``criteria`` together with their votes."""
    rating_ids = session.query(Rating.id).filter(*criteria).scalar_subquery()
    session.execute(
        delete(RatingVote).where(RatingVote.rating_id.in_(rating_ids)).execution_options(synchronize_session=False)
    )
    session.execute(
        delete(Rating).where(*criteria).execution_options(synchronize_session=False)
    )


def delete_professor(session: Session, professor: Professor):
    """Remove the professor, its ratings and its subject links, best effort."""
    professor_id, faculty_id, name = professor.id, professor.faculty_id, professor.name

    try:
        settle_all(session, [
            ("delete professor", lambda: session.execute(
                delete(Professor).where(Professor.id == professor_id)
                .execution_options(synchronize_session=False))),
            ("delete ratings", lambda: delete_ratings(session, Rating.professor_id == professor_id)),
            ("unlink subjects", lambda: session.execute(
                delete(professor_subjects).where(professor_subjects.c.professor_id == professor_id))),
        ])
    finally:
        invalidate_faculty(faculty_id)

    logger.info("Deleted professor #%s %r", professor_id, name)
    record_activity(session, "DELETE_PROFESSOR", professor_id, changes=f'Deleted professor "{name}"')


def _republish_professors(session: Session, professor_ids: list[int]):
    """Send fresh documents for professors whose subject list just changed."""
    for professor_id in professor_ids:
        professor = session.get(Professor, professor_id)
        if professor is not None:
            publish_catalog_event("professor.updated", professor_document(professor))


def delete_subject(session: Session, subject: Subject, faculty: Faculty):
    """Remove the subject, its professor links and its ratings, best effort."""
    if subject.faculty_id != faculty.id:
        raise NotFoundError("Subject not found")
    subject_id, name = subject.id, subject.name
    professor_ids = [p.id for p in subject.professors]

    try:
        settle_all(session, [
            ("unlink professors", lambda: session.execute(
                delete(professor_subjects).where(professor_subjects.c.subject_id == subject_id))),
            ("delete ratings", lambda: delete_ratings(session, Rating.subject_id == subject_id)),
            ("delete subject", lambda: session.execute(
                delete(Subject).where(Subject.id == subject_id)
                .execution_options(synchronize_session=False))),
        ])
    finally:
        invalidate_faculty(faculty.id)
        _republish_professors(session, professor_ids)

    logger.info("Deleted subject #%s %r", subject_id, name)
    record_activity(session, "DELETE_SUBJECT", subject_id, changes=f'Deleted subject "{name}"')
