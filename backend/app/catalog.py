"""Catalog operations – faculties, departments, subjects and professor edits."""

import logging
import math
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.activity import record_activity
from app.cache import invalidate_faculty
from app.cleanup import settle_all
from app.errors import ConflictError, NotFoundError, PartialCleanupError, StorageError, ValidationError
from app.es_service import professor_document, subject_document
from app.models import Department, Faculty, Professor, Rating, Subject
from app.naming import fold_name, format_name
from app.relationships import (
    attach,
    delete_professor,
    delete_subject,
    find_professor_by_name,
    update_professor_subjects,
)

logger = logging.getLogger(__name__)


# ── Lookups ──────────────────────────────────────────────────────────────────

def get_faculty(session: Session, faculty_id: int) -> Faculty:
    faculty = session.get(Faculty, faculty_id)
    if not faculty:
        raise NotFoundError("Faculty not found")
    return faculty


def get_subject(session: Session, faculty: Faculty, subject_id: int) -> Subject:
    subject = session.get(Subject, subject_id)
    if not subject or subject.faculty_id != faculty.id:
        raise NotFoundError("Subject not found")
    return subject


def get_professor(session: Session, faculty: Faculty, professor_id: int) -> Professor:
    professor = session.get(Professor, professor_id)
    if not professor or professor.faculty_id != faculty.id:
        raise NotFoundError("Professor not found")
    return professor


# ── Faculties ────────────────────────────────────────────────────────────────

def list_faculties(session: Session) -> list[Faculty]:
    return session.query(Faculty).order_by(Faculty.name).all()


def create_faculty(session: Session, name: str, abbreviation: str) -> Faculty:
    faculty = Faculty(name=name.strip(), abbreviation=abbreviation.strip())
    session.add(faculty)
    session.flush()
    record_activity(session, "CREATE_FACULTY", faculty.id)
    invalidate_faculty(faculty.id)
    return faculty


def update_faculty(session: Session, faculty: Faculty, name: str, abbreviation: str) -> Faculty:
    name, abbreviation = name.strip(), abbreviation.strip()
    changes = []
    if faculty.name != name:
        changes.append(f"name: {faculty.name} -> {name}")
    if faculty.abbreviation != abbreviation:
        changes.append(f"abbreviation: {faculty.abbreviation} -> {abbreviation}")
    faculty.name = name
    faculty.abbreviation = abbreviation
    session.flush()
    record_activity(session, "UPDATE_FACULTY", faculty.id, changes="; ".join(changes) or None)
    invalidate_faculty(faculty.id)
    return faculty


def _cascade_step(label: str, run, failed: list[str], succeeded: list[str]):
    """Run one owned-entity delete, folding its outcome into the faculty totals."""
    try:
        run()
    except PartialCleanupError as exc:
        failed.extend(f"{label}: {step}" for step in exc.failed)
        succeeded.extend(f"{label}: {step}" for step in exc.succeeded)
    except StorageError as exc:
        logger.error("Cascade step %s failed: %s", label, exc.message)
        failed.append(label)
    else:
        succeeded.append(label)


def delete_faculty(session: Session, faculty: Faculty):
    """Delete a faculty together with everything it owns.

    Professors and subjects go through their own cascading deletes, then the
    departments and the faculty row are removed. Every step is attempted; any
    failures are reported together at the end.
    """
    faculty_id, name = faculty.id, faculty.name
    professor_ids = [pid for (pid,) in session.query(Professor.id).filter_by(faculty_id=faculty_id)]
    subject_ids = [sid for (sid,) in session.query(Subject.id).filter_by(faculty_id=faculty_id)]
    failed: list[str] = []
    succeeded: list[str] = []

    try:
        for professor_id in professor_ids:
            _cascade_step(
                f"professor #{professor_id}",
                lambda: delete_professor(session, session.get(Professor, professor_id)),
                failed, succeeded,
            )
        for subject_id in subject_ids:
            _cascade_step(
                f"subject #{subject_id}",
                lambda: delete_subject(session, session.get(Subject, subject_id), session.get(Faculty, faculty_id)),
                failed, succeeded,
            )
        _cascade_step(
            f"faculty #{faculty_id}",
            lambda: settle_all(session, [
                ("delete departments", lambda: session.query(Department)
                    .filter(Department.faculty_id == faculty_id)
                    .delete(synchronize_session=False)),
                ("delete faculty", lambda: session.query(Faculty)
                    .filter(Faculty.id == faculty_id)
                    .delete(synchronize_session=False)),
            ]),
            failed, succeeded,
        )
    finally:
        invalidate_faculty(faculty_id)

    if failed and not succeeded:
        raise StorageError("Faculty deletion failed; no changes were applied")

    if session.get(Faculty, faculty_id) is None:
        logger.info("Deleted faculty #%s %r (%d subjects, %d professors)",
                    faculty_id, name, len(subject_ids), len(professor_ids))
        record_activity(session, "DELETE_FACULTY", faculty_id, changes=f'Deleted faculty "{name}"')

    if failed:
        raise PartialCleanupError(failed=failed, succeeded=succeeded)


# ── Departments ──────────────────────────────────────────────────────────────

def create_department(session: Session, faculty: Faculty, name: str) -> Department:
    dept = Department(name=name.strip(), faculty_id=faculty.id)
    session.add(dept)
    session.commit()
    session.refresh(dept)
    invalidate_faculty(faculty.id)
    return dept


def list_departments(session: Session, faculty: Faculty) -> list[Department]:
    return (
        session.query(Department)
        .filter_by(faculty_id=faculty.id)
        .order_by(Department.name)
        .all()
    )


def _check_department(session: Session, faculty: Faculty, department_id: Optional[int]) -> Optional[int]:
    if not department_id:
        return None
    dept = session.query(Department).filter_by(id=department_id, faculty_id=faculty.id).first()
    if not dept:
        raise ValidationError("Invalid department")
    return dept.id


# ── Subjects ─────────────────────────────────────────────────────────────────

def _check_subject_name(session: Session, faculty: Faculty, normalized: str, exclude_id: Optional[int] = None):
    q = session.query(Subject.id).filter(
        Subject.faculty_id == faculty.id,
        Subject.normalized_name == normalized,
    )
    if exclude_id is not None:
        q = q.filter(Subject.id != exclude_id)
    if q.first():
        raise ConflictError("A subject with that name already exists in this faculty")


def create_subject(
    session: Session,
    faculty: Faculty,
    name: str,
    credits: Optional[int] = None,
    description: Optional[str] = None,
    department_id: Optional[int] = None,
    professor_ids: Optional[list[int]] = None,
) -> Subject:
    normalized = fold_name(name)
    _check_subject_name(session, faculty, normalized)

    subject = Subject(
        name=name.strip(),
        normalized_name=normalized,
        credits=credits,
        description=description,
        faculty_id=faculty.id,
        department_id=_check_department(session, faculty, department_id),
    )
    session.add(subject)

    if professor_ids:
        professors = (
            session.query(Professor)
            .filter(Professor.id.in_(professor_ids), Professor.faculty_id == faculty.id)
            .all()
        )
        if len(professors) != len(set(professor_ids)):
            raise NotFoundError("Some professors were not found")
        for professor in professors:
            attach(professor, subject)

    session.flush()
    logger.info("Created subject #%s %r in faculty #%s", subject.id, subject.name, faculty.id)
    record_activity(session, "CREATE_SUBJECT", subject.id, document=subject_document(subject))
    invalidate_faculty(faculty.id)
    return subject


def update_subject(
    session: Session,
    faculty: Faculty,
    subject: Subject,
    name: str,
    credits: Optional[int] = None,
    description: Optional[str] = None,
    department_id: Optional[int] = None,
) -> Subject:
    normalized = fold_name(name)
    if normalized != subject.normalized_name:
        _check_subject_name(session, faculty, normalized, exclude_id=subject.id)

    subject.name = name.strip()
    subject.normalized_name = normalized
    subject.credits = credits
    subject.description = description
    subject.department_id = _check_department(session, faculty, department_id)
    session.flush()

    record_activity(session, "UPDATE_SUBJECT", subject.id, document=subject_document(subject))
    invalidate_faculty(faculty.id)
    return subject


def list_faculty_subjects(
    session: Session, faculty_id: int, search: Optional[str] = None, limit: Optional[int] = None
) -> list[Subject]:
    q = (
        session.query(Subject)
        .options(selectinload(Subject.professors))
        .filter(Subject.faculty_id == faculty_id)
    )
    if search:
        q = q.filter(Subject.normalized_name.contains(fold_name(search)))
    q = q.order_by(Subject.name)
    if limit:
        q = q.limit(limit)
    return q.all()


def list_all_subjects(session: Session, page: int = 1, limit: int = 10, search: Optional[str] = None) -> dict:
    """Paginated subject listing across faculties for the admin panel."""
    q = session.query(Subject)
    if search:
        q = q.filter(Subject.normalized_name.contains(fold_name(search)))

    total = q.count()
    total_pages = math.ceil(total / limit) if limit else 0
    subjects = (
        q.options(selectinload(Subject.faculty), selectinload(Subject.professors))
        .order_by(Subject.name)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "data": subjects,
        "meta": {
            "total": total,
            "page": page,
            "total_pages": total_pages,
            "has_next_page": page < total_pages,
            "has_prev_page": page > 1,
        },
    }


def subject_professors(session: Session, faculty: Faculty, subject: Subject) -> list[Professor]:
    return [p for p in subject.professors if p.faculty_id == faculty.id]


# ── Professors ───────────────────────────────────────────────────────────────

def update_professor(
    session: Session,
    professor: Professor,
    name: Optional[str] = None,
    department: Optional[str] = None,
    subject_ids: Optional[list[int]] = None,
) -> Professor:
    """Edit name/department and, when given, replace the subject set."""
    changes = []
    if name is not None and name.strip():
        if find_professor_by_name(session, professor.faculty_id, name, exclude_id=professor.id):
            raise ConflictError("A professor with this name already exists")
        formatted = format_name(name)
        if formatted != professor.name:
            changes.append(f"name: {professor.name} -> {formatted}")
        professor.name = formatted
        professor.normalized_name = fold_name(name)

    if department is not None:
        professor.department = department or None

    if subject_ids is not None:
        added, removed = update_professor_subjects(session, professor, subject_ids)
        if added:
            changes.append(f"subjects added: {', '.join(s.name for s in added)}")
        if removed:
            changes.append(f"subjects removed: {', '.join(s.name for s in removed)}")

    session.flush()
    record_activity(
        session, "UPDATE_PROFESSOR", professor.id,
        changes="; ".join(changes) or None,
        document=professor_document(professor),
    )
    invalidate_faculty(professor.faculty_id)
    return professor


def list_faculty_professors(
    session: Session, faculty_id: int, search: Optional[str] = None, limit: Optional[int] = None
) -> list[Professor]:
    q = (
        session.query(Professor)
        .options(selectinload(Professor.subjects))
        .filter(Professor.faculty_id == faculty_id)
    )
    if search:
        q = q.filter(Professor.normalized_name.contains(fold_name(search)))
    q = q.order_by(Professor.name)
    if limit:
        q = q.limit(limit)
    return q.all()


def list_all_professors(session: Session) -> list[Professor]:
    return (
        session.query(Professor)
        .options(selectinload(Professor.subjects), selectinload(Professor.faculty))
        .order_by(Professor.name)
        .all()
    )


def top_professors(session: Session, limit: int = 6) -> list[Professor]:
    return (
        session.query(Professor)
        .options(selectinload(Professor.subjects), selectinload(Professor.faculty))
        .filter(Professor.total_ratings > 0)
        .order_by(Professor.average_general.desc(), Professor.total_ratings.desc())
        .limit(limit)
        .all()
    )


# ── Dashboard ────────────────────────────────────────────────────────────────

def dashboard_stats(session: Session) -> dict:
    return {
        "faculties_count": session.query(func.count(Faculty.id)).scalar() or 0,
        "subjects_count": session.query(func.count(Subject.id)).scalar() or 0,
        "professors_count": session.query(func.count(Professor.id)).scalar() or 0,
        "ratings_count": session.query(func.count(Rating.id)).scalar() or 0,
    }
