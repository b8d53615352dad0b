"""Admin API routes – authentication, catalog management, moderation, dashboard."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app import catalog, moderation
from app.activity import recent_activities
from app.auth import authenticate, create_access_token, create_admin, require_admin
from app.database import get_db
from app.relationships import create_professor, delete_professor, delete_subject
from app.schemas import (
    ActivityOut,
    AdminLogin,
    AdminSignup,
    DashboardStats,
    DepartmentIn,
    DepartmentOut,
    FacultyIn,
    FacultyOut,
    MessageResponse,
    ProfessorCreate,
    ProfessorDetail,
    ProfessorOut,
    ProfessorUpdate,
    ReportOut,
    ReportResolution,
    SubjectCreate,
    SubjectOut,
    SubjectPage,
    SubjectUpdate,
    TokenResponse,
)

logger = logging.getLogger(__name__)

public_router = APIRouter(prefix="/admin", tags=["admin-auth"])
router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# ── Auth ─────────────────────────────────────────────────────────────────────

@public_router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def signup(payload: AdminSignup, db: Session = Depends(get_db)):
    admin = create_admin(db, payload.email, payload.name, payload.password)
    return TokenResponse(access_token=create_access_token(admin.id))


@public_router.post("/login", response_model=TokenResponse)
def login(payload: AdminLogin, db: Session = Depends(get_db)):
    admin = authenticate(db, payload.email, payload.password)
    return TokenResponse(access_token=create_access_token(admin.id))


# ── Dashboard ────────────────────────────────────────────────────────────────

@router.get("/dashboard-stats", response_model=DashboardStats)
def dashboard_stats(db: Session = Depends(get_db)):
    return catalog.dashboard_stats(db)


@router.get("/recent-activities", response_model=list[ActivityOut])
def activities(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return recent_activities(db, limit)


# ── Faculties ────────────────────────────────────────────────────────────────

@router.post("/faculty", response_model=FacultyOut, status_code=status.HTTP_201_CREATED)
def create_faculty(payload: FacultyIn, db: Session = Depends(get_db)):
    return catalog.create_faculty(db, payload.name, payload.abbreviation)


@router.get("/faculty", response_model=list[FacultyOut])
def list_faculties(db: Session = Depends(get_db)):
    return catalog.list_faculties(db)


@router.get("/faculty/{faculty_id}", response_model=FacultyOut)
def get_faculty(faculty_id: int, db: Session = Depends(get_db)):
    return catalog.get_faculty(db, faculty_id)


@router.put("/faculty/{faculty_id}", response_model=FacultyOut)
def edit_faculty(faculty_id: int, payload: FacultyIn, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    return catalog.update_faculty(db, faculty, payload.name, payload.abbreviation)


@router.delete("/faculty/{faculty_id}", response_model=MessageResponse)
def delete_faculty(faculty_id: int, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    catalog.delete_faculty(db, faculty)
    return MessageResponse(message="Faculty deleted")


@router.post(
    "/faculty/{faculty_id}/departments",
    response_model=DepartmentOut,
    status_code=status.HTTP_201_CREATED,
)
def add_department(faculty_id: int, payload: DepartmentIn, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    return catalog.create_department(db, faculty, payload.name)


@router.get("/faculty/{faculty_id}/departments", response_model=list[DepartmentOut])
def faculty_departments(faculty_id: int, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    return catalog.list_departments(db, faculty)


# ── Subjects ─────────────────────────────────────────────────────────────────

@router.get("/subjects", response_model=SubjectPage)
def all_subjects(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return catalog.list_all_subjects(db, page, limit, search)


@router.post("/faculty/{faculty_id}/subject", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(faculty_id: int, payload: SubjectCreate, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    return catalog.create_subject(db, faculty, **payload.model_dump())


@router.get("/faculty/{faculty_id}/subjects", response_model=list[SubjectOut])
def faculty_subjects(faculty_id: int, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    return catalog.list_faculty_subjects(db, faculty.id)


@router.get("/faculty/{faculty_id}/subject/{subject_id}", response_model=SubjectOut)
def get_subject(faculty_id: int, subject_id: int, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    return catalog.get_subject(db, faculty, subject_id)


@router.put("/faculty/{faculty_id}/subject/{subject_id}", response_model=SubjectOut)
def edit_subject(faculty_id: int, subject_id: int, payload: SubjectUpdate, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    subject = catalog.get_subject(db, faculty, subject_id)
    return catalog.update_subject(db, faculty, subject, **payload.model_dump())


@router.delete("/faculty/{faculty_id}/subject/{subject_id}", response_model=MessageResponse)
def remove_subject(faculty_id: int, subject_id: int, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    subject = catalog.get_subject(db, faculty, subject_id)
    name = subject.name
    delete_subject(db, subject, faculty)
    return MessageResponse(message=f'Subject "{name}" deleted')


# ── Professors ───────────────────────────────────────────────────────────────

@router.post("/faculty/{faculty_id}/professor", response_model=ProfessorOut)
def add_professor(faculty_id: int, payload: ProfessorCreate, response: Response, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    professor, created = create_professor(
        db, faculty, payload.name, payload.subject_ids, department=payload.department
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return professor


@router.get("/professors", response_model=list[ProfessorDetail])
def all_professors(db: Session = Depends(get_db)):
    return [
        ProfessorDetail(
            id=p.id,
            name=p.name,
            faculty=p.faculty.name if p.faculty else "No faculty",
            subjects=[s.name for s in p.subjects],
            rating_stats=p.rating_stats,
        )
        for p in catalog.list_all_professors(db)
    ]


@router.get("/faculty/{faculty_id}/professor", response_model=list[ProfessorOut])
def faculty_professors(faculty_id: int, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    return catalog.list_faculty_professors(db, faculty.id)


@router.get("/faculty/{faculty_id}/professor/{professor_id}", response_model=ProfessorOut)
def get_professor(faculty_id: int, professor_id: int, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    return catalog.get_professor(db, faculty, professor_id)


@router.put("/faculty/{faculty_id}/professor/{professor_id}", response_model=ProfessorOut)
def edit_professor(faculty_id: int, professor_id: int, payload: ProfessorUpdate, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    professor = catalog.get_professor(db, faculty, professor_id)
    return catalog.update_professor(
        db, professor,
        name=payload.name,
        department=payload.department,
        subject_ids=payload.subject_ids,
    )


@router.delete("/faculty/{faculty_id}/professor/{professor_id}", response_model=MessageResponse)
def remove_professor(faculty_id: int, professor_id: int, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    professor = catalog.get_professor(db, faculty, professor_id)
    delete_professor(db, professor)
    return MessageResponse(message="Professor deleted")


# ── Reports ──────────────────────────────────────────────────────────────────

@router.get("/reports", response_model=list[ReportOut])
def list_reports(status_filter: Optional[str] = Query(None, alias="status"), db: Session = Depends(get_db)):
    return moderation.list_reports(db, status_filter)


@router.get("/reports/{report_id}", response_model=ReportOut)
def get_report(report_id: int, db: Session = Depends(get_db)):
    return moderation.get_report(db, report_id)


@router.delete("/reports/{report_id}/comment", response_model=ReportResolution)
def delete_reported_comment(report_id: int, db: Session = Depends(get_db)):
    report = moderation.resolve_as_deleted(db, report_id)
    return ReportResolution(message="Comment deleted", report=ReportOut.model_validate(report))


@router.put("/reports/{report_id}/reject", response_model=ReportOut)
def reject_report(report_id: int, db: Session = Depends(get_db)):
    return moderation.reject_report(db, report_id)
