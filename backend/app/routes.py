"""Public API routes – catalog browsing, ratings, votes, reports, search, health."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from app import catalog, moderation, ratings
from app.cache import cache_get, cache_key, cache_set
from app.captcha import verify_captcha
from app.config import get_settings
from app.database import get_db
from app.es_service import search_professors, search_subjects
from app.relationships import create_professor
from app.schemas import (
    DepartmentOut,
    FacultyOut,
    HealthResponse,
    HomeResponse,
    ProfessorCreate,
    ProfessorHit,
    ProfessorOut,
    ProfessorSearchRequest,
    ProfessorSearchResponse,
    RatingCreate,
    RatingOut,
    RatingPage,
    ReportCreate,
    ReportOut,
    SubjectCreate,
    SubjectHit,
    SubjectOut,
    SubjectSearchRequest,
    SubjectSearchResponse,
    VoteRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


# ── Health ───────────────────────────────────────────────────────────────────

@router.get("/health", response_model=HealthResponse, tags=["health"])
def health():
    return HealthResponse()


# ── Home / Faculties ─────────────────────────────────────────────────────────

@router.get("/faculties", response_model=HomeResponse, tags=["faculties"])
def home(db: Session = Depends(get_db)):
    key = cache_key("home")
    cached = cache_get(key)
    if cached:
        return HomeResponse(**cached)

    data = HomeResponse(
        faculties=[FacultyOut.model_validate(f) for f in catalog.list_faculties(db)],
        top_professors=[ProfessorOut.model_validate(p) for p in catalog.top_professors(db)],
    )
    cache_set(key, data.model_dump(), ttl=get_settings().cache_ttl_home)
    return data


@router.get("/faculties/{faculty_id}", response_model=FacultyOut, tags=["faculties"])
def get_faculty(faculty_id: int, db: Session = Depends(get_db)):
    return catalog.get_faculty(db, faculty_id)


@router.get("/faculties/{faculty_id}/departments", response_model=list[DepartmentOut], tags=["faculties"])
def faculty_departments(faculty_id: int, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    return catalog.list_departments(db, faculty)


# ── Subjects ─────────────────────────────────────────────────────────────────

@router.get("/faculties/{faculty_id}/subjects", response_model=list[SubjectOut], tags=["subjects"])
def faculty_subjects(
    faculty_id: int,
    search: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
):
    key = cache_key("faculty", faculty_id, "subjects", search or "all", limit or "all")
    cached = cache_get(key)
    if cached is not None:
        return [SubjectOut(**s) for s in cached]

    catalog.get_faculty(db, faculty_id)
    subjects = [SubjectOut.model_validate(s) for s in catalog.list_faculty_subjects(db, faculty_id, search, limit)]
    cache_set(key, [s.model_dump() for s in subjects], ttl=get_settings().cache_ttl_subjects)
    return subjects


@router.post(
    "/faculties/{faculty_id}/subjects",
    response_model=SubjectOut,
    status_code=status.HTTP_201_CREATED,
    tags=["subjects"],
)
def create_subject(faculty_id: int, payload: SubjectCreate, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    return catalog.create_subject(db, faculty, **payload.model_dump())


@router.get("/faculties/{faculty_id}/subjects/{subject_id}", response_model=SubjectOut, tags=["subjects"])
def get_subject(faculty_id: int, subject_id: int, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    return catalog.get_subject(db, faculty, subject_id)


@router.get(
    "/faculties/{faculty_id}/subjects/{subject_id}/professors",
    response_model=list[ProfessorOut],
    tags=["subjects"],
)
def subject_professors(faculty_id: int, subject_id: int, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    subject = catalog.get_subject(db, faculty, subject_id)
    return catalog.subject_professors(db, faculty, subject)


# ── Professors ───────────────────────────────────────────────────────────────

@router.get("/faculties/{faculty_id}/professors", response_model=list[ProfessorOut], tags=["professors"])
def faculty_professors(
    faculty_id: int,
    search: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
):
    key = cache_key("faculty", faculty_id, "professors", search or "all", limit or "all")
    cached = cache_get(key)
    if cached is not None:
        return [ProfessorOut(**p) for p in cached]

    catalog.get_faculty(db, faculty_id)
    professors = [
        ProfessorOut.model_validate(p)
        for p in catalog.list_faculty_professors(db, faculty_id, search, limit)
    ]
    cache_set(key, [p.model_dump() for p in professors], ttl=get_settings().cache_ttl_professors)
    return professors


@router.post("/faculties/{faculty_id}/professors", response_model=ProfessorOut, tags=["professors"])
def create_professor_endpoint(
    faculty_id: int, payload: ProfessorCreate, response: Response, db: Session = Depends(get_db)
):
    """Create a professor, or attach the subjects to an existing namesake.

    201 when a new professor was created, 200 when merged.
    """
    faculty = catalog.get_faculty(db, faculty_id)
    professor, created = create_professor(
        db, faculty, payload.name, payload.subject_ids, department=payload.department
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return professor


@router.get("/faculties/{faculty_id}/professors/{professor_id}", response_model=ProfessorOut, tags=["professors"])
def get_professor(faculty_id: int, professor_id: int, db: Session = Depends(get_db)):
    faculty = catalog.get_faculty(db, faculty_id)
    return catalog.get_professor(db, faculty, professor_id)


# ── Ratings ──────────────────────────────────────────────────────────────────

@router.get(
    "/faculties/{faculty_id}/professors/{professor_id}/ratings",
    response_model=RatingPage,
    tags=["ratings"],
)
def professor_ratings(
    faculty_id: int,
    professor_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    faculty = catalog.get_faculty(db, faculty_id)
    professor = catalog.get_professor(db, faculty, professor_id)
    return ratings.list_professor_ratings(db, professor, page, limit)


@router.post(
    "/faculties/{faculty_id}/professors/{professor_id}/ratings",
    response_model=RatingOut,
    status_code=status.HTTP_201_CREATED,
    tags=["ratings"],
)
def create_rating(
    faculty_id: int, professor_id: int, payload: RatingCreate, request: Request, db: Session = Depends(get_db)
):
    verify_captcha(payload.captcha, _client_ip(request))
    faculty = catalog.get_faculty(db, faculty_id)
    professor = catalog.get_professor(db, faculty, professor_id)
    return ratings.create_rating(db, professor, **payload.model_dump(exclude={"captcha"}))


@router.post(
    "/faculties/{faculty_id}/professors/{professor_id}/ratings/{rating_id}/vote",
    response_model=RatingOut,
    tags=["ratings"],
)
def vote_rating(
    faculty_id: int,
    professor_id: int,
    rating_id: int,
    payload: VoteRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    verify_captcha(payload.captcha, _client_ip(request))
    faculty = catalog.get_faculty(db, faculty_id)
    professor = catalog.get_professor(db, faculty, professor_id)
    rating = ratings.get_rating(db, professor, rating_id)
    return ratings.toggle_like(db, rating, payload.voter_id, payload.type)


@router.post(
    "/faculties/{faculty_id}/professors/{professor_id}/ratings/{rating_id}/report",
    response_model=ReportOut,
    status_code=status.HTTP_201_CREATED,
    tags=["reports"],
)
def report_rating(
    faculty_id: int,
    professor_id: int,
    rating_id: int,
    payload: ReportCreate,
    request: Request,
    db: Session = Depends(get_db),
):
    verify_captcha(payload.captcha, _client_ip(request))
    faculty = catalog.get_faculty(db, faculty_id)
    professor = catalog.get_professor(db, faculty, professor_id)
    rating = ratings.get_rating(db, professor, rating_id)
    return moderation.create_report(db, rating.id, payload.reasons, payload.report_comment)


# ── Search (Elasticsearch + Redis cache) ─────────────────────────────────────

def _search_cache_key(kind: str, req) -> str:
    raw = json.dumps(req.model_dump(), sort_keys=True)
    return cache_key("search", kind, hashlib.md5(raw.encode()).hexdigest())


@router.post("/search/professors", response_model=ProfessorSearchResponse, tags=["search"])
def search_professors_endpoint(req: ProfessorSearchRequest):
    key = _search_cache_key("professor", req)
    cached = cache_get(key)
    if cached:
        return ProfessorSearchResponse(**cached, cached=True)

    t0 = time.perf_counter()
    es_result = search_professors(
        query=req.query,
        faculty_id=req.faculty_id,
        min_rating=req.min_rating,
        size=req.size,
        offset=req.offset,
    )
    latency_ms = int((time.perf_counter() - t0) * 1000)

    response_data = {
        "total": es_result["total"],
        "took_ms": latency_ms,
        "results": [r.model_dump() for r in (ProfessorHit(**h) for h in es_result["hits"])],
    }
    cache_set(key, response_data)
    return ProfessorSearchResponse(**response_data)


@router.post("/search/subjects", response_model=SubjectSearchResponse, tags=["search"])
def search_subjects_endpoint(req: SubjectSearchRequest):
    key = _search_cache_key("subject", req)
    cached = cache_get(key)
    if cached:
        return SubjectSearchResponse(**cached, cached=True)

    t0 = time.perf_counter()
    es_result = search_subjects(
        query=req.query,
        faculty_id=req.faculty_id,
        size=req.size,
        offset=req.offset,
    )
    latency_ms = int((time.perf_counter() - t0) * 1000)

    response_data = {
        "total": es_result["total"],
        "took_ms": latency_ms,
        "results": [r.model_dump() for r in (SubjectHit(**h) for h in es_result["hits"])],
    }
    cache_set(key, response_data)
    return SubjectSearchResponse(**response_data)
