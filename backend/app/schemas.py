"""Pydantic schemas for request / response validation."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ── Shared ───────────────────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "1.0.0"


class MessageResponse(BaseModel):
    message: str


# ── Faculty / Department ─────────────────────────────────────────────────────

class FacultyIn(BaseModel):
    name: str = Field(min_length=1)
    abbreviation: str = Field(min_length=1)


class FacultyOut(BaseModel):
    id: int
    name: str
    abbreviation: str

    class Config:
        from_attributes = True


class DepartmentIn(BaseModel):
    name: str = Field(min_length=1)


class DepartmentOut(BaseModel):
    id: int
    name: str
    faculty_id: int

    class Config:
        from_attributes = True


# ── Subject ──────────────────────────────────────────────────────────────────

class SubjectBase(BaseModel):
    name: str = Field(min_length=1)
    credits: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None
    department_id: Optional[int] = None


class SubjectCreate(SubjectBase):
    professor_ids: list[int] = Field(default_factory=list)


class SubjectUpdate(SubjectBase):
    pass


class SubjectOut(BaseModel):
    id: int
    name: str
    normalized_name: str
    credits: Optional[int] = None
    description: Optional[str] = None
    faculty_id: int
    department_id: Optional[int] = None
    professor_ids: list[int] = Field(default_factory=list)

    class Config:
        from_attributes = True


class PageMeta(BaseModel):
    total: int
    page: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class SubjectPage(BaseModel):
    data: list[SubjectOut]
    meta: PageMeta


# ── Professor ────────────────────────────────────────────────────────────────

class RatingStats(BaseModel):
    total_ratings: int = 0
    average_general: float = 0.0
    average_explanation: float = 0.0
    average_accessibility: float = 0.0
    average_difficulty: float = 0.0
    average_attendance: float = 0.0
    would_retake_count: int = 0
    would_retake_percentage: float = 0.0


class ProfessorCreate(BaseModel):
    name: str = Field(min_length=1)
    department: Optional[str] = None
    subject_ids: list[int] = Field(min_length=1)


class ProfessorUpdate(BaseModel):
    name: Optional[str] = None
    department: Optional[str] = None
    subject_ids: Optional[list[int]] = None


class ProfessorOut(BaseModel):
    id: int
    name: str
    department: Optional[str] = None
    faculty_id: int
    subject_ids: list[int] = Field(default_factory=list)
    rating_stats: RatingStats

    class Config:
        from_attributes = True


class ProfessorDetail(BaseModel):
    """Admin listing row with names instead of ids."""
    id: int
    name: str
    faculty: str
    subjects: list[str]
    rating_stats: RatingStats


class HomeResponse(BaseModel):
    faculties: list[FacultyOut]
    top_professors: list[ProfessorOut]


# ── Rating ───────────────────────────────────────────────────────────────────

class CaptchaMixin(BaseModel):
    captcha: str = ""


class RatingCreate(CaptchaMixin):
    general: float = Field(ge=1, le=5)
    explanation: Optional[float] = Field(default=None, ge=1, le=5)
    accessibility: Optional[float] = Field(default=None, ge=1, le=5)
    difficulty: Optional[float] = Field(default=None, ge=1, le=5)
    attendance: Optional[float] = Field(default=None, ge=1, le=5)
    would_retake: bool = False
    comment: str = Field(default="", max_length=2000)
    subject_id: int


class RatingOut(BaseModel):
    id: int
    general: float
    explanation: Optional[float] = None
    accessibility: Optional[float] = None
    difficulty: Optional[float] = None
    attendance: Optional[float] = None
    would_retake: bool
    comment: str
    subject_id: int
    professor_id: int
    likes: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RatingPage(BaseModel):
    ratings: list[RatingOut]
    next_page: Optional[int] = None
    total: int


class VoteRequest(CaptchaMixin):
    voter_id: str = Field(min_length=1, max_length=128)
    type: int = 1


# ── Report ───────────────────────────────────────────────────────────────────

class ReportCreate(CaptchaMixin):
    reasons: list[str] = Field(min_length=1)
    report_comment: Optional[str] = None


class ReportOut(BaseModel):
    id: int
    comment_id: Optional[int] = None
    rating_comment: Optional[str] = None
    rating_date: Optional[datetime] = None
    professor_id: Optional[int] = None
    subject_id: Optional[int] = None
    reasons: list[str]
    report_comment: Optional[str] = None
    status: str
    report_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReportResolution(BaseModel):
    message: str
    report: ReportOut


# ── Admin ────────────────────────────────────────────────────────────────────

class AdminSignup(BaseModel):
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    name: str = Field(min_length=1)
    password: str = Field(min_length=8, max_length=72)


class AdminLogin(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class DashboardStats(BaseModel):
    faculties_count: int
    subjects_count: int
    professors_count: int
    ratings_count: int


class ActivityOut(BaseModel):
    type: str
    details: str
    timestamp: Optional[datetime] = None


# ── Search ───────────────────────────────────────────────────────────────────

class ProfessorSearchRequest(BaseModel):
    query: str = ""
    faculty_id: Optional[int] = None
    min_rating: Optional[float] = Field(default=None, ge=0, le=5)
    size: int = Field(default=25, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class ProfessorHit(BaseModel):
    professor_id: int
    name: str
    department: Optional[str] = None
    faculty_id: int
    subject_names: list[str] = Field(default_factory=list)
    average_general: float = 0.0
    total_ratings: int = 0


class ProfessorSearchResponse(BaseModel):
    total: int
    took_ms: int
    results: list[ProfessorHit]
    cached: bool = False


class SubjectSearchRequest(BaseModel):
    query: str = ""
    faculty_id: Optional[int] = None
    size: int = Field(default=25, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class SubjectHit(BaseModel):
    subject_id: int
    name: str
    faculty_id: int
    credits: Optional[int] = None
    description: Optional[str] = None


class SubjectSearchResponse(BaseModel):
    total: int
    took_ms: int
    results: list[SubjectHit]
    cached: bool = False
