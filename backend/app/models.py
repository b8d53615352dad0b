"""SQLAlchemy models – faculties, subjects, professors, ratings and moderation."""

from sqlalchemy import (
    Boolean, Column, Integer, String, Float, Text, DateTime, ForeignKey,
    Index, JSON, Table, UniqueConstraint, func,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

REPORT_PENDING = "pending"
REPORT_DELETED = "deleted"
REPORT_REJECTED = "rejected"

VOTE_LIKE = "like"
VOTE_DISLIKE = "dislike"


# Both Professor.subjects and Subject.professors read and write this table.
professor_subjects = Table(
    "professor_subjects",
    Base.metadata,
    Column("professor_id", Integer, ForeignKey("professors.id", ondelete="CASCADE"), primary_key=True),
    Column("subject_id", Integer, ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
)


class Faculty(Base):
    __tablename__ = "faculties"

    id = Column(Integer, primary_key=True)
    name = Column(String(256), nullable=False)
    abbreviation = Column(String(32), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    departments = relationship("Department", back_populates="faculty")
    subjects = relationship("Subject", back_populates="faculty")
    professors = relationship("Professor", back_populates="faculty")


class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True)
    name = Column(String(256), nullable=False)
    faculty_id = Column(Integer, ForeignKey("faculties.id"), nullable=False, index=True)

    faculty = relationship("Faculty", back_populates="departments")
    subjects = relationship("Subject", back_populates="department")


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True)
    name = Column(String(256), nullable=False)
    normalized_name = Column(String(256), nullable=False)
    credits = Column(Integer)
    description = Column(Text)
    faculty_id = Column(Integer, ForeignKey("faculties.id"), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"))

    faculty = relationship("Faculty", back_populates="subjects")
    department = relationship("Department", back_populates="subjects")
    professors = relationship(
        "Professor", secondary=professor_subjects, back_populates="subjects",
        order_by="Professor.id",
    )

    __table_args__ = (
        UniqueConstraint("faculty_id", "normalized_name", name="uq_subject_faculty_name"),
    )

    @property
    def professor_ids(self) -> list[int]:
        return [p.id for p in self.professors]


class Professor(Base):
    __tablename__ = "professors"

    id = Column(Integer, primary_key=True)
    name = Column(String(256), nullable=False)
    normalized_name = Column(String(256), nullable=False)
    department = Column(String(256))
    faculty_id = Column(Integer, ForeignKey("faculties.id"), nullable=False)

    # Denormalised rating snapshot, rewritten by stats.recompute_rating_stats
    total_ratings = Column(Integer, nullable=False, default=0)
    average_general = Column(Float, nullable=False, default=0.0)
    average_explanation = Column(Float, nullable=False, default=0.0)
    average_accessibility = Column(Float, nullable=False, default=0.0)
    average_difficulty = Column(Float, nullable=False, default=0.0)
    average_attendance = Column(Float, nullable=False, default=0.0)
    would_retake_count = Column(Integer, nullable=False, default=0)
    would_retake_percentage = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime, server_default=func.now())

    faculty = relationship("Faculty", back_populates="professors")
    subjects = relationship(
        "Subject", secondary=professor_subjects, back_populates="professors",
        order_by="Subject.id",
    )

    __table_args__ = (
        Index("ix_professors_faculty_normalized", "faculty_id", "normalized_name"),
    )

    @property
    def subject_ids(self) -> list[int]:
        return [s.id for s in self.subjects]

    @property
    def rating_stats(self) -> dict:
        return {
            "total_ratings": self.total_ratings or 0,
            "average_general": self.average_general or 0.0,
            "average_explanation": self.average_explanation or 0.0,
            "average_accessibility": self.average_accessibility or 0.0,
            "average_difficulty": self.average_difficulty or 0.0,
            "average_attendance": self.average_attendance or 0.0,
            "would_retake_count": self.would_retake_count or 0,
            "would_retake_percentage": self.would_retake_percentage or 0.0,
        }


class Rating(Base):
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True)
    general = Column(Float, nullable=False)
    explanation = Column(Float)
    accessibility = Column(Float)
    difficulty = Column(Float)
    attendance = Column(Float)
    would_retake = Column(Boolean, nullable=False, default=False)
    comment = Column(Text, nullable=False, default="")
    subject_id = Column(Integer, nullable=False, index=True)
    professor_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    votes = relationship("RatingVote", back_populates="rating", cascade="all, delete-orphan")

    @property
    def likes(self) -> list[str]:
        return [v.voter_id for v in self.votes if v.kind == VOTE_LIKE]


class RatingVote(Base):
    """One voter's like (or legacy dislike) on a rating."""
    __tablename__ = "rating_votes"

    id = Column(Integer, primary_key=True)
    rating_id = Column(Integer, ForeignKey("ratings.id", ondelete="CASCADE"), nullable=False)
    voter_id = Column(String(128), nullable=False)
    kind = Column(String(8), nullable=False, default=VOTE_LIKE)

    rating = relationship("Rating", back_populates="votes")

    __table_args__ = (
        UniqueConstraint("rating_id", "voter_id", "kind", name="uq_vote_rating_voter_kind"),
    )


class Report(Base):
    """Moderation ticket; keeps a copy of the rating it points at."""
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True)
    comment_id = Column(Integer, index=True)
    rating_comment = Column(Text)
    rating_date = Column(DateTime)
    professor_id = Column(Integer)
    subject_id = Column(Integer)
    reasons = Column(JSON, nullable=False, default=list)
    report_comment = Column(Text)
    status = Column(String(16), nullable=False, default=REPORT_PENDING)
    report_date = Column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("ix_reports_status", "status"),
    )


class ActivityLog(Base):
    """Append-only admin activity feed entry."""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True)
    type = Column(String(32), nullable=False)
    entity_kind = Column(String(16), nullable=False)   # 'faculty' | 'subject' | 'professor'
    entity_id = Column(Integer, nullable=False)
    changes = Column(Text)
    timestamp = Column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("ix_activity_logs_timestamp", "timestamp"),
    )


class Admin(Base):
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True)
    email = Column(String(256), unique=True, nullable=False, index=True)
    name = Column(String(256), nullable=False)
    password_hash = Column(String(256), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
