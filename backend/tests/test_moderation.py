"""Tests for the report lifecycle."""

import pytest

from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import REPORT_DELETED, REPORT_PENDING, REPORT_REJECTED, Professor, Rating, Report
from app.moderation import create_report, get_report, list_reports, reject_report, resolve_as_deleted
from app.ratings import create_rating


@pytest.fixture
def rated(session, professor, subject):
    kept = create_rating(session, professor, subject.id, general=2, comment="fine")
    reported = create_rating(session, professor, subject.id, general=5, comment="spam spam")
    return kept, reported


class TestCreateReport:
    def test_snapshots_rating(self, session, rated):
        _, reported = rated
        report = create_report(session, reported.id, ["spam"], "looks automated")

        assert report.status == REPORT_PENDING
        assert report.comment_id == reported.id
        assert report.rating_comment == "spam spam"
        assert report.professor_id == reported.professor_id
        assert report.reasons == ["spam"]

    def test_unknown_rating(self, session):
        with pytest.raises(NotFoundError):
            create_report(session, 999, ["spam"])


class TestResolveAsDeleted:
    def test_deletes_rating_and_recomputes(self, session, professor, rated):
        kept, reported = rated
        report = create_report(session, reported.id, ["spam"])

        resolved = resolve_as_deleted(session, report.id)

        assert resolved.status == REPORT_DELETED
        assert session.query(Rating).filter_by(id=reported.id).count() == 0
        session.expire_all()
        stored = session.get(Professor, professor.id)
        assert stored.total_ratings == 1
        assert stored.average_general == pytest.approx(2.0)

    def test_report_is_terminal(self, session, rated):
        _, reported = rated
        report = create_report(session, reported.id, ["spam"])
        resolve_as_deleted(session, report.id)

        with pytest.raises(ConflictError):
            resolve_as_deleted(session, report.id)
        with pytest.raises(ConflictError):
            reject_report(session, report.id)
        assert get_report(session, report.id).status == REPORT_DELETED

    def test_malformed_report(self, session):
        report = Report(reasons=["spam"], status=REPORT_PENDING)
        session.add(report)
        session.commit()

        with pytest.raises(ValidationError):
            resolve_as_deleted(session, report.id)

    def test_unknown_report(self, session):
        with pytest.raises(NotFoundError):
            resolve_as_deleted(session, 42)


class TestRejectReport:
    def test_leaves_rating_and_stats(self, session, professor, rated):
        _, reported = rated
        report = create_report(session, reported.id, ["offensive"])
        before = dict(professor.rating_stats)

        rejected = reject_report(session, report.id)

        assert rejected.status == REPORT_REJECTED
        assert session.query(Rating).filter_by(id=reported.id).count() == 1
        session.refresh(professor)
        assert professor.rating_stats == before

    def test_list_filters_by_status(self, session, rated):
        kept, reported = rated
        first = create_report(session, kept.id, ["spam"])
        create_report(session, reported.id, ["spam"])
        reject_report(session, first.id)

        assert [r.comment_id for r in list_reports(session, REPORT_PENDING)] == [reported.id]
        assert len(list_reports(session)) == 2
