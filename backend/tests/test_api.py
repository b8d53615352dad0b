"""Tests for API routes using TestClient."""

from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from app.errors import CaptchaError


class TestHealthEndpoint:
    def test_health(self, client):
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert "version" in data


class TestCatalogBrowsing:
    def test_home_lists_faculties_and_top_professors(self, client, professor, subject):
        client.post(
            f"/api/v1/faculties/{professor.faculty_id}/professors/{professor.id}/ratings",
            json={"general": 5, "subject_id": subject.id},
        )
        resp = client.get("/api/v1/faculties")
        assert resp.status_code == 200
        data = resp.json()
        assert [f["abbreviation"] for f in data["faculties"]] == ["ENG"]
        assert data["top_professors"][0]["name"] == "Ana Ruiz"

    def test_unknown_faculty_is_404(self, client):
        resp = client.get("/api/v1/faculties/999/subjects")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Faculty not found"}

    def test_subject_professors(self, client, faculty, subject, professor):
        resp = client.get(f"/api/v1/faculties/{faculty.id}/subjects/{subject.id}/professors")
        assert resp.status_code == 200
        assert [p["id"] for p in resp.json()] == [professor.id]

    def test_subject_search(self, client, faculty, subject, second_subject):
        resp = client.get(f"/api/v1/faculties/{faculty.id}/subjects", params={"search": "calc"})
        assert [s["name"] for s in resp.json()] == ["Calculus"]


class TestCreateProfessorEndpoint:
    def test_created_then_merged(self, client, faculty, subject, second_subject):
        url = f"/api/v1/faculties/{faculty.id}/professors"

        first = client.post(url, json={"name": "José Pérez", "subject_ids": [subject.id]})
        assert first.status_code == 201

        second = client.post(url, json={"name": "jose perez", "subject_ids": [second_subject.id]})
        assert second.status_code == 200
        assert second.json()["id"] == first.json()["id"]
        assert sorted(second.json()["subject_ids"]) == sorted([subject.id, second_subject.id])

    def test_requires_subjects(self, client, faculty):
        resp = client.post(f"/api/v1/faculties/{faculty.id}/professors", json={"name": "X", "subject_ids": []})
        assert resp.status_code == 422

    def test_unknown_subject_is_404(self, client, faculty):
        resp = client.post(f"/api/v1/faculties/{faculty.id}/professors", json={"name": "X", "subject_ids": [77]})
        assert resp.status_code == 404


class TestRatingEndpoints:
    def test_rate_and_list(self, client, faculty, professor, subject):
        base = f"/api/v1/faculties/{faculty.id}/professors/{professor.id}/ratings"
        for score in (5, 5, 4):
            resp = client.post(base, json={"general": score, "subject_id": subject.id, "comment": "ok"})
            assert resp.status_code == 201

        page = client.get(base, params={"limit": 2}).json()
        assert page["total"] == 3
        assert page["next_page"] == 2

        prof = client.get(f"/api/v1/faculties/{faculty.id}/professors/{professor.id}").json()
        assert round(prof["rating_stats"]["average_general"], 2) == 4.67

    def test_score_out_of_range(self, client, faculty, professor, subject):
        resp = client.post(
            f"/api/v1/faculties/{faculty.id}/professors/{professor.id}/ratings",
            json={"general": 6, "subject_id": subject.id},
        )
        assert resp.status_code == 422

    def test_captcha_failure_blocks_rating(self, client, faculty, professor, subject):
        with patch("app.routes.verify_captcha", side_effect=CaptchaError()):
            resp = client.post(
                f"/api/v1/faculties/{faculty.id}/professors/{professor.id}/ratings",
                json={"general": 4, "subject_id": subject.id},
            )
        assert resp.status_code == 400
        assert resp.json() == {"error": "CAPTCHA verification failed"}

    def test_vote_toggles(self, client, faculty, professor, subject):
        base = f"/api/v1/faculties/{faculty.id}/professors/{professor.id}/ratings"
        rating_id = client.post(base, json={"general": 4, "subject_id": subject.id}).json()["id"]

        liked = client.post(f"{base}/{rating_id}/vote", json={"voter_id": "user1"})
        assert liked.json()["likes"] == ["user1"]
        unliked = client.post(f"{base}/{rating_id}/vote", json={"voter_id": "user1"})
        assert unliked.json()["likes"] == []

    def test_invalid_vote_type(self, client, faculty, professor, subject):
        base = f"/api/v1/faculties/{faculty.id}/professors/{professor.id}/ratings"
        rating_id = client.post(base, json={"general": 4, "subject_id": subject.id}).json()["id"]
        resp = client.post(f"{base}/{rating_id}/vote", json={"voter_id": "user1", "type": 2})
        assert resp.status_code == 400


class TestModerationEndpoints:
    def test_report_then_delete_comment(self, client, faculty, professor, subject):
        base = f"/api/v1/faculties/{faculty.id}/professors/{professor.id}/ratings"
        rating_id = client.post(base, json={"general": 1, "subject_id": subject.id}).json()["id"]

        report = client.post(f"{base}/{rating_id}/report", json={"reasons": ["spam"]})
        assert report.status_code == 201
        report_id = report.json()["id"]

        resolved = client.delete(f"/api/v1/admin/reports/{report_id}/comment")
        assert resolved.status_code == 200
        assert resolved.json()["report"]["status"] == "deleted"

        again = client.put(f"/api/v1/admin/reports/{report_id}/reject")
        assert again.status_code == 400
        assert client.get(base).json()["total"] == 0


class TestAdminEndpoints:
    def test_faculty_crud_and_dashboard(self, client):
        created = client.post("/api/v1/admin/faculty", json={"name": "Medicine", "abbreviation": "MED"})
        assert created.status_code == 201
        faculty_id = created.json()["id"]

        renamed = client.put(f"/api/v1/admin/faculty/{faculty_id}", json={"name": "Medical School", "abbreviation": "MED"})
        assert renamed.json()["name"] == "Medical School"

        stats = client.get("/api/v1/admin/dashboard-stats").json()
        assert stats["faculties_count"] == 1

        assert client.delete(f"/api/v1/admin/faculty/{faculty_id}").status_code == 200
        assert client.get(f"/api/v1/admin/faculty/{faculty_id}").status_code == 404

        feed = client.get("/api/v1/admin/recent-activities").json()
        assert feed[0]["type"].startswith("Faculty deleted")

    def test_duplicate_subject_is_400(self, client, faculty, subject):
        resp = client.post(f"/api/v1/admin/faculty/{faculty.id}/subject", json={"name": "algebra"})
        assert resp.status_code == 400

    def test_professor_listing(self, client, professor):
        rows = client.get("/api/v1/admin/professors").json()
        assert rows == [{
            "id": professor.id,
            "name": "Ana Ruiz",
            "faculty": "Engineering",
            "subjects": ["Algebra"],
            "rating_stats": professor.rating_stats,
        }]

    def test_partial_professor_cleanup_is_reported(self, client, faculty, professor, subject):
        broken = OperationalError("DELETE FROM ratings", {}, Exception("disk I/O error"))

        with patch("app.relationships.delete_ratings", side_effect=broken):
            resp = client.delete(f"/api/v1/admin/faculty/{faculty.id}/professor/{professor.id}")

        assert resp.status_code == 500
        assert resp.json() == {"error": "Cleanup partially applied; failed steps: delete ratings"}
        assert client.get(f"/api/v1/admin/faculty/{faculty.id}/professor/{professor.id}").status_code == 404

    def test_total_subject_cleanup_failure_is_reported(self, client, faculty, subject):
        broken = OperationalError("DELETE", {}, Exception("database is locked"))

        with patch("app.relationships.delete_ratings", side_effect=broken), \
                patch("app.relationships.delete", side_effect=broken):
            resp = client.delete(f"/api/v1/admin/faculty/{faculty.id}/subject/{subject.id}")

        assert resp.status_code == 500
        assert resp.json() == {"error": "Cleanup failed; no changes were applied"}

    def test_admin_routes_require_token(self, client):
        from app.auth import require_admin
        from app.main import app

        app.dependency_overrides.pop(require_admin)
        resp = client.get("/api/v1/admin/dashboard-stats")
        assert resp.status_code == 401

    def test_signup_and_login(self, client):
        signup = client.post(
            "/api/v1/admin/signup",
            json={"email": "Root@Example.com", "name": "Root", "password": "s3cret-pass"},
        )
        assert signup.status_code == 201
        login = client.post("/api/v1/admin/login", json={"email": "root@example.com", "password": "s3cret-pass"})
        assert login.status_code == 200
        assert login.json()["token_type"] == "bearer"

        bad = client.post("/api/v1/admin/login", json={"email": "root@example.com", "password": "wrong"})
        assert bad.status_code == 401


class TestSearch:
    @patch("app.routes.search_professors")
    def test_search_professors(self, mock_search, client):
        mock_search.return_value = {
            "total": 1,
            "took_ms": 4,
            "hits": [{
                "id": 3,
                "professor_id": 3,
                "name": "José Pérez",
                "department": "Mathematics",
                "faculty_id": 1,
                "subject_names": ["Algebra"],
                "average_general": 4.5,
                "total_ratings": 2,
            }],
        }
        resp = client.post("/api/v1/search/professors", json={"query": "jose"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 1
        assert data["cached"] is False
        assert data["results"][0]["name"] == "José Pérez"

    @patch("app.routes.search_subjects")
    @patch("app.routes.cache_get")
    def test_cached_subject_search(self, mock_get, mock_search, client):
        mock_get.return_value = {"total": 0, "took_ms": 1, "results": []}
        resp = client.post("/api/v1/search/subjects", json={"query": "nothing"})
        assert resp.status_code == 200
        assert resp.json()["cached"] is True
        mock_search.assert_not_called()
