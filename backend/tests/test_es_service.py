"""Tests for Elasticsearch service functions."""

from unittest.mock import MagicMock, patch

from elasticsearch import NotFoundError as ESNotFoundError

from app.es_service import (
    delete_document,
    ensure_indexes,
    professor_document,
    search_professors,
    search_subjects,
)


class TestSearchProfessors:
    @patch("app.es_service.get_es")
    def test_search_with_query(self, mock_get_es):
        mock_es = MagicMock()
        mock_es.search.return_value = {
            "hits": {
                "total": {"value": 2},
                "hits": [
                    {"_source": {"professor_id": 1, "name": "Ana Ruiz"}},
                    {"_source": {"professor_id": 2, "name": "Ana Rios"}},
                ],
            },
            "took": 3,
        }
        mock_get_es.return_value = mock_es

        result = search_professors(query="ana")
        assert result["total"] == 2
        assert len(result["hits"]) == 2
        assert result["took_ms"] == 3
        call_body = mock_es.search.call_args[1]["body"]
        assert call_body["query"]["bool"]["must"][0]["multi_match"]["query"] == "ana"

    @patch("app.es_service.get_es")
    def test_faculty_and_rating_filters(self, mock_get_es):
        mock_es = MagicMock()
        mock_es.search.return_value = {
            "hits": {"total": {"value": 0}, "hits": []},
            "took": 1,
        }
        mock_get_es.return_value = mock_es

        result = search_professors(query="", faculty_id=4, min_rating=3.5)
        assert result["total"] == 0
        call_body = mock_es.search.call_args[1]["body"]
        filters = call_body["query"]["bool"]["filter"]
        assert {"term": {"faculty_id": 4}} in filters
        assert {"range": {"average_general": {"gte": 3.5}}} in filters
        assert call_body["query"]["bool"]["must"] == [{"match_all": {}}]


class TestSearchSubjects:
    @patch("app.es_service.get_es")
    def test_search_subjects(self, mock_get_es):
        mock_es = MagicMock()
        mock_es.search.return_value = {
            "hits": {
                "total": {"value": 1},
                "hits": [{"_source": {"subject_id": 10, "name": "Algebra"}}],
            },
            "took": 2,
        }
        mock_get_es.return_value = mock_es

        result = search_subjects(query="algebra")
        assert result["total"] == 1
        assert result["hits"][0]["name"] == "Algebra"


class TestDocuments:
    def test_professor_document(self, professor):
        doc = professor_document(professor)
        assert doc["professor_id"] == professor.id
        assert doc["subject_names"] == ["Algebra"]
        assert doc["total_ratings"] == 0


class TestEnsureIndexes:
    @patch("app.es_service.get_es")
    def test_creates_missing_indexes(self, mock_get_es):
        mock_es = MagicMock()
        mock_es.indices.exists.return_value = False
        mock_get_es.return_value = mock_es

        ensure_indexes()
        assert mock_es.indices.create.call_count == 2


class TestDeleteDocument:
    @patch("app.es_service.get_es")
    def test_missing_document_is_ignored(self, mock_get_es):
        mock_es = MagicMock()
        mock_es.delete.side_effect = ESNotFoundError("not found", MagicMock(status=404), {})
        mock_get_es.return_value = mock_es

        delete_document("professors", 5)
        mock_es.delete.assert_called_once_with(index="professors", id=5)
