"""Tests for the cache module."""

from unittest.mock import MagicMock, call, patch

from app.cache import cache_get, cache_invalidate, cache_key, cache_set, invalidate_faculty
from app.relationships import create_professor


class TestCacheKey:
    def test_namespaced(self):
        assert cache_key("faculty", 3, "subjects") == "rmp:faculty:3:subjects"


class TestCacheGet:
    @patch("app.cache.get_redis")
    def test_returns_parsed_json(self, mock_redis):
        mock_conn = MagicMock()
        mock_conn.get.return_value = '{"key": "value"}'
        mock_redis.return_value = mock_conn

        result = cache_get("test:key")
        assert result == {"key": "value"}
        mock_conn.get.assert_called_once_with("test:key")

    @patch("app.cache.get_redis")
    def test_returns_none_on_miss(self, mock_redis):
        mock_conn = MagicMock()
        mock_conn.get.return_value = None
        mock_redis.return_value = mock_conn

        result = cache_get("test:miss")
        assert result is None

    @patch("app.cache.get_redis")
    def test_returns_none_on_error(self, mock_redis):
        mock_redis.side_effect = Exception("Connection refused")
        result = cache_get("test:error")
        assert result is None


class TestCacheSet:
    @patch("app.cache.get_redis")
    def test_stores_value(self, mock_redis):
        mock_conn = MagicMock()
        mock_redis.return_value = mock_conn

        cache_set("test:key", {"a": 1}, ttl=60)
        mock_conn.set.assert_called_once_with("test:key", '{"a": 1}', ex=60)


class TestCacheInvalidate:
    @patch("app.cache.get_redis")
    def test_deletes_matching_keys(self, mock_redis):
        mock_conn = MagicMock()
        mock_conn.keys.return_value = ["rmp:a", "rmp:b"]
        mock_redis.return_value = mock_conn

        cache_invalidate("rmp:*")
        mock_conn.delete.assert_called_once_with("rmp:a", "rmp:b")

    @patch("app.cache.get_redis")
    def test_faculty_hook_covers_dependent_reads(self, mock_redis):
        mock_conn = MagicMock()
        mock_conn.keys.return_value = []
        mock_redis.return_value = mock_conn

        invalidate_faculty(7)
        assert mock_conn.keys.call_args_list == [
            call("rmp:faculty:7:*"),
            call("rmp:home"),
            call("rmp:search:*"),
        ]


class TestWriteInvalidation:
    def test_new_professor_invalidates_faculty_lists(self, session, faculty, subject):
        with patch("app.relationships.invalidate_faculty") as mock_invalidate:
            create_professor(session, faculty, "Ana Ruiz", [subject.id])
        mock_invalidate.assert_called_once_with(faculty.id)
