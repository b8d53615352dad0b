"""Tests for reCAPTCHA verification."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from app.captcha import verify_captcha
from app.errors import CaptchaError


@pytest.fixture
def enabled():
    settings = MagicMock(
        captcha_enabled=True,
        recaptcha_secret="secret",
        recaptcha_verify_url="https://captcha.test/verify",
        recaptcha_timeout=2.0,
    )
    with patch("app.captcha.get_settings", return_value=settings):
        yield settings


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    return resp


class TestVerifyCaptcha:
    @patch("app.captcha.httpx.post")
    def test_accepts_valid_token(self, mock_post, enabled):
        mock_post.return_value = _response({"success": True})
        verify_captcha("token", "10.0.0.1")
        mock_post.assert_called_once_with(
            "https://captcha.test/verify",
            data={"secret": "secret", "response": "token", "remoteip": "10.0.0.1"},
            timeout=2.0,
        )

    @patch("app.captcha.httpx.post")
    def test_rejected_token(self, mock_post, enabled):
        mock_post.return_value = _response({"success": False, "error-codes": ["invalid-input-response"]})
        with pytest.raises(CaptchaError):
            verify_captcha("token")

    @patch("app.captcha.httpx.post")
    def test_fails_closed_when_unreachable(self, mock_post, enabled):
        mock_post.side_effect = httpx.ConnectError("down")
        with pytest.raises(CaptchaError) as exc_info:
            verify_captcha("token")
        assert exc_info.value.message == "CAPTCHA verification unavailable"

    @patch("app.captcha.httpx.post")
    def test_missing_token(self, mock_post, enabled):
        with pytest.raises(CaptchaError):
            verify_captcha("")
        mock_post.assert_not_called()

    @patch("app.captcha.httpx.post")
    def test_disabled_skips_check(self, mock_post):
        verify_captcha("")
        mock_post.assert_not_called()
