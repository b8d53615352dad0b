"""reCAPTCHA verification for anonymous submissions. Fails closed."""

import logging

import httpx

from app.config import get_settings
from app.errors import CaptchaError

logger = logging.getLogger(__name__)


def verify_captcha(token: str, remote_ip: str = None):
    """Raise ``CaptchaError`` unless the verification service accepts ``token``."""
    settings = get_settings()
    if not settings.captcha_enabled:
        return
    if not token:
        raise CaptchaError("CAPTCHA token is required")

    data = {"secret": settings.recaptcha_secret, "response": token}
    if remote_ip:
        data["remoteip"] = remote_ip

    try:
        response = httpx.post(
            settings.recaptcha_verify_url,
            data=data,
            timeout=settings.recaptcha_timeout,
        )
        response.raise_for_status()
        result = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("CAPTCHA verification unavailable: %s", exc)
        raise CaptchaError("CAPTCHA verification unavailable") from exc

    if not result.get("success"):
        logger.info("CAPTCHA rejected: %s", result.get("error-codes"))
        raise CaptchaError()
