import logging
import secrets
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from config import get_settings

logger = logging.getLogger(__name__)

CSRF_FIELD = "csrf_token"
CSRF_MAX_AGE_SECS = 2 * 3600


def _serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(settings.csrf_secret, salt="duorico-csrf")


def generate_csrf_token(viewer_id: str) -> str:
    return _serializer().dumps({"viewer": viewer_id, "nonce": secrets.token_urlsafe(8)})


def validate_csrf_token(
    token: Optional[str], viewer_id: str, max_age_secs: int = CSRF_MAX_AGE_SECS
) -> bool:
    """A token is good for the viewer it was issued to, until it expires."""
    if not token:
        return False
    try:
        data = _serializer().loads(token, max_age=max_age_secs)
    except SignatureExpired:
        logger.info(f"csrf_expired: viewer={viewer_id}")
        return False
    except BadSignature:
        return False
    return isinstance(data, dict) and data.get("viewer") == viewer_id
