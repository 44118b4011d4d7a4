from typing import Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer
from sqlalchemy.orm import Session

from config import get_settings
from models import Profile
from visibility import Viewer

SESSION_COOKIE = "duorico_session"


def _serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(settings.session_secret, salt="session")


def issue_session_token(profile_id: str) -> str:
    return _serializer().dumps({"sub": profile_id})


def read_session_token(token: str) -> Optional[str]:
    settings = get_settings()
    try:
        data = _serializer().loads(token, max_age=settings.session_max_age_secs)
    except BadSignature:
        # SignatureExpired is a BadSignature too.
        return None
    subject = data.get("sub") if isinstance(data, dict) else None
    return subject if isinstance(subject, str) and subject else None


def get_current_viewer(session: Session, token: Optional[str]) -> Optional[Viewer]:
    if not token:
        return None
    profile_id = read_session_token(token)
    if profile_id is None:
        return None
    profile = session.get(Profile, profile_id)
    if not profile:
        return None
    return Viewer(id=profile.id, couple_id=profile.couple_id)
