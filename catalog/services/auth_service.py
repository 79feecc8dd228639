import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from catalog.config import settings
from catalog.errors import AuthenticationError

logger = logging.getLogger(__name__)


def _serializer() -> URLSafeTimedSerializer:
    # Built per call so a rotated secret_key takes effect immediately
    return URLSafeTimedSerializer(settings.secret_key, salt="admin-session")


class AuthService:
    """Shared admin credential check and signed, timestamped session tokens."""

    @staticmethod
    def login_enabled() -> bool:
        return bool(settings.admin_password)

    @staticmethod
    def issue_token(username: str) -> tuple:
        """Return (token, expires_at)."""
        token = _serializer().dumps({"sub": username})
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=settings.token_ttl_seconds)
        return token, expires_at

    @staticmethod
    def login(username: str, password: str) -> tuple:
        if not AuthService.login_enabled():
            raise AuthenticationError("Admin login is not configured")

        user_ok = hmac.compare_digest(username.encode("utf-8"), settings.admin_username.encode("utf-8"))
        password_ok = hmac.compare_digest(password.encode("utf-8"), settings.admin_password.encode("utf-8"))
        if not (user_ok and password_ok):
            logger.warning("Rejected admin login for %r", username)
            raise AuthenticationError("Invalid username or password")

        logger.info("Admin %r logged in", username)
        return AuthService.issue_token(username)

    @staticmethod
    def verify_token(token: Optional[str]) -> str:
        """Return the username in a valid token, else raise AuthenticationError."""
        if not token:
            raise AuthenticationError("Missing or malformed token")

        try:
            claims = _serializer().loads(token, max_age=settings.token_ttl_seconds)
        except SignatureExpired:
            raise AuthenticationError("Token expired")
        except BadSignature:
            raise AuthenticationError("Invalid token")

        if not isinstance(claims, dict) or not claims.get("sub"):
            raise AuthenticationError("Invalid token")
        return claims["sub"]
