"""
Authentication service: verifies bearer tokens issued by the identity provider
"""
import logging
from dataclasses import dataclass
from typing import Optional

from jose import JWTError, jwt

from prodspark.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    """The caller as seen by the API. user_id is opaque."""
    user_id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class AuthService:
    """Service for token verification"""

    def __init__(self, key: str = None, algorithm: str = None, issuer: Optional[str] = None):
        self.key = key if key is not None else settings.auth_jwt_key
        self.algorithm = algorithm or settings.auth_algorithm
        self.issuer = (issuer if issuer is not None else settings.auth_issuer) or None

    def decode_token(self, token: str) -> Optional[dict]:
        """Decode and validate a JWT token"""
        try:
            return jwt.decode(
                token,
                self.key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"verify_aud": False},
            )
        except JWTError as e:
            logger.warning(f"JWT decode error: {e}")
            return None

    def user_from_token(self, token: str) -> Optional[AuthenticatedUser]:
        """Map a verified token to the caller, or None if it is invalid."""
        payload = self.decode_token(token)
        if not payload:
            return None

        user_id = payload.get("sub")
        if not user_id:
            logger.warning("JWT has no subject claim")
            return None

        return AuthenticatedUser(
            user_id=str(user_id),
            name=payload.get("name") or payload.get("full_name"),
            avatar_url=payload.get("picture") or payload.get("image_url"),
        )


# Global auth service instance
auth_service = AuthService()
