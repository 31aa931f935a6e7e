"""Bearer token authentication: credential verification and role derivation."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Protocol

import jwt

from media_api.config.settings import Settings
from media_api.errors import (
    IncompleteClaims,
    InvalidCredential,
    MalformedCredential,
    MissingCredential,
)
from media_api.models import Principal

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
USER_ROLE = "user"


class CredentialVerifier(Protocol):
    async def verify(self, token: str) -> Dict[str, Any]:
        ...


class JwtService:
    """HS256 JWT verification (and issuance, for tooling and tests)."""

    def __init__(self, secret: str, algorithm: str = "HS256"):
        self.secret = secret
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "JwtService":
        return cls(secret=settings.jwt_secret, algorithm=settings.jwt_algorithm)

    async def verify(self, token: str) -> Dict[str, Any]:
        return jwt.decode(token, self.secret, algorithms=[self.algorithm])

    def issue(
        self,
        email: Optional[str],
        role: str = USER_ROLE,
        user_id: Optional[str] = None,
        ttl_minutes: int = 60,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "role": role,
            "iat": now,
            "exp": now + timedelta(minutes=ttl_minutes),
        }
        if email:
            payload["email"] = email
        if user_id:
            payload["uuid"] = user_id
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)


class Authenticator:
    """Turn an `Authorization` header into a `Principal`.

    Failures raise an `AuthenticationError` subclass and are terminal for the
    request.
    """

    def __init__(self, verifier: CredentialVerifier, scheme: str = "Bearer", admin_role: str = ADMIN_ROLE):
        self.verifier = verifier
        self.scheme = scheme
        self.admin_role = admin_role

    def extract_token(self, header: Optional[str]) -> str:
        if not header:
            raise MissingCredential()

        parts = header.split(" ")
        if len(parts) != 2 or parts[0] != self.scheme:
            raise MalformedCredential()

        token = parts[1].strip()
        if not token:
            raise MalformedCredential()
        return token

    def derive_role(self, claimed_role: Any) -> str:
        return ADMIN_ROLE if claimed_role == self.admin_role else USER_ROLE

    async def authenticate(self, header: Optional[str]) -> Principal:
        token = self.extract_token(header)

        try:
            claims = await self.verifier.verify(token)
        except Exception as e:
            logger.info("Token verification failed: %s", e)
            raise InvalidCredential() from e

        email = claims.get("email") if isinstance(claims, dict) else None
        if not email:
            raise IncompleteClaims()

        return Principal(
            role=self.derive_role(claims.get("role")),
            email=email,
            id=claims.get("uuid") or claims.get("sub"),
        )
