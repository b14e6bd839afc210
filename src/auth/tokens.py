"""Signed admin session tokens (HS256 JWT)."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from src.auth.errors import InvalidTokenError, NotAdminError, TokenExpiredError

ALGORITHM = "HS256"
ADMIN_ROLE = "ADMIN"


@dataclass
class TokenMetadata:
    """Metadata about an issued token."""

    token: str
    subject: str
    issued_at: datetime
    expires_at: datetime

    @property
    def expires_in(self) -> int:
        return int((self.expires_at - self.issued_at).total_seconds())


class TokenSigner:
    def __init__(self, secret: str, issuer: str, audience: str, ttl: timedelta = timedelta(hours=24)) -> None:
        self._secret = secret
        self.issuer = issuer
        self.audience = audience
        self.ttl = ttl

    def issue(self, *, email: str, name: str, now: datetime, role: str = ADMIN_ROLE) -> TokenMetadata:
        expires_at = now + self.ttl
        payload = {
            "sub": email,
            "email": email,
            "role": role,
            "name": name,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "iss": self.issuer,
            "aud": self.audience,
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        return TokenMetadata(token=token, subject=email, issued_at=now, expires_at=expires_at)

    def verify(self, token: str) -> dict[str, Any]:
        """Verify signature, expiry, issuer and audience, then require the admin role.

        Raises:
            TokenExpiredError: signature fine but ``exp`` is in the past.
            InvalidTokenError: any other decoding or claim failure, including a
                missing ``email`` claim.
            NotAdminError: valid token whose role is not ADMIN.
        """
        try:
            claims: dict[str, Any] = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
            )
        except ExpiredSignatureError as e:
            raise TokenExpiredError() from e
        except JWTError as e:
            raise InvalidTokenError() from e

        if claims.get("role") != ADMIN_ROLE:
            raise NotAdminError()
        if not claims.get("email"):
            raise InvalidTokenError()
        return claims


def extract_bearer_token(authorization: str | None) -> str | None:
    """Extract token from Authorization header value.

    Expected format: 'Bearer <token>'
    Returns None if header is missing or malformed.
    """
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0] != "Bearer":
        return None
    return parts[1].strip() or None
