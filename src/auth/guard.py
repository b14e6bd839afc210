"""Admin authentication guard.

Gates admin-only operations behind a single configured credential pair:
bcrypt-hashed secret, HS256 session tokens with a fixed lifetime, and a
per-identity lockout after repeated failures.

Startup validation never exits the process. ``initialize`` returns a
``StartupResult`` and the entry point decides what to do with the errors.
"""

import asyncio
import hmac
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, TypedDict

from src.auth.errors import (
    AccountLockedError,
    AuthError,
    InvalidCredentialsError,
    MissingTokenError,
    PasswordPolicyError,
)
from src.auth.lockout import LockoutTracker
from src.auth.passwords import (
    check_password_strength,
    hash_password,
    is_bcrypt_hash,
    verify_password,
)
from src.auth.tokens import ADMIN_ROLE, TokenSigner
from src.clock import Clock, SystemClock
from src.config import Settings
from src.observability.metrics import ACCOUNT_LOCKOUTS_TOTAL, LOGIN_ATTEMPTS_TOTAL

logger = logging.getLogger(__name__)

JWT_SECRET_MIN_LENGTH = 32


class AdminUser(TypedDict):
    email: str
    name: str
    role: str


class LoginResult(TypedDict):
    success: bool
    token: str
    expires_in: int
    user: AdminUser


class SessionValidation(TypedDict, total=False):
    valid: bool
    user: AdminUser
    error: str
    code: str


@dataclass(frozen=True)
class AdminCredential:
    email: str
    password_hash: str
    name: str
    role: str = ADMIN_ROLE


def validate_environment(settings: Settings) -> list[str]:
    """Check that the admin credential configuration is present and strong enough.

    Returns:
        A list of human-readable problems (empty = OK).
    """
    problems: list[str] = []

    missing: list[str] = []
    if not settings.jwt_secret:
        missing.append("JWT_SECRET")
    if not settings.admin_email:
        missing.append("ADMIN_EMAIL")
    if not settings.admin_password and not settings.admin_password_hash:
        missing.append("ADMIN_PASSWORD")
    if missing:
        problems.append(f"Missing required environment variables: {', '.join(missing)}")

    if settings.jwt_secret and len(settings.jwt_secret) < JWT_SECRET_MIN_LENGTH:
        problems.append(f"JWT_SECRET must be at least {JWT_SECRET_MIN_LENGTH} characters long")

    if settings.admin_password:
        problems.extend(f"ADMIN_PASSWORD: {p}" for p in check_password_strength(settings.admin_password))
    elif settings.admin_password_hash and not is_bcrypt_hash(settings.admin_password_hash):
        problems.append("ADMIN_PASSWORD_HASH must be a valid bcrypt hash")

    return problems


@dataclass
class StartupResult:
    guard: "AdminAuthGuard | None" = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.guard is not None and not self.errors


def initialize(settings: Settings, clock: Clock | None = None) -> StartupResult:
    """Validate settings and build the guard. The cleartext password is hashed here."""
    problems = validate_environment(settings)
    if problems:
        for problem in problems:
            logger.error("Environment validation failed: %s", problem)
        return StartupResult(errors=problems)

    password_hash = settings.admin_password_hash
    if settings.admin_password:
        password_hash = hash_password(settings.admin_password, rounds=settings.bcrypt_rounds)

    credential = AdminCredential(
        email=settings.admin_email.strip(),
        password_hash=password_hash,
        name=settings.admin_name,
    )
    guard = AdminAuthGuard(
        credential,
        TokenSigner(
            settings.jwt_secret,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            ttl=timedelta(hours=settings.token_ttl_hours),
        ),
        LockoutTracker(
            max_attempts=settings.max_login_attempts,
            lockout_duration=timedelta(minutes=settings.lockout_minutes),
            max_identities=settings.lockout_max_identities,
            clock=clock,
        ),
        clock=clock,
        bcrypt_rounds=settings.bcrypt_rounds,
    )
    return StartupResult(guard=guard)


class AdminAuthGuard:
    def __init__(
        self,
        credential: AdminCredential,
        signer: TokenSigner,
        lockout: LockoutTracker,
        clock: Clock | None = None,
        bcrypt_rounds: int = 12,
    ) -> None:
        self._credential = credential
        self.signer = signer
        self.lockout = lockout
        self._clock = clock or SystemClock()
        self._bcrypt_rounds = bcrypt_rounds

    @property
    def user(self) -> AdminUser:
        return AdminUser(email=self._credential.email, name=self._credential.name, role=self._credential.role)

    async def login(self, identity: str, secret: str) -> LoginResult:
        """Authenticate the admin and issue a session token.

        Raises:
            AccountLockedError: too many recent failures for ``identity``.
            InvalidCredentialsError: identity or secret did not match.
        """
        key = identity.strip().casefold()
        remaining = self.lockout.remaining_minutes(key)
        if remaining is not None:
            LOGIN_ATTEMPTS_TOTAL.labels(outcome="locked").inc()
            logger.warning("Rejected login for locked identity %s (%d minutes left)", identity, remaining)
            raise AccountLockedError(remaining)

        identity_ok = hmac.compare_digest(
            key.encode("utf-8"),
            self._credential.email.casefold().encode("utf-8"),
        )
        # bcrypt runs for every attempt so a wrong identity costs the same as a wrong secret
        secret_ok = await asyncio.to_thread(verify_password, secret, self._credential.password_hash)

        if not (identity_ok and secret_ok):
            counter = self.lockout.record_failure(key)
            LOGIN_ATTEMPTS_TOTAL.labels(outcome="failure").inc()
            if counter.count == self.lockout.max_attempts:
                ACCOUNT_LOCKOUTS_TOTAL.inc()
            raise InvalidCredentialsError()

        self.lockout.reset(key)
        meta = self.signer.issue(email=self._credential.email, name=self._credential.name, now=self._clock.now())
        LOGIN_ATTEMPTS_TOTAL.labels(outcome="success").inc()
        logger.info("Admin login successful: %s", self._credential.email)
        return LoginResult(success=True, token=meta.token, expires_in=meta.expires_in, user=self.user)

    def authenticate_request(self, token: str | None) -> dict[str, Any]:
        """Verify a bearer token for an admin-guarded operation and return its claims.

        Raises an ``AuthError`` subclass (401 or 403) on any failure.
        """
        if not token:
            raise MissingTokenError()
        return self.signer.verify(token)

    def validate_session(self, token: str | None) -> SessionValidation:
        """Pull-based variant of ``authenticate_request`` that never raises."""
        try:
            claims = self.authenticate_request(token)
        except AuthError as e:
            return SessionValidation(valid=False, error=e.message, code=e.code)
        return SessionValidation(
            valid=True,
            user=AdminUser(email=claims["email"], name=claims.get("name", ""), role=claims["role"]),
        )

    def logout(self) -> dict[str, object]:
        """Acknowledge a logout. Tokens are stateless and stay valid until they expire."""
        return {"success": True, "message": "Logged out successfully."}

    async def change_password(self, current: str, new: str) -> str:
        """Validate a password change and return the bcrypt hash for ADMIN_PASSWORD_HASH.

        The running credential is not modified; the new hash takes effect
        once the environment is updated and the process restarted.
        """
        if not await asyncio.to_thread(verify_password, current, self._credential.password_hash):
            raise InvalidCredentialsError("Current password is incorrect.")

        problems = check_password_strength(new)
        if problems:
            raise PasswordPolicyError(problems)

        new_hash = await asyncio.to_thread(hash_password, new, self._bcrypt_rounds)
        logger.warning("Admin password change requested; update ADMIN_PASSWORD_HASH and restart to apply it")
        return new_hash
