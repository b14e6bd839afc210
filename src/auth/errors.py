"""Authentication error taxonomy.

Every error carries a machine-readable ``code``, a human ``message`` and the
HTTP status the API layer should answer with.
"""


class AuthError(Exception):
    code = "AUTH_ERROR"
    status_code = 401

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code}


class MissingTokenError(AuthError):
    code = "NO_TOKEN"

    def __init__(self, message: str = "Access denied. No token provided.") -> None:
        super().__init__(message)


class InvalidTokenError(AuthError):
    code = "INVALID_TOKEN"

    def __init__(self, message: str = "Invalid token.") -> None:
        super().__init__(message)


class TokenExpiredError(AuthError):
    code = "TOKEN_EXPIRED"

    def __init__(self, message: str = "Token expired. Please login again.") -> None:
        super().__init__(message)


class NotAdminError(AuthError):
    code = "NOT_ADMIN"
    status_code = 403

    def __init__(self, message: str = "Access denied. Admin privileges required.") -> None:
        super().__init__(message)


class MissingCredentialsError(AuthError):
    code = "MISSING_CREDENTIALS"
    status_code = 400

    def __init__(self, message: str = "Email and password are required.") -> None:
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    code = "INVALID_CREDENTIALS"

    def __init__(self, message: str = "Invalid credentials.") -> None:
        super().__init__(message)


class AccountLockedError(AuthError):
    code = "ACCOUNT_LOCKED"
    status_code = 429

    def __init__(self, remaining_minutes: int) -> None:
        super().__init__(f"Account temporarily locked. Try again in {remaining_minutes} minutes.")
        self.remaining_minutes = remaining_minutes


class PasswordPolicyError(AuthError):
    code = "PASSWORD_WEAK"
    status_code = 400

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


class ConfigurationError(Exception):
    """Raised when the process cannot start safely with the given settings."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("Invalid configuration: " + "; ".join(problems))
        self.problems = problems
