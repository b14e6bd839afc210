"""Tests for environment validation and guard construction at startup."""

from src.auth.guard import initialize, validate_environment
from src.auth.passwords import hash_password
from tests.fakes import ADMIN_EMAIL, ADMIN_PASSWORD, make_settings


class TestValidateEnvironment:
    def test_valid_settings(self) -> None:
        assert validate_environment(make_settings()) == []

    def test_missing_variables_named_together(self) -> None:
        problems = validate_environment(make_settings(jwt_secret="", admin_email="", admin_password=""))
        assert problems == ["Missing required environment variables: JWT_SECRET, ADMIN_EMAIL, ADMIN_PASSWORD"]

    def test_short_secret(self) -> None:
        problems = validate_environment(make_settings(jwt_secret="too-short"))
        assert problems == ["JWT_SECRET must be at least 32 characters long"]

    def test_secret_of_exactly_32_characters_is_accepted(self) -> None:
        assert validate_environment(make_settings(jwt_secret="s" * 32)) == []

    def test_weak_password_problems_are_prefixed(self) -> None:
        problems = validate_environment(make_settings(admin_password="password"))
        assert problems
        assert all(p.startswith("ADMIN_PASSWORD: ") for p in problems)

    def test_hash_instead_of_password(self) -> None:
        settings = make_settings(admin_password="", admin_password_hash=hash_password(ADMIN_PASSWORD, rounds=4))
        assert validate_environment(settings) == []

    def test_malformed_hash(self) -> None:
        problems = validate_environment(make_settings(admin_password="", admin_password_hash="plaintext"))
        assert problems == ["ADMIN_PASSWORD_HASH must be a valid bcrypt hash"]


class TestInitialize:
    def test_valid_settings_build_guard(self) -> None:
        result = initialize(make_settings())
        assert result.ok
        assert result.guard is not None
        assert result.guard.user["email"] == ADMIN_EMAIL

    def test_invalid_settings_return_errors_without_guard(self) -> None:
        result = initialize(make_settings(jwt_secret=""))
        assert not result.ok
        assert result.guard is None
        assert "JWT_SECRET" in result.errors[0]

    def test_lockout_policy_comes_from_settings(self) -> None:
        result = initialize(make_settings(max_login_attempts=5, lockout_minutes=15))
        assert result.guard is not None
        assert result.guard.lockout.max_attempts == 5
        assert result.guard.lockout.lockout_duration.total_seconds() == 900

    async def test_prehashed_password_logs_in(self) -> None:
        settings = make_settings(admin_password="", admin_password_hash=hash_password(ADMIN_PASSWORD, rounds=4))
        result = initialize(settings)
        assert result.guard is not None
        login = await result.guard.login(ADMIN_EMAIL, ADMIN_PASSWORD)
        assert login["success"] is True
