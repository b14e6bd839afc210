"""FastAPI backend for the pharmacy admin service.

Exposes admin login/session endpoints and the integration monitor's
snapshots. The auth guard and the monitor are built once at startup (or
injected through ``create_app`` in tests) and shared across requests.
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, cast

from fastapi import Depends, FastAPI, Header, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel

from src.auth.errors import AccountLockedError, AuthError, ConfigurationError, MissingCredentialsError
from src.auth.guard import AdminAuthGuard, AdminUser, LoginResult, SessionValidation, initialize
from src.auth.tokens import extract_bearer_token
from src.config import get_settings
from src.monitor.models import IntegrationHealth, InventoryMetrics, OrderMetrics, ServiceName, SyncMetrics
from src.monitor.service import IntegrationHealthMonitor
from src.observability.metrics import APP_INFO, REQUEST_DURATION, REQUESTS_IN_PROGRESS, REQUESTS_TOTAL

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/admin/login."""

    email: str = ""
    password: str = ""


class ValidateSessionRequest(BaseModel):
    """Request body for POST /api/admin/validate-session."""

    token: str = ""


class ChangePasswordRequest(BaseModel):
    """Request body for POST /api/admin/change-password."""

    current_password: str
    new_password: str


class ChangePasswordResponse(BaseModel):
    success: bool
    message: str
    password_hash: str


class LivenessResponse(BaseModel):
    status: str
    version: str


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_guard(request: Request) -> AdminAuthGuard:
    guard: AdminAuthGuard = request.app.state.guard
    return guard


def get_monitor(request: Request) -> IntegrationHealthMonitor:
    monitor: IntegrationHealthMonitor = request.app.state.monitor
    return monitor


def require_admin(
    request: Request,
    authorization: str | None = Header(default=None),
    guard: AdminAuthGuard = Depends(get_guard),
) -> dict[str, Any]:
    """Bearer-token guard for admin routes. Attaches the decoded claims to ``request.state.admin``."""
    claims = guard.authenticate_request(extract_bearer_token(authorization))
    request.state.admin = claims
    return claims


async def _auth_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # registered for AuthError only
    err = cast(AuthError, exc)
    headers: dict[str, str] = {}
    if isinstance(err, AccountLockedError):
        headers["Retry-After"] = str(err.remaining_minutes * 60)
    if err.status_code >= 500 or err.status_code == 429:
        logger.warning("%s %s -> %s", request.method, request.url.path, err.code)
    return JSONResponse(status_code=err.status_code, content=err.to_dict(), headers=headers)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    guard: AdminAuthGuard | None = None,
    monitor: IntegrationHealthMonitor | None = None,
) -> FastAPI:
    """Build the FastAPI app. Components not injected are built from settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        APP_INFO.info({"version": VERSION})

        if guard is None:
            result = initialize(get_settings())
            if not result.ok:
                raise ConfigurationError(result.errors)
            app.state.guard = result.guard
        else:
            app.state.guard = guard

        app.state.monitor = monitor or IntegrationHealthMonitor()
        app.state.monitor.start()
        logger.info("Pharmacy admin service ready")
        yield
        app.state.monitor.stop()
        logger.info("Shutting down pharmacy admin service")

    app = FastAPI(title="Pharmacy Admin Service", version=VERSION, lifespan=lifespan)
    app.add_exception_handler(AuthError, _auth_error_handler)

    # -----------------------------------------------------------------------
    # Public endpoints
    # -----------------------------------------------------------------------

    @app.get("/health", response_model=LivenessResponse)
    async def health() -> LivenessResponse:
        """Liveness probe."""
        return LivenessResponse(status="ok", version=VERSION)

    @app.get("/metrics")
    async def metrics() -> Response:
        """Expose Prometheus metrics in exposition format."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # -----------------------------------------------------------------------
    # Admin auth
    # -----------------------------------------------------------------------

    @app.post("/api/admin/login")
    async def login(body: LoginRequest, guard: AdminAuthGuard = Depends(get_guard)) -> LoginResult:
        """Exchange the admin credential for a session token."""
        if not body.email or not body.password:
            raise MissingCredentialsError()

        endpoint = "/api/admin/login"
        REQUESTS_IN_PROGRESS.labels(endpoint=endpoint).inc()
        start = time.monotonic()
        try:
            result = await guard.login(body.email, body.password)
        except AuthError:
            REQUESTS_TOTAL.labels(endpoint=endpoint, status="rejected").inc()
            raise
        finally:
            REQUESTS_IN_PROGRESS.labels(endpoint=endpoint).dec()
            REQUEST_DURATION.labels(endpoint=endpoint).observe(time.monotonic() - start)

        REQUESTS_TOTAL.labels(endpoint=endpoint, status="success").inc()
        return result

    @app.post("/api/admin/logout")
    async def logout(
        _claims: dict[str, Any] = Depends(require_admin),
        guard: AdminAuthGuard = Depends(get_guard),
    ) -> dict[str, object]:
        return guard.logout()

    @app.post("/api/admin/validate-session")
    async def validate_session(
        body: ValidateSessionRequest,
        guard: AdminAuthGuard = Depends(get_guard),
    ) -> SessionValidation:
        return guard.validate_session(body.token)

    @app.get("/api/admin/profile")
    async def profile(claims: dict[str, Any] = Depends(require_admin)) -> AdminUser:
        return AdminUser(email=claims["email"], name=claims.get("name", ""), role=claims["role"])

    @app.post("/api/admin/change-password", response_model=ChangePasswordResponse)
    async def change_password(
        body: ChangePasswordRequest,
        _claims: dict[str, Any] = Depends(require_admin),
        guard: AdminAuthGuard = Depends(get_guard),
    ) -> ChangePasswordResponse:
        new_hash = await guard.change_password(body.current_password, body.new_password)
        return ChangePasswordResponse(
            success=True,
            message="Set ADMIN_PASSWORD_HASH to the returned hash and restart the service.",
            password_hash=new_hash,
        )

    # -----------------------------------------------------------------------
    # Integration monitoring
    # -----------------------------------------------------------------------

    @app.get("/api/monitoring/integrations/health")
    async def integration_health(
        service: ServiceName | None = None,
        _claims: dict[str, Any] = Depends(require_admin),
        monitor: IntegrationHealthMonitor = Depends(get_monitor),
    ) -> IntegrationHealth | dict[str, IntegrationHealth]:
        return monitor.get_health_status(service)

    @app.get("/api/monitoring/integrations/metrics")
    async def integration_metrics(
        service: ServiceName | None = None,
        _claims: dict[str, Any] = Depends(require_admin),
        monitor: IntegrationHealthMonitor = Depends(get_monitor),
    ) -> SyncMetrics | dict[str, SyncMetrics]:
        return monitor.get_metrics(service)

    @app.post("/api/monitoring/integrations/check")
    async def run_integration_checks(
        _claims: dict[str, Any] = Depends(require_admin),
        monitor: IntegrationHealthMonitor = Depends(get_monitor),
    ) -> dict[str, IntegrationHealth]:
        """Run both health checks now instead of waiting for the next interval."""
        await monitor.perform_health_checks()
        return cast(dict[str, IntegrationHealth], monitor.get_health_status())

    @app.get("/api/monitoring/inventory")
    async def inventory_metrics(
        _claims: dict[str, Any] = Depends(require_admin),
        monitor: IntegrationHealthMonitor = Depends(get_monitor),
    ) -> InventoryMetrics | None:
        return monitor.get_inventory_metrics()

    @app.get("/api/monitoring/orders")
    async def order_metrics(
        _claims: dict[str, Any] = Depends(require_admin),
        monitor: IntegrationHealthMonitor = Depends(get_monitor),
    ) -> OrderMetrics | None:
        return monitor.get_order_metrics()

    @app.get("/api/monitoring/report", response_class=PlainTextResponse)
    async def health_report(
        comprehensive: bool = False,
        _claims: dict[str, Any] = Depends(require_admin),
        monitor: IntegrationHealthMonitor = Depends(get_monitor),
    ) -> str:
        if comprehensive:
            return monitor.generate_comprehensive_report()
        return monitor.generate_health_report()

    return app


app = create_app()
