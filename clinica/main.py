from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Any
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from pydantic import BaseModel
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

from clinica.core.config import settings
from clinica.db.session import get_db
from clinica.logging_utils import (
    _clinic_id_ctx_var,
    _request_id_ctx_var,
    configure_logging,
    set_clinic_context,
)
from clinica.models import Clinic
from clinica.services import (
    CallerSession,
    DoctorCandidate,
    create_clinic,
    delete_doctor,
    doctors_view,
    load_caller_session,
    serialize_doctor,
    upsert_doctor,
)
from clinica.services.authorization import resolve_clinic_access
from clinica.services.errors import (
    ClinicAlreadyAssigned,
    Forbidden,
    NoClinicAssociation,
    NotFound,
    PersistenceError,
    ServiceError,
    Unauthenticated,
    ValidationFailed,
)
from clinica.services.specialties import specialty_options
from clinica.services.timezones import clinic_timezone

configure_logging()

app = FastAPI(title=settings.app_name, version="0.1.0")

logger = logging.getLogger(__name__)

REQUEST_COUNTER = Counter(
    "clinica_api_requests_total",
    "Total number of processed HTTP requests.",
    ["method", "path", "status", "clinic"],
)
REQUEST_LATENCY = Histogram(
    "clinica_api_request_duration_seconds",
    "HTTP request latency in seconds.",
    ["method", "path"],
)

_ERROR_STATUS: dict[type[ServiceError], int] = {
    ValidationFailed: status.HTTP_422_UNPROCESSABLE_ENTITY,
    Unauthenticated: status.HTTP_401_UNAUTHORIZED,
    NoClinicAssociation: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    Forbidden: status.HTTP_404_NOT_FOUND,
    ClinicAlreadyAssigned: status.HTTP_409_CONFLICT,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class SimpleRateLimiter:
    """In-memory rate limiter keyed by client IP."""

    def __init__(self, limit: int, window_seconds: int) -> None:
        self.limit = max(1, limit)
        self.window_seconds = max(1, window_seconds)
        self._entries: dict[str, tuple[int, float]] = {}
        self._lock = asyncio.Lock()

    async def allow(self, key: str) -> bool:
        now = time.monotonic()
        async with self._lock:
            count, window_start = self._entries.get(key, (0, now))
            if now - window_start >= self.window_seconds:
                self._entries[key] = (1, now)
                return True
            if count >= self.limit:
                return False
            self._entries[key] = (count + 1, window_start)
            return True


def _route_path(request: Request) -> str:
    """Return the matched route template, keeping metric labels bounded."""

    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


def _authenticated_clinic(request: Request) -> str | None:
    return getattr(request.state, "clinic_id", None)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Populate the request id for logging and echo it back."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        request.state.request_id = request_id
        request_id_token = _request_id_ctx_var.set(request_id)
        clinic_token = _clinic_id_ctx_var.set(None)

        try:
            response = await call_next(request)
        finally:
            _request_id_ctx_var.reset(request_id_token)
            _clinic_id_ctx_var.reset(clinic_token)

        response.headers["X-Request-ID"] = request_id
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply a coarse rate limit per client IP.

    Runs before authentication, so the client address is the only identity
    the caller cannot choose.
    """

    def __init__(self, app: FastAPI, limiter: SimpleRateLimiter) -> None:  # type: ignore[override]
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        if request.method == "OPTIONS":
            return await call_next(request)

        client_host = request.client.host if request.client else "unknown"

        allowed = await self.limiter.allow(client_host)
        if not allowed:
            logger.warning("rate limit exceeded", extra={"client_ip": client_host})
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Rate limit exceeded"},
            )

        return await call_next(request)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Emit structured access logs and feed metrics.

    The clinic label comes from the authenticated session, which the
    ``get_caller_session`` dependency records on ``request.state``.
    """

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        start_time = time.perf_counter()
        method = request.method

        try:
            response = await call_next(request)
        except Exception:
            elapsed = time.perf_counter() - start_time
            path = _route_path(request)
            clinic_id = _authenticated_clinic(request)
            set_clinic_context(clinic_id)
            REQUEST_COUNTER.labels(
                method=method, path=path, status="500", clinic=clinic_id or "anonymous"
            ).inc()
            REQUEST_LATENCY.labels(method=method, path=path).observe(elapsed)
            logger.exception(
                "request failed",
                extra={
                    "method": method,
                    "path": request.url.path,
                    "duration_ms": round(elapsed * 1000, 2),
                },
            )
            raise

        elapsed = time.perf_counter() - start_time
        status_code = response.status_code
        path = _route_path(request)
        clinic_id = _authenticated_clinic(request)
        set_clinic_context(clinic_id)

        REQUEST_COUNTER.labels(
            method=method,
            path=path,
            status=str(status_code),
            clinic=clinic_id or "anonymous",
        ).inc()
        REQUEST_LATENCY.labels(method=method, path=path).observe(elapsed)

        logger.info(
            "request completed",
            extra={
                "method": method,
                "path": request.url.path,
                "route": path,
                "status_code": status_code,
                "duration_ms": round(elapsed * 1000, 2),
            },
        )

        return response


rate_limiter = SimpleRateLimiter(
    settings.rate_limit_requests, settings.rate_limit_window_seconds
)


app.add_middleware(RateLimitMiddleware, limiter=rate_limiter)
app.add_middleware(AccessLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)

bearer = HTTPBearer(auto_error=False)


class DoctorUpsert(BaseModel):
    """Doctor form body; field values are checked by ``validate_doctor``."""

    id: Any = None
    name: Any = None
    specialty: Any = None
    appointment_price: Any = None
    available_from_weekday: Any = None
    available_to_weekday: Any = None
    available_from_time: Any = None
    available_to_time: Any = None


class ClinicCreate(BaseModel):
    name: Any = None
    timezone: Any = None


def get_caller_session(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> CallerSession | None:
    """Resolve the bearer token into the caller's session, if any."""

    token = credentials.credentials if credentials else None
    session = load_caller_session(db, token)
    if session and session.clinic_id:
        request.state.clinic_id = str(session.clinic_id)
        set_clinic_context(session.clinic_id)
    return session


def http_error(exc: ServiceError) -> HTTPException:
    """Translate a domain error into the HTTP error shown to the caller."""

    status_code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    detail: Any = exc.message
    if isinstance(exc, ValidationFailed):
        detail = {"message": exc.message, "fields": exc.errors}
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return HTTPException(status_code=status_code, detail=detail, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request parsing errors in the same shape as form validation errors."""

    fields: dict[str, list[str]] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ())[1:]]
        field = ".".join(location) or "body"
        fields.setdefault(field, []).append(error.get("msg", "Valor inválido"))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": {"message": "Dados inválidos.", "fields": fields}},
    )


@app.get("/metrics")
def metrics() -> Response:
    """Expose Prometheus metrics for scraping."""

    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint used by infrastructure probes."""

    return {"status": "ok"}


@app.get("/api/v1/specialties")
def list_specialties() -> dict[str, Any]:
    return {"specialties": specialty_options()}


@app.post("/api/v1/clinics", status_code=status.HTTP_201_CREATED)
def create_clinic_endpoint(
    payload: ClinicCreate,
    db: Session = Depends(get_db),
    session: CallerSession | None = Depends(get_caller_session),
) -> dict[str, Any]:
    """Create the caller's clinic and associate them with it."""

    try:
        clinic = create_clinic(db, session, name=payload.name, timezone=payload.timezone)
    except ServiceError as exc:
        raise http_error(exc) from exc

    return {
        "clinic": {"id": str(clinic.id), "name": clinic.name, "timezone": clinic.timezone}
    }


@app.get("/api/v1/dashboard")
def dashboard(
    db: Session = Depends(get_db),
    session: CallerSession | None = Depends(get_caller_session),
) -> dict[str, Any]:
    """Return the signed-in user and their clinic."""

    try:
        clinic_id = resolve_clinic_access(session).require_clinic()
    except ServiceError as exc:
        raise http_error(exc) from exc

    clinic = db.get(Clinic, clinic_id)
    if not clinic:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Clinic not found")

    return {
        "user": {
            "id": str(session.user_id),
            "name": session.user_name,
            "email": session.user_email,
        },
        "clinic": {"id": str(clinic.id), "name": clinic.name, "timezone": clinic.timezone},
    }


@app.get("/api/v1/doctors")
def list_doctors_endpoint(
    db: Session = Depends(get_db),
    session: CallerSession | None = Depends(get_caller_session),
) -> dict[str, Any]:
    """List the doctors of the caller's clinic."""

    try:
        clinic_id = resolve_clinic_access(session).require_clinic()
    except ServiceError as exc:
        raise http_error(exc) from exc

    return doctors_view(db, clinic_id)


@app.post("/api/v1/doctors")
def upsert_doctor_endpoint(
    payload: DoctorUpsert,
    db: Session = Depends(get_db),
    session: CallerSession | None = Depends(get_caller_session),
) -> dict[str, Any]:
    """Create a doctor, or update it when ``id`` is given."""

    candidate = DoctorCandidate(**payload.model_dump())
    try:
        doctor = upsert_doctor(db, candidate, session)
    except ServiceError as exc:
        raise http_error(exc) from exc

    tz = clinic_timezone(db.get(Clinic, doctor.clinic_id))
    return {"doctor": serialize_doctor(doctor, tz=tz)}


@app.delete("/api/v1/doctors/{doctor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_doctor_endpoint(
    doctor_id: UUID,
    db: Session = Depends(get_db),
    session: CallerSession | None = Depends(get_caller_session),
) -> Response:
    """Delete a doctor of the caller's clinic."""

    try:
        delete_doctor(db, doctor_id, session)
    except ServiceError as exc:
        raise http_error(exc) from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)
