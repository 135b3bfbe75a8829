from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

from clinic_api import services
from clinic_api.core.config import settings
from clinic_api.db.session import get_db, init_db
from clinic_api.logging_utils import bind_request_id, configure_logging, reset_request_id
from clinic_api.schemas import (
    DeleteResult,
    DoctorCreate,
    DoctorRead,
    DoctorUpdate,
    HealthStatus,
    LocationCreate,
    LocationRead,
    LocationUpdate,
    LoginRequest,
    LoginResponse,
    PatientCreate,
    PatientRead,
    PatientUpdate,
    VisitCreate,
    VisitRead,
    VisitUpdate,
)
from clinic_api.services import (
    AuthenticationError,
    ClinicError,
    ConflictError,
    NotFoundError,
)

configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    init_db()
    logger.info("database schema ready")
    yield


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

REQUEST_COUNTER = Counter(
    "clinic_api_requests_total",
    "Total number of processed HTTP requests.",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "clinic_api_request_duration_seconds",
    "HTTP request latency in seconds.",
    ["method", "path"],
)

UNMATCHED_ROUTE = "unmatched"

ERROR_STATUS: dict[type[ClinicError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
}


class SimpleRateLimiter:
    """In-memory fixed-window rate limiter keyed by client address."""

    def __init__(self, limit: int, window_seconds: int) -> None:
        self.limit = max(1, limit)
        self.window_seconds = max(1, window_seconds)
        self._entries: dict[str, tuple[int, float]] = {}
        self._lock = asyncio.Lock()

    def _evict_expired(self, now: float) -> None:
        expired = [
            key
            for key, (_, window_start) in self._entries.items()
            if now - window_start >= self.window_seconds
        ]
        for key in expired:
            del self._entries[key]

    async def allow(self, key: str) -> bool:
        now = time.monotonic()
        async with self._lock:
            self._evict_expired(now)
            count, window_start = self._entries.get(key, (0, now))
            if count >= self.limit:
                return False
            self._entries[key] = (count + 1, window_start)
            return True


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the logging context and echo it back."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = bind_request_id(request_id)

        try:
            response = await call_next(request)
        finally:
            reset_request_id(token)

        response.headers["X-Request-ID"] = request_id
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply a coarse rate limit per client address."""

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


def _route_label(request: Request) -> str:
    # route templates keep record ids out of metric labels; unmatched paths
    # all share one label
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ROUTE


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Emit structured access logs and feed metrics."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        start_time = time.perf_counter()
        method = request.method

        try:
            response = await call_next(request)
        except Exception:
            elapsed = time.perf_counter() - start_time
            path = _route_label(request)
            REQUEST_COUNTER.labels(method=method, path=path, status="500").inc()
            REQUEST_LATENCY.labels(method=method, path=path).observe(elapsed)
            logger.exception(
                "request failed",
                extra={
                    "method": method,
                    "path": path,
                    "duration_ms": round(elapsed * 1000, 2),
                },
            )
            raise

        elapsed = time.perf_counter() - start_time
        path = _route_label(request)
        status_code = response.status_code

        REQUEST_COUNTER.labels(method=method, path=path, status=str(status_code)).inc()
        REQUEST_LATENCY.labels(method=method, path=path).observe(elapsed)

        logger.info(
            "request completed",
            extra={
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round(elapsed * 1000, 2),
            },
        )

        return response


rate_limiter = SimpleRateLimiter(
    settings.rate_limit_requests, settings.rate_limit_window_seconds
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RateLimitMiddleware, limiter=rate_limiter)
app.add_middleware(AccessLogMiddleware)
# outermost, so access logs and 429 responses carry the request id
app.add_middleware(RequestContextMiddleware)


@app.exception_handler(ClinicError)
async def clinic_error_handler(request: Request, exc: ClinicError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        status.HTTP_400_BAD_REQUEST,
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """Expose Prometheus metrics for scraping."""

    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health", operation_id="healthcheck")
def health() -> HealthStatus:
    """Liveness probe."""

    return HealthStatus(status="ok", timestamp=datetime.now(timezone.utc).isoformat())


# Auth


@app.post("/api/v1/auth/login", operation_id="login")
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    result = services.login(db, payload)
    doctor = DoctorRead.model_validate(result.doctor) if result.doctor else None
    return LoginResponse(role=result.role, doctor=doctor)


# Locations


@app.post(
    "/api/v1/locations",
    status_code=status.HTTP_201_CREATED,
    operation_id="createLocation",
)
def create_location(
    payload: LocationCreate, db: Session = Depends(get_db)
) -> LocationRead:
    return LocationRead.model_validate(services.create_location(db, payload))


@app.get("/api/v1/locations", operation_id="getLocations")
def list_locations(db: Session = Depends(get_db)) -> list[LocationRead]:
    return [LocationRead.model_validate(row) for row in services.get_locations(db)]


@app.get("/api/v1/locations/{location_id}", operation_id="getLocationById")
def get_location(location_id: int, db: Session = Depends(get_db)) -> LocationRead | None:
    location = services.get_location_by_id(db, location_id)
    return LocationRead.model_validate(location) if location else None


@app.patch("/api/v1/locations/{location_id}", operation_id="updateLocation")
def update_location(
    location_id: int, payload: LocationUpdate, db: Session = Depends(get_db)
) -> LocationRead | None:
    """Partial update; ``null`` when nothing was supplied or the id is unknown."""

    location = services.update_location(db, location_id, payload)
    return LocationRead.model_validate(location) if location else None


@app.delete("/api/v1/locations/{location_id}", operation_id="deleteLocation")
def delete_location(location_id: int, db: Session = Depends(get_db)) -> DeleteResult:
    return DeleteResult(success=services.delete_location(db, location_id))


@app.get("/api/v1/locations/{location_id}/doctors", operation_id="getDoctorsByLocation")
def list_location_doctors(
    location_id: int, db: Session = Depends(get_db)
) -> list[DoctorRead]:
    doctors = services.get_doctors_by_location(db, location_id)
    return [DoctorRead.model_validate(row) for row in doctors]


# Doctors


@app.post(
    "/api/v1/doctors",
    status_code=status.HTTP_201_CREATED,
    operation_id="createDoctor",
)
def create_doctor(payload: DoctorCreate, db: Session = Depends(get_db)) -> DoctorRead:
    return DoctorRead.model_validate(services.create_doctor(db, payload))


@app.get("/api/v1/doctors", operation_id="getDoctors")
def list_doctors(db: Session = Depends(get_db)) -> list[DoctorRead]:
    return [DoctorRead.model_validate(row) for row in services.get_doctors(db)]


@app.get("/api/v1/doctors/{doctor_id}", operation_id="getDoctorById")
def get_doctor(doctor_id: int, db: Session = Depends(get_db)) -> DoctorRead | None:
    doctor = services.get_doctor_by_id(db, doctor_id)
    return DoctorRead.model_validate(doctor) if doctor else None


@app.patch("/api/v1/doctors/{doctor_id}", operation_id="updateDoctor")
def update_doctor(
    doctor_id: int, payload: DoctorUpdate, db: Session = Depends(get_db)
) -> DoctorRead | None:
    """Partial update; ``null`` when nothing was supplied or the id is unknown."""

    doctor = services.update_doctor(db, doctor_id, payload)
    return DoctorRead.model_validate(doctor) if doctor else None


@app.delete("/api/v1/doctors/{doctor_id}", operation_id="deleteDoctor")
def delete_doctor(doctor_id: int, db: Session = Depends(get_db)) -> DeleteResult:
    return DeleteResult(success=services.delete_doctor(db, doctor_id))


# Patients


@app.post(
    "/api/v1/patients",
    status_code=status.HTTP_201_CREATED,
    operation_id="createPatient",
)
def create_patient(payload: PatientCreate, db: Session = Depends(get_db)) -> PatientRead:
    return PatientRead.model_validate(services.create_patient(db, payload))


@app.get("/api/v1/patients", operation_id="getPatients")
def list_patients(db: Session = Depends(get_db)) -> list[PatientRead]:
    return [PatientRead.model_validate(row) for row in services.get_patients(db)]


# declared before /patients/{patient_pk} so "search" is not parsed as an id
@app.get("/api/v1/patients/search", operation_id="searchPatients")
def search_patients(
    query: str = Query(default=""),
    db: Session = Depends(get_db),
) -> list[PatientRead]:
    """Search by patient ID, CNIC, phone or name; blank queries return nothing."""

    return [PatientRead.model_validate(row) for row in services.search_patients(db, query)]


@app.get("/api/v1/patients/{patient_pk}", operation_id="getPatientById")
def get_patient(patient_pk: int, db: Session = Depends(get_db)) -> PatientRead | None:
    patient = services.get_patient_by_id(db, patient_pk)
    return PatientRead.model_validate(patient) if patient else None


@app.patch("/api/v1/patients/{patient_pk}", operation_id="updatePatient")
def update_patient(
    patient_pk: int, payload: PatientUpdate, db: Session = Depends(get_db)
) -> PatientRead | None:
    """Partial update; an empty payload returns the current record."""

    patient = services.update_patient(db, patient_pk, payload)
    return PatientRead.model_validate(patient) if patient else None


@app.get("/api/v1/patients/{patient_pk}/visits", operation_id="getVisitsByPatient")
def list_patient_visits(patient_pk: int, db: Session = Depends(get_db)) -> list[VisitRead]:
    visits = services.get_visits_by_patient(db, patient_pk)
    return [VisitRead.model_validate(row) for row in visits]


# Visits


@app.post(
    "/api/v1/visits",
    status_code=status.HTTP_201_CREATED,
    operation_id="createVisit",
)
def create_visit(payload: VisitCreate, db: Session = Depends(get_db)) -> VisitRead:
    return VisitRead.model_validate(services.create_visit(db, payload))


@app.get("/api/v1/visits", operation_id="getVisits")
def list_visits(db: Session = Depends(get_db)) -> list[VisitRead]:
    return [VisitRead.model_validate(row) for row in services.get_visits(db)]


@app.get("/api/v1/visits/{visit_id}", operation_id="getVisitById")
def get_visit(visit_id: int, db: Session = Depends(get_db)) -> VisitRead | None:
    visit = services.get_visit_by_id(db, visit_id)
    return VisitRead.model_validate(visit) if visit else None


@app.patch("/api/v1/visits/{visit_id}", operation_id="updateVisit")
def update_visit(
    visit_id: int, payload: VisitUpdate, db: Session = Depends(get_db)
) -> VisitRead | None:
    visit = services.update_visit(db, visit_id, payload)
    return VisitRead.model_validate(visit) if visit else None


@app.delete("/api/v1/visits/{visit_id}", operation_id="deleteVisit")
def delete_visit(visit_id: int, db: Session = Depends(get_db)) -> DeleteResult:
    """Always answers 200; ``success`` is false when the id did not exist."""

    return DeleteResult(success=services.delete_visit(db, visit_id))
