"""FastAPI application — REST endpoints for moving-service booking intake.

Endpoints:

  POST  /api/bookings               Multipart booking submission with photos
  GET   /api/bookings               All bookings, newest first (admin)
  GET   /api/bookings/{id}          One booking (admin)
  PATCH /api/bookings/{id}/status   Change a booking's status (admin)
  GET   /api/locations?q=           Address suggestions for the form
  GET   /api/routes/estimate        Driving distance/duration between two points
  GET   /uploads/...                Uploaded photos
  GET   /health                     Health check

The booking flow:
  1. The form wizard posts every field as text plus photo file parts
  2. Photos are checked (image/*, size, count) and the fields validated
  3. Photos are written under UPLOAD_DIR, the booking goes to the store
  4. The admin dashboard polls GET /api/bookings and PATCHes status
"""

from __future__ import annotations

# Load .env into os.environ before settings are read
from dotenv import load_dotenv
load_dotenv()

import logging
import re
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from moving.auth import require_admin_token
from moving.config import Settings, settings
from moving.location.geocoding import MIN_QUERY_LENGTH, GeocodingError, NominatimGeocoder
from moving.location.routing import RouteEstimator
from moving.location.search import SearchStatus
from moving.logs import configure_logging, redact_pii
from moving.models.booking import PHOTO_FIELDS, BookingStatus, Coordinates, StatusUpdate
from moving.storage import BookingStore, StoreError, create_store
from moving.validation import FieldError, validate_booking

configure_logging(settings.debug)

log = logging.getLogger("moving.app")

_START_TIME = time.time()

_ID_PATTERN = re.compile(r"^\d{1,18}$")
_SUFFIX_PATTERN = re.compile(r"^\.[a-z0-9]{1,5}$")

UPLOADS_PREFIX = "/uploads"


def _parse_id(value: str) -> Optional[int]:
    """Numeric booking id, or None for anything else."""
    if not _ID_PATTERN.match(value):
        return None
    return int(value)


def _message(message: str, status_code: int, errors: list[FieldError] | None = None) -> JSONResponse:
    body: dict = {"message": message}
    if errors is not None:
        body["errors"] = [e.to_dict() for e in errors]
    return JSONResponse(body, status_code=status_code)


def create_app(
    app_settings: Settings | None = None,
    store: BookingStore | None = None,
    geocoder: NominatimGeocoder | None = None,
    route_estimator: RouteEstimator | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The booking store is chosen once here (from settings unless one is
    passed in) and shared by every request.
    """
    app_settings = app_settings or settings
    for warning in app_settings.validate_startup():
        log.warning(warning)

    store = store or create_store(app_settings)
    geocoder = geocoder or NominatimGeocoder()
    route_estimator = route_estimator or RouteEstimator()

    upload_dir = Path(app_settings.upload_dir).resolve()
    upload_dir.mkdir(parents=True, exist_ok=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.start()
        yield
        await store.close()
        log.info("Booking store closed")

    app = FastAPI(
        title="Moving Booking Intake",
        description="Booking form submissions and admin review for a moving service",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.store = store

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        """Lightweight health check; confirms the event loop is responsive."""
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({"status": "ok", "uptime": uptime})

    # ── Booking submission ─────────────────────────────────────

    async def _read_photos(form) -> tuple[dict[str, list[tuple[str, bytes]]], list[FieldError]]:
        """Collect and check photo parts. Returns (field -> [(suffix, bytes)], errors)."""
        photos: dict[str, list[tuple[str, bytes]]] = {f: [] for f in PHOTO_FIELDS}
        errors: list[FieldError] = []

        for key, value in form.multi_items():
            if not isinstance(value, UploadFile):
                continue
            field = key[:-2] if key.endswith("[]") else key
            if field not in PHOTO_FIELDS:
                errors.append(FieldError(field, "Unexpected file upload"))
                continue
            if not (value.content_type or "").startswith("image/"):
                errors.append(FieldError(field, f"{value.filename}: only image files are allowed"))
                continue

            content = await value.read(app_settings.max_upload_bytes + 1)
            if len(content) > app_settings.max_upload_bytes:
                limit_mb = app_settings.max_upload_bytes // (1024 * 1024)
                errors.append(FieldError(field, f"{value.filename}: larger than {limit_mb}MB"))
                continue

            suffix = Path(value.filename or "").suffix.lower()
            photos[field].append((suffix if _SUFFIX_PATTERN.match(suffix) else "", content))

        for field, items in photos.items():
            if len(items) > app_settings.max_photos_per_field:
                errors.append(
                    FieldError(field, f"At most {app_settings.max_photos_per_field} photos allowed")
                )
        return photos, errors

    def _save_photos(photos: list[tuple[str, bytes]]) -> list[Path]:
        paths = []
        for suffix, content in photos:
            path = upload_dir / f"{uuid.uuid4().hex}{suffix}"
            path.write_bytes(content)
            paths.append(path)
        return paths

    @app.post("/api/bookings")
    async def create_booking(request: Request) -> JSONResponse:
        """Validate a multipart submission, store its photos and persist it."""
        form = await request.form()

        values = {
            (key[:-2] if key.endswith("[]") else key): value
            for key, value in form.multi_items()
            if isinstance(value, str)
        }
        photos, errors = await _read_photos(form)
        data, field_errors = validate_booking(values)
        errors = field_errors + errors

        if errors or data is None:
            log.info("Booking rejected: %s", ", ".join(sorted({e.field for e in errors})))
            return _message("Validation error", 400, errors)

        saved: dict[str, list[Path]] = {}
        try:
            for field in PHOTO_FIELDS:
                saved[field] = _save_photos(photos[field])
            booking = await store.create(
                data,
                house_photos=[f"{UPLOADS_PREFIX}/{p.name}" for p in saved["housePhotos"]],
                items_photos=[f"{UPLOADS_PREFIX}/{p.name}" for p in saved["itemsPhotos"]],
            )
        except (StoreError, OSError) as exc:
            log.error("Failed to create booking: %s", exc)
            for paths in saved.values():
                for path in paths:
                    path.unlink(missing_ok=True)
            return _message("Failed to create booking", 500)

        log.info(
            "Booking %d received from %s (%d photos)",
            booking.id,
            redact_pii(data.phone_number),
            len(booking.house_photos) + len(booking.items_photos),
        )
        return JSONResponse(booking.to_api(), status_code=201)

    # ── Admin API ──────────────────────────────────────────────

    @app.get("/api/bookings", dependencies=[Depends(require_admin_token)])
    async def list_bookings(status: Optional[str] = None) -> JSONResponse:
        """All bookings, newest first, optionally filtered by status."""
        if status is not None and status not in {s.value for s in BookingStatus}:
            return _message(f"Unknown status: {status}", 400)
        try:
            bookings = await store.list_all()
        except StoreError as exc:
            log.error("Failed to fetch bookings: %s", exc)
            return _message("Failed to fetch bookings", 500)

        if status is not None:
            bookings = [b for b in bookings if b.status == status]
        return JSONResponse([b.to_api() for b in bookings])

    @app.get("/api/bookings/{booking_id}", dependencies=[Depends(require_admin_token)])
    async def get_booking(booking_id: str) -> JSONResponse:
        parsed = _parse_id(booking_id)
        if parsed is None:
            return _message("Booking not found", 404)
        try:
            booking = await store.get(parsed)
        except StoreError as exc:
            log.error("Failed to fetch booking %s: %s", booking_id, exc)
            return _message("Failed to fetch booking", 500)

        if booking is None:
            return _message("Booking not found", 404)
        return JSONResponse(booking.to_api())

    @app.patch("/api/bookings/{booking_id}/status", dependencies=[Depends(require_admin_token)])
    async def update_booking_status(booking_id: str, request: Request) -> JSONResponse:
        """Set status. Any status may follow any other; last write wins."""
        try:
            body = await request.json()
        except ValueError:
            body = None

        status_value = body.get("status") if isinstance(body, dict) else None
        if not isinstance(status_value, str) or not status_value:
            return _message("Status is required", 400)
        try:
            update = StatusUpdate(status=status_value)
        except ValidationError:
            allowed = ", ".join(s.value for s in BookingStatus)
            return _message(f"Status must be one of: {allowed}", 400)

        parsed = _parse_id(booking_id)
        if parsed is None:
            return _message("Booking not found", 404)
        try:
            booking = await store.update_status(parsed, update.status.value)
        except StoreError as exc:
            log.error("Failed to update booking %s: %s", booking_id, exc)
            return _message("Failed to update booking status", 500)

        if booking is None:
            return _message("Booking not found", 404)
        return JSONResponse(booking.to_api())

    # ── Location helpers ───────────────────────────────────────

    @app.get("/api/locations")
    async def search_locations(q: str = "") -> JSONResponse:
        """Ranked address suggestions; upstream failures come back as status=failed."""
        query = q.strip()
        if len(query) < MIN_QUERY_LENGTH:
            return JSONResponse({"status": SearchStatus.IDLE.value, "suggestions": []})
        try:
            suggestions = await geocoder.search(query)
        except GeocodingError as exc:
            log.warning("Location search failed: %s", exc)
            return JSONResponse({"status": SearchStatus.FAILED.value, "suggestions": []})

        status = SearchStatus.RESULTS if suggestions else SearchStatus.NO_RESULTS
        return JSONResponse({
            "status": status.value,
            "suggestions": [s.to_dict() for s in suggestions],
        })

    @app.get("/api/routes/estimate")
    async def estimate_route(
        start_lat: float = Query(alias="startLat", ge=-90, le=90),
        start_lng: float = Query(alias="startLng", ge=-180, le=180),
        end_lat: float = Query(alias="endLat", ge=-90, le=90),
        end_lng: float = Query(alias="endLng", ge=-180, le=180),
    ) -> JSONResponse:
        estimate = await route_estimator.estimate(
            Coordinates(lat=start_lat, lng=start_lng),
            Coordinates(lat=end_lat, lng=end_lng),
        )
        return JSONResponse(estimate.to_dict())

    # ── Uploaded photos ────────────────────────────────────────

    app.mount(UPLOADS_PREFIX, StaticFiles(directory=str(upload_dir)), name="uploads")

    return app


# ── Module-level app instance for uvicorn ──────────────────────

app = create_app()


if __name__ == "__main__":
    import uvicorn

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"
    )

    uvicorn.run(
        "moving.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=log_config,
    )
