"""Application configuration via environment variables."""

from __future__ import annotations

import logging

from pydantic_settings import BaseSettings

log = logging.getLogger("moving.config")

STORAGE_BACKENDS = ("memory", "mongo")


class Settings(BaseSettings):
    # Storage
    storage_backend: str = "memory"       # "memory" or "mongo"
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "moving"

    # Uploads
    upload_dir: str = "uploads"
    max_upload_bytes: int = 5 * 1024 * 1024
    max_photos_per_field: int = 10

    # Geocoding (Nominatim)
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    geocoder_user_agent: str = "MoveEasy-Booking-App"
    geocoder_country_codes: str = "gr"
    geocoder_language: str = "el,en"
    search_debounce_seconds: float = 0.3

    # Routing (OpenRouteService)
    ors_url: str = "https://api.openrouteservice.org"
    ors_api_key: str = ""
    route_timeout_seconds: float = 5.0

    # Admin auth
    admin_api_key: str = ""

    # Server
    host: str = "127.0.0.1"
    port: int = 5000
    debug: bool = False

    # Client side (wizard submission, admin CLI)
    api_base_url: str = "http://127.0.0.1:5000"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []

        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"STORAGE_BACKEND={self.storage_backend!r} is not supported. "
                f"Use one of: {', '.join(STORAGE_BACKENDS)}."
            )

        if self.storage_backend == "memory":
            warnings.append(
                "STORAGE_BACKEND=memory: bookings are lost when the process exits."
            )

        if not self.admin_api_key:
            warnings.append(
                "ADMIN_API_KEY not set. Admin booking APIs are open to anyone."
            )

        # Routing degrades to straight-line estimates without a key
        if not self.ors_api_key:
            warnings.append(
                "ORS_API_KEY not set, route lookups will use straight-line estimates."
            )

        if self.max_upload_bytes <= 0:
            raise ValueError("MAX_UPLOAD_BYTES must be positive.")

        return warnings


settings = Settings()
