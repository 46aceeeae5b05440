"""Tests for the booking REST API."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from moving.app import create_app
from moving.config import Settings
from moving.location.geocoding import GeocodingError, Suggestion
from moving.location.routing import RouteEstimator
from moving.storage import MemoryBookingStore, StoreError

JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 64


class FakeGeocoder:
    def __init__(self, results=None, error=None):
        self.results = results or []
        self.error = error
        self.queries = []

    async def search(self, query):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.results


class BrokenStore(MemoryBookingStore):
    async def create(self, data, house_photos=None, items_photos=None):
        raise StoreError("Failed to create booking")


def _form(**overrides):
    form = {
        "fullName": "Maria Papadopoulou",
        "countryCode": "+30",
        "phoneNumber": "6912345678",
        "email": "maria@example.com",
        "startLocation": "Ermou 10, Athens",
        "startLocationCoords": '{"lat": 37.9757, "lng": 23.7339}',
        "endLocation": "Tsimiski 5, Thessaloniki",
        "pickupFloor": "2",
        "pickupElevator": "true",
        "moveType": "residential",
        "selectedRooms": '{"kitchen": {"Refrigerator": 1, "Microwave": 0}}',
        "selectedDate": (date.today() + timedelta(days=20)).isoformat(),
        "timePreference": "morning",
    }
    form.update(overrides)
    return form


@pytest.fixture
def make_client(tmp_path):
    def _make(admin_api_key="", store=None, geocoder=None, max_upload_bytes=5 * 1024 * 1024):
        settings = Settings(
            upload_dir=str(tmp_path / "uploads"),
            admin_api_key=admin_api_key,
            ors_api_key="",
            max_upload_bytes=max_upload_bytes,
            max_photos_per_field=2,
        )
        app = create_app(
            app_settings=settings,
            store=store or MemoryBookingStore(),
            geocoder=geocoder or FakeGeocoder(),
            route_estimator=RouteEstimator(api_key=""),
        )
        return TestClient(app)
    return _make


class TestCreateBooking:
    def test_created_pending(self, make_client):
        client = make_client()
        resp = client.post("/api/bookings", data=_form())
        assert resp.status_code == 201
        body = resp.json()
        assert body["id"] == 1
        assert body["status"] == "pending"
        assert body["fullName"] == "Maria Papadopoulou"
        assert body["pickupFloor"] == "2"
        assert body["pickupElevator"] is True
        assert body["selectedRooms"] == {"kitchen": {"Refrigerator": 1}}
        assert body["startLocationCoords"] == {"lat": 37.9757, "lng": 23.7339}
        assert body["createdAt"]

    def test_ids_unique(self, make_client):
        client = make_client()
        ids = {client.post("/api/bookings", data=_form()).json()["id"] for _ in range(3)}
        assert len(ids) == 3

    def test_missing_full_name(self, make_client):
        client = make_client()
        form = _form()
        del form["fullName"]
        resp = client.post("/api/bookings", data=form)
        assert resp.status_code == 400
        body = resp.json()
        assert body["message"] == "Validation error"
        assert {"field": "fullName", "message": "Full name is required"} in body["errors"]
        assert client.get("/api/bookings").json() == []

    def test_other_requires_custom_move_type(self, make_client):
        resp = make_client().post("/api/bookings", data=_form(moveType="other"))
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "customMoveType"

    def test_photos_stored_and_served(self, make_client):
        client = make_client()
        files = [
            ("housePhotos", ("living.jpg", JPEG, "image/jpeg")),
            ("housePhotos", ("kitchen.JPG", JPEG, "image/jpeg")),
            ("itemsPhotos[]", ("sofa.png", b"\x89PNG....", "image/png")),
        ]
        resp = client.post("/api/bookings", data=_form(), files=files)
        assert resp.status_code == 201
        body = resp.json()
        assert len(body["housePhotos"]) == 2
        assert len(body["itemsPhotos"]) == 1
        assert all(url.startswith("/uploads/") for url in body["housePhotos"])
        assert body["housePhotos"][1].endswith(".jpg")

        served = client.get(body["housePhotos"][0])
        assert served.status_code == 200
        assert served.content == JPEG

    def test_non_image_rejected(self, make_client):
        client = make_client()
        files = [("housePhotos", ("notes.pdf", b"%PDF-1.4", "application/pdf"))]
        resp = client.post("/api/bookings", data=_form(), files=files)
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "housePhotos"
        assert client.get("/api/bookings").json() == []

    def test_oversized_photo_rejected(self, make_client):
        client = make_client(max_upload_bytes=16)
        files = [("itemsPhotos", ("big.jpg", JPEG, "image/jpeg"))]
        resp = client.post("/api/bookings", data=_form(), files=files)
        assert resp.status_code == 400

    def test_too_many_photos(self, make_client):
        files = [("housePhotos", (f"{i}.jpg", JPEG, "image/jpeg")) for i in range(3)]
        resp = make_client().post("/api/bookings", data=_form(), files=files)
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["message"] == "At most 2 photos allowed"

    def test_unexpected_file_field(self, make_client):
        files = [("avatar", ("me.jpg", JPEG, "image/jpeg"))]
        resp = make_client().post("/api/bookings", data=_form(), files=files)
        assert resp.status_code == 400

    def test_store_failure(self, make_client, tmp_path):
        client = make_client(store=BrokenStore())
        files = [("housePhotos", ("living.jpg", JPEG, "image/jpeg"))]
        resp = client.post("/api/bookings", data=_form(), files=files)
        assert resp.status_code == 500
        assert resp.json() == {"message": "Failed to create booking"}
        # saved photos are removed again
        assert list((tmp_path / "uploads").iterdir()) == []


class TestAdminEndpoints:
    def test_list_newest_first(self, make_client):
        client = make_client()
        for name in ("First", "Second"):
            client.post("/api/bookings", data=_form(fullName=name))
        names = [b["fullName"] for b in client.get("/api/bookings").json()]
        assert names == ["Second", "First"]

    def test_list_status_filter(self, make_client):
        client = make_client()
        client.post("/api/bookings", data=_form())
        client.post("/api/bookings", data=_form())
        client.patch("/api/bookings/1/status", json={"status": "confirmed"})
        confirmed = client.get("/api/bookings", params={"status": "confirmed"}).json()
        assert [b["id"] for b in confirmed] == [1]
        assert client.get("/api/bookings", params={"status": "archived"}).status_code == 400

    def test_get_booking(self, make_client):
        client = make_client()
        client.post("/api/bookings", data=_form())
        assert client.get("/api/bookings/1").json()["id"] == 1

    @pytest.mark.parametrize("booking_id", ["9999", "abc"])
    def test_get_missing(self, make_client, booking_id):
        resp = make_client().get(f"/api/bookings/{booking_id}")
        assert resp.status_code == 404
        assert resp.json() == {"message": "Booking not found"}

    def test_update_status(self, make_client):
        client = make_client()
        client.post("/api/bookings", data=_form())
        resp = client.patch("/api/bookings/1/status", json={"status": "completed"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"
        assert resp.json()["updatedAt"]
        # backwards transitions are allowed
        resp = client.patch("/api/bookings/1/status", json={"status": "pending"})
        assert resp.json()["status"] == "pending"

    def test_update_missing_booking(self, make_client):
        resp = make_client().patch("/api/bookings/9999/status", json={"status": "confirmed"})
        assert resp.status_code == 404

    @pytest.mark.parametrize("body", [{}, {"status": ""}, {"status": 3}, ["confirmed"]])
    def test_update_without_status(self, make_client, body):
        client = make_client()
        client.post("/api/bookings", data=_form())
        resp = client.patch("/api/bookings/1/status", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"message": "Status is required"}

    def test_update_unknown_status(self, make_client):
        client = make_client()
        client.post("/api/bookings", data=_form())
        resp = client.patch("/api/bookings/1/status", json={"status": "archived"})
        assert resp.status_code == 400
        assert client.get("/api/bookings/1").json()["status"] == "pending"


class TestAdminAuth:
    def test_rejects_missing_token(self, make_client):
        client = make_client(admin_api_key="secret")
        assert client.get("/api/bookings").status_code == 401
        assert client.patch("/api/bookings/1/status", json={"status": "confirmed"}).status_code == 401

    def test_rejects_wrong_token(self, make_client):
        client = make_client(admin_api_key="secret")
        resp = client.get("/api/bookings", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_accepts_valid_token(self, make_client):
        client = make_client(admin_api_key="secret")
        resp = client.get("/api/bookings", headers={"Authorization": "Bearer secret"})
        assert resp.status_code == 200

    def test_submission_stays_public(self, make_client):
        client = make_client(admin_api_key="secret")
        assert client.post("/api/bookings", data=_form()).status_code == 201


class TestLocationEndpoints:
    def test_short_query_idle(self, make_client):
        geocoder = FakeGeocoder()
        resp = make_client(geocoder=geocoder).get("/api/locations", params={"q": "at"})
        assert resp.json() == {"status": "idle", "suggestions": []}
        assert geocoder.queries == []

    def test_results(self, make_client):
        geocoder = FakeGeocoder([Suggestion("1", "Athens, Attica, Greece", 37.98, 23.72, "city", 0.8)])
        body = make_client(geocoder=geocoder).get("/api/locations", params={"q": "Athens"}).json()
        assert body["status"] == "results"
        assert body["suggestions"][0]["displayName"] == "Athens, Attica, Greece"

    def test_no_results(self, make_client):
        body = make_client().get("/api/locations", params={"q": "qqqq"}).json()
        assert body["status"] == "no_results"

    def test_failed(self, make_client):
        geocoder = FakeGeocoder(error=GeocodingError("down"))
        body = make_client(geocoder=geocoder).get("/api/locations", params={"q": "Athens"}).json()
        assert body["status"] == "failed"

    def test_route_estimate(self, make_client):
        params = {"startLat": 37.9838, "startLng": 23.7275, "endLat": 40.6401, "endLng": 22.9444}
        body = make_client().get("/api/routes/estimate", params=params).json()
        assert body["estimated"] is True
        assert body["label"] == "Estimated Route"
        assert 290 < body["distanceKm"] < 315

    def test_route_estimate_bad_coordinates(self, make_client):
        params = {"startLat": 137, "startLng": 23.7, "endLat": 40.6, "endLng": 22.9}
        assert make_client().get("/api/routes/estimate", params=params).status_code == 422


def test_health(make_client):
    body = make_client().get("/health").json()
    assert body["status"] == "ok"


class RecordingStore(MemoryBookingStore):
    def __init__(self):
        super().__init__()
        self.events = []

    async def start(self):
        self.events.append("start")

    async def close(self):
        self.events.append("close")


def test_lifespan_starts_and_closes_store(tmp_path):
    store = RecordingStore()
    app = create_app(
        app_settings=Settings(upload_dir=str(tmp_path), admin_api_key="", ors_api_key=""),
        store=store,
        geocoder=FakeGeocoder(),
        route_estimator=RouteEstimator(api_key=""),
    )
    with TestClient(app) as client:
        assert store.events == ["start"]
        assert client.get("/health").status_code == 200
    assert store.events == ["start", "close"]
