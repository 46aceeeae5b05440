"""Tests for BookingClient and the admin CLI."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
from datetime import date, timedelta

import httpx
import pytest

from moving import admin
from moving.app import create_app
from moving.client import ApiError, BookingClient
from moving.config import Settings
from moving.location.routing import RouteEstimator
from moving.storage import MemoryBookingStore


def _mock_client(handler, token=""):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")
    return BookingClient(token=token, client=http)


def _form(name="Maria Papadopoulou"):
    return {
        "fullName": name,
        "phoneNumber": "6912345678",
        "startLocation": "Ermou 10, Athens",
        "endLocation": "Tsimiski 5, Thessaloniki",
        "moveType": "storage",
        "selectedDate": (date.today() + timedelta(days=5)).isoformat(),
        "timePreference": "flexible",
    }


@pytest.fixture
def api(tmp_path):
    """BookingClient wired to a real app over ASGI."""
    settings = Settings(upload_dir=str(tmp_path), admin_api_key="", ors_api_key="")
    app = create_app(
        app_settings=settings,
        store=MemoryBookingStore(),
        route_estimator=RouteEstimator(api_key=""),
    )
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
    return BookingClient(client=http)


class TestBookingClient:
    @pytest.mark.asyncio
    async def test_bearer_token_sent(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[])

        client = _mock_client(handler, token="secret")
        assert await client.list_bookings("pending") == []
        assert seen["auth"] == "Bearer secret"
        assert seen["params"] == {"status": "pending"}

    @pytest.mark.asyncio
    async def test_validation_error(self):
        body = {"message": "Validation error", "errors": [{"field": "fullName", "message": "Full name is required"}]}
        client = _mock_client(lambda r: httpx.Response(400, json=body))
        with pytest.raises(ApiError) as exc_info:
            await client.create_booking({"phoneNumber": "6912345678"})
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Validation error"
        assert exc_info.value.errors[0]["field"] == "fullName"

    @pytest.mark.asyncio
    async def test_auth_error_detail(self):
        client = _mock_client(lambda r: httpx.Response(401, json={"detail": "Invalid or missing admin token."}))
        with pytest.raises(ApiError) as exc_info:
            await client.get_booking(1)
        assert exc_info.value.status_code == 401
        assert "admin token" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_non_json_error(self):
        client = _mock_client(lambda r: httpx.Response(502, content=b"Bad Gateway"))
        with pytest.raises(ApiError) as exc_info:
            await client.update_status(1, "confirmed")
        assert exc_info.value.message == "HTTP 502"

    @pytest.mark.asyncio
    async def test_non_json_success(self):
        client = _mock_client(lambda r: httpx.Response(201, content=b"<html>ok</html>"))
        with pytest.raises(ApiError) as exc_info:
            await client.create_booking(_form())
        assert exc_info.value.status_code == 201
        assert exc_info.value.message == "Booking service returned an invalid response"

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ApiError) as exc_info:
            await _mock_client(handler).list_bookings()
        assert exc_info.value.status_code == 0

    @pytest.mark.asyncio
    async def test_round_trip_against_app(self, api):
        created = await api.create_booking(_form())
        assert created["status"] == "pending"
        updated = await api.update_status(created["id"], "confirmed")
        assert updated["status"] == "confirmed"
        assert (await api.get_booking(created["id"]))["status"] == "confirmed"
        await api._client.aclose()


class TestAdminCli:
    def test_parser(self):
        parser = admin.build_parser()
        args = parser.parse_args(["set-status", "12", "confirmed"])
        assert args.command == "set-status"
        assert args.booking_id == 12
        assert args.status == "confirmed"

        args = parser.parse_args(["--base-url", "http://x", "list", "--status", "pending"])
        assert args.base_url == "http://x"
        assert args.status == "pending"

    def test_parser_rejects_unknown_status(self):
        with pytest.raises(SystemExit):
            admin.build_parser().parse_args(["set-status", "1", "archived"])

    def test_format_booking(self):
        line = admin.format_booking({
            "id": 3, "status": "pending", "fullName": "Maria", "moveType": "other",
            "customMoveType": "Piano", "housePhotos": ["/uploads/a.jpg"], "itemsPhotos": [],
            "startLocation": "Athens", "endLocation": "Patras",
        })
        assert "#3" in line
        assert "other (Piano)" in line
        assert "Athens -> Patras" in line
        assert "1 photos" in line

    @pytest.mark.asyncio
    async def test_list_and_set_status(self, api, capsys):
        await api.create_booking(_form("First"))
        await api.create_booking(_form("Second"))

        await admin.list_bookings(api)
        out = capsys.readouterr().out.splitlines()
        assert "Second" in out[0]
        assert "First" in out[1]
        assert out[-1] == "2 booking(s)"

        await admin.set_status(api, 1, "cancelled")
        assert "cancelled" in capsys.readouterr().out

        await admin.show_booking(api, 1)
        assert json.loads(capsys.readouterr().out)["status"] == "cancelled"
        await api._client.aclose()

    @pytest.mark.asyncio
    async def test_watch_prints_each_booking_once(self, api, capsys):
        await api.create_booking(_form("First"))
        await api.create_booking(_form("Second"))
        await admin.watch_bookings(api, interval=0, rounds=3)
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 2
        # oldest first
        assert "First" in lines[0]
        assert "Second" in lines[1]
        await api._client.aclose()
